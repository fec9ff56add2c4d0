import logging
from flask import Blueprint, current_app, request, jsonify
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from functools import wraps
from sqlalchemy.exc import SQLAlchemyError

from models import db, User
from errors import UnauthorizedError

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


# JWT middleware
def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        token = request.headers.get("Authorization")
        if not token:
            logger.warning("Token missing in request")
            raise UnauthorizedError("Token required")
        if token.startswith("Bearer "):
            token = token[7:]
        try:
            payload = jwt.decode(token, current_app.config["JWT_SECRET_KEY"], algorithms=["HS256"])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            raise UnauthorizedError("Token expired")
        except jwt.InvalidTokenError:
            logger.warning("Invalid token")
            raise UnauthorizedError("Invalid token")
        user = db.session.get(User, payload.get("user_id"))
        if not user:
            logger.warning("User not found for token")
            raise UnauthorizedError("Invalid token")
        return f(user, *args, **kwargs)
    return decorated


# Generate JWT
def generate_token(user_id, email):
    now = datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "email": email,
        "exp": now + timedelta(hours=current_app.config["JWT_EXPIRATION_HOURS"]),
        "iat": now
    }
    return jwt.encode(payload, current_app.config["JWT_SECRET_KEY"], algorithm="HS256")


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    email = data.get("email")
    password = data.get("password")
    if not username or not email or not password:
        return jsonify({"message": "Username, email, and password required"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({"message": "Username already exists"}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({"message": "Email already exists"}), 400
    hashed_password = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    try:
        new_user = User(
            username=username,
            email=email,
            password=hashed_password.decode("utf-8")
        )
        db.session.add(new_user)
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Database error registering user: {str(e)}")
        db.session.rollback()
        return jsonify({"message": "Failed to register user"}), 500
    logger.info(f"User registered: {username}")
    token = generate_token(new_user.id, new_user.email)
    return jsonify({"message": "User registered", "token": token}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    identifier = data.get("identifier")  # Can be username or email
    password = data.get("password")
    if not identifier or not password:
        return jsonify({"message": "Identifier and password required"}), 400
    user = User.query.filter((User.username == identifier) | (User.email == identifier)).first()
    if not user or not bcrypt.checkpw(password.encode("utf-8"), user.password.encode("utf-8")):
        logger.warning(f"Failed login for {identifier}")
        return jsonify({"message": "Invalid credentials"}), 401
    token = generate_token(user.id, user.email)
    return jsonify({"token": token, "username": user.username, "email": user.email}), 200
