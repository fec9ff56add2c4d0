class HabitTrackerError(Exception):
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class NotFoundError(HabitTrackerError):
    """Resource is absent or not owned by the caller."""
    status_code = 404


class ValidationError(HabitTrackerError):
    status_code = 400


class UnauthorizedError(HabitTrackerError):
    status_code = 401
