"""
Domain errors raised by the services and the access gate.

Every error carries the HTTP status and the short error label used in the
response envelope; main.py turns them into JSON responses.
"""

from typing import Optional


class AppError(Exception):
    status_code = 500
    error = "Server Error"

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AppError):
    """Malformed or out-of-range input. Raised before any write happens."""

    status_code = 400
    error = "Validation Error"


class DuplicateEmailError(AppError):
    status_code = 400
    error = "Bad Request"

    def __init__(self, message: str = "User with this email already exists"):
        super().__init__(message)


class InvalidCredentialsError(AppError):
    """Login failure. Same message whether the email or the password was wrong."""

    status_code = 401
    error = "Unauthorized"

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class UnauthorizedError(AppError):
    status_code = 401
    error = "Unauthorized"


class InvalidTokenError(UnauthorizedError):
    def __init__(self, message: str = "Invalid token. Please login again."):
        super().__init__(message)


class ExpiredTokenError(UnauthorizedError):
    def __init__(self, message: str = "Token expired. Please login again."):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    error = "Not Found"

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class ServerError(AppError):
    status_code = 500
    error = "Server Error"
