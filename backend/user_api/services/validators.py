from typing import Any, Optional
from email_validator import EmailNotValidError, validate_email

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_BYTES = 72
MIN_AGE = 0
MAX_AGE = 150

NAME_REQUIRED = "Name is required"
EMAIL_INVALID = "Valid email is required"
PASSWORD_TOO_SHORT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"
PASSWORD_REQUIRED = "Password is required"
AGE_OUT_OF_RANGE = f"Age must be between {MIN_AGE} and {MAX_AGE}"


def field_error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def is_valid_email(email: Any) -> bool:
    if not isinstance(email, str) or not email.strip():
        return False
    try:
        validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_age(age: Any) -> bool:
    # bool is an int subclass but never a valid age
    if isinstance(age, bool) or not isinstance(age, int):
        return False
    return MIN_AGE <= age <= MAX_AGE


def password_error(password: Any) -> Optional[str]:
    """Message for an unacceptable new password, or None"""
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return PASSWORD_TOO_SHORT
    # bcrypt only reads the first 72 bytes; refuse rather than silently truncate
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return PASSWORD_TOO_LONG
    return None
