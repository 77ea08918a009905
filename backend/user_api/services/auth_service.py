import logging
from dataclasses import dataclass
from typing import Any
from user_api.core.errors import DuplicateEmailError, InvalidCredentialsError, NotFoundError, ValidationError
from user_api.core.security import create_access_token, get_password_hash, verify_password
from user_api.services import validators
from user_api.storage.user_store import UserRecord, UserStore, normalize_email

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthResult:
    user: UserRecord
    token: str


class AuthService:
    """Registration, login and profile lookup"""

    @staticmethod
    def register(store: UserStore, name: Any, email: Any, password: Any, age: Any) -> AuthResult:
        """
        Create an account and issue a token for it.

        Every field is validated before the store is touched; all failing
        fields are reported together.
        """
        errors = []
        if not isinstance(name, str) or validators.is_blank(name):
            errors.append(validators.field_error("name", validators.NAME_REQUIRED))
        if not validators.is_valid_email(email):
            errors.append(validators.field_error("email", validators.EMAIL_INVALID))
        password_message = validators.password_error(password)
        if password_message:
            errors.append(validators.field_error("password", password_message))
        if not validators.is_valid_age(age):
            errors.append(validators.field_error("age", validators.AGE_OUT_OF_RANGE))
        if errors:
            raise ValidationError(errors[0]["message"], errors=errors)

        email = normalize_email(email)

        # Friendlier message than the constraint violation; the store still decides races
        if store.find_by_email(email) is not None:
            raise DuplicateEmailError()

        user = store.create(
            name=name.strip(),
            email=email,
            password_hash=get_password_hash(password),
            age=age,
        )
        logger.info(f"Registered user {user.id} ({user.email})")
        return AuthResult(user=user, token=create_access_token(user.id, user.email))

    @staticmethod
    def login(store: UserStore, email: Any, password: Any) -> AuthResult:
        """Exchange email and password for a token"""
        errors = []
        if not validators.is_valid_email(email):
            errors.append(validators.field_error("email", validators.EMAIL_INVALID))
        if not isinstance(password, str) or not password:
            errors.append(validators.field_error("password", validators.PASSWORD_REQUIRED))
        if errors:
            raise ValidationError(errors[0]["message"], errors=errors)

        user = store.find_by_email(normalize_email(email))

        # Unknown email and wrong password must look the same to the caller
        if user is None or not verify_password(password, user.password):
            logger.info("Failed login attempt")
            raise InvalidCredentialsError()

        logger.info(f"User {user.id} logged in")
        return AuthResult(user=user, token=create_access_token(user.id, user.email))

    @staticmethod
    def get_profile(store: UserStore, user_id: int) -> UserRecord:
        # The account may have been deleted after the token was issued
        user = store.find_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user


auth_service = AuthService()
