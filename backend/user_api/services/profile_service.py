import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from user_api.core.errors import DuplicateEmailError, NotFoundError, UnauthorizedError, ValidationError
from user_api.core.security import get_password_hash, verify_password
from user_api.services import validators
from user_api.storage.user_store import UserPatch, UserRecord, UserStore, normalize_email

logger = logging.getLogger(__name__)


def _invalid(field: str, message: str) -> ValidationError:
    return ValidationError(message, errors=[validators.field_error(field, message)])


@dataclass
class ProfileUpdate:
    """Fields a caller asked to change. None means not supplied."""

    name: Optional[Any] = None
    email: Optional[Any] = None
    age: Optional[Any] = None
    current_password: Optional[Any] = None
    new_password: Optional[Any] = None


class ProfileService:
    """Profile reads, partial updates and account deletion for authenticated callers"""

    @staticmethod
    def list_users(store: UserStore) -> List[UserRecord]:
        return store.list_all()

    @staticmethod
    def get_user(store: UserStore, user_id: int) -> UserRecord:
        user = store.find_by_id(user_id)
        if user is None:
            raise NotFoundError()
        return user

    @staticmethod
    def build_patch(store: UserStore, user: UserRecord, fields: ProfileUpdate) -> UserPatch:
        """
        Validate the requested changes and turn them into a patch.

        Blank name or email strings count as not supplied. Raises before
        anything is written, so a rejected request leaves the record as it was.
        """
        patch = UserPatch()

        if fields.name is not None:
            if not isinstance(fields.name, str):
                raise _invalid("name", validators.NAME_REQUIRED)
            if not validators.is_blank(fields.name):
                patch.name = fields.name.strip()

        new_email = None
        if fields.email is not None:
            if not isinstance(fields.email, str):
                raise _invalid("email", validators.EMAIL_INVALID)
            if not validators.is_blank(fields.email):
                if not validators.is_valid_email(fields.email):
                    raise _invalid("email", validators.EMAIL_INVALID)
                new_email = normalize_email(fields.email)

        if fields.age is not None:
            if not validators.is_valid_age(fields.age):
                raise _invalid("age", validators.AGE_OUT_OF_RANGE)
            patch.age = fields.age

        if fields.new_password:
            if not fields.current_password:
                message = "Current password is required to change password"
                raise _invalid("currentPassword", message)
            password_message = validators.password_error(fields.new_password)
            if password_message:
                raise _invalid("newPassword", password_message)

        if new_email is not None:
            if new_email != user.email:
                owner = store.find_by_email(new_email)
                if owner is not None and owner.id != user.id:
                    raise DuplicateEmailError("Email already exists")
            patch.email = new_email

        if fields.new_password:
            if not verify_password(fields.current_password, user.password):
                raise UnauthorizedError("Current password is incorrect")
            patch.password_hash = get_password_hash(fields.new_password)

        return patch

    @staticmethod
    def update_profile(store: UserStore, user_id: int, fields: ProfileUpdate) -> UserRecord:
        """Apply a partial update to the caller's own record in a single write"""
        user = store.find_by_id(user_id)
        if user is None:
            raise NotFoundError()

        patch = ProfileService.build_patch(store, user, fields)
        if patch.is_empty():
            raise ValidationError("No fields to update")

        updated = store.update(user_id, patch)
        changed = ", ".join(sorted(patch.changes()))
        logger.info(f"User {user_id} updated profile fields: {changed}")
        return updated

    @staticmethod
    def delete_account(store: UserStore, user_id: int, password: Any) -> Dict[str, Any]:
        """Delete the caller's account after re-checking their password"""
        if not isinstance(password, str) or not password:
            message = "Password is required to delete account"
            raise _invalid("password", message)

        user = store.find_by_id(user_id)
        if user is None:
            raise NotFoundError()

        if not verify_password(password, user.password):
            raise UnauthorizedError("Incorrect password")

        deleted = store.delete(user_id)
        logger.info(f"Deleted account {deleted.id} ({deleted.email})")
        return deleted.identity()


profile_service = ProfileService()
