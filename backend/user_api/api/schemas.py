from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from user_api.services.validators import AGE_OUT_OF_RANGE


def _reject_bool(value: Any) -> Any:
    # JSON true/false would otherwise be coerced to 1/0
    if isinstance(value, bool):
        raise ValueError(AGE_OUT_OF_RANGE)
    return value


class RegisterRequest(BaseModel):
    # Semantic checks (blank name, email format, ranges) happen in the service
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    age: Optional[int] = None

    @field_validator("age", mode="before")
    @classmethod
    def reject_bool_age(cls, value: Any) -> Any:
        return _reject_bool(value)


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UpdateProfileRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("age", mode="before")
    @classmethod
    def reject_bool_age(cls, value: Any) -> Any:
        return _reject_bool(value)


class DeleteAccountRequest(BaseModel):
    password: Optional[str] = None


class UserResponse(BaseModel):
    """Public view of a user. Has no password field on purpose."""

    id: int
    name: str
    email: str
    age: Optional[int]
    created_at: datetime
    updated_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('created_at')
    def serialize_created_at(self, value: datetime, _info):
        return value.isoformat() if value else None

    @field_serializer('updated_at')
    def serialize_updated_at(self, value: Optional[datetime], _info):
        return value.isoformat() if value else None


def serialize_user(user: Any) -> dict:
    return UserResponse.model_validate(user).model_dump(mode="json")


def envelope(data: Any = None, message: Optional[str] = None, **extra: Any) -> dict:
    """Successful response body: {success, message?, data?, ...}"""
    body: dict = {"success": True}
    if message is not None:
        body["message"] = message
    body.update(extra)
    if data is not None:
        body["data"] = data
    return body
