"""
User Store: durable record of users keyed by id, unique on lowercased email.

Two backends implement the same contract:
- SQLUserStore: the relational users table, one SQLAlchemy session per request
- InMemoryUserStore: a process-local dict, used for local runs and tests

Both hand out UserRecord snapshots, never live rows, so services always
re-read current state for each operation.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import update as sql_update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from user_api.core.errors import DuplicateEmailError, NotFoundError
from user_api.models.user import User, utcnow


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(frozen=True)
class UserRecord:
    id: int
    name: str
    email: str
    password: str
    age: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserRecord":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            password=user.password,
            age=user.age,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )

    def identity(self) -> Dict[str, Any]:
        """id, name and email only - what a deletion confirms"""
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass
class UserPatch:
    """
    The set of columns one update changes.

    A field left as None is not touched. password_hash is an already
    hashed credential.
    """
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    password_hash: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        """Present fields keyed by their column name"""
        values = {}
        for field in fields(self):
            value = getattr(self, field.name)
            if value is not None:
                column = "password" if field.name == "password_hash" else field.name
                values[column] = value
        return values

    def is_empty(self) -> bool:
        return not self.changes()


class UserStore(ABC):
    @abstractmethod
    def create(self, name: str, email: str, password_hash: str, age: int) -> UserRecord:
        """Insert a user. Raises DuplicateEmailError if the email is taken."""

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        ...

    @abstractmethod
    def update(self, user_id: int, patch: UserPatch) -> UserRecord:
        """
        Apply a patch in one write and refresh updated_at.

        Raises NotFoundError for an unknown id and DuplicateEmailError when
        the new email belongs to another user.
        """

    @abstractmethod
    def delete(self, user_id: int) -> UserRecord:
        """Remove a user and return the record as it was. Raises NotFoundError."""

    @abstractmethod
    def list_all(self) -> List[UserRecord]:
        """All users ordered by id ascending"""


class SQLUserStore(UserStore):
    """User Store backed by the users table"""

    def __init__(self, db: Session):
        self.db = db

    def create(self, name: str, email: str, password_hash: str, age: int) -> UserRecord:
        db_user = User(name=name, email=normalize_email(email), password=password_hash, age=age)
        self.db.add(db_user)
        try:
            self.db.commit()
        except IntegrityError:
            # Two requests raced past the caller's pre-check; the constraint decides
            self.db.rollback()
            if self.find_by_email(email) is not None:
                raise DuplicateEmailError()
            raise
        self.db.refresh(db_user)
        return UserRecord.from_model(db_user)

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        user = self.db.query(User).filter(User.email == normalize_email(email)).first()
        return UserRecord.from_model(user) if user else None

    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        user = self.db.query(User).filter(User.id == user_id).first()
        return UserRecord.from_model(user) if user else None

    def update(self, user_id: int, patch: UserPatch) -> UserRecord:
        values = patch.changes()
        if "email" in values:
            values["email"] = normalize_email(values["email"])
        values["updated_at"] = utcnow()

        statement = sql_update(User).where(User.id == user_id).values(**values)
        try:
            result = self.db.execute(statement)
            if result.rowcount == 0:
                self.db.rollback()
                raise NotFoundError()
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if "email" in values:
                raise DuplicateEmailError("Email already exists")
            raise

        # The bulk update bypasses the identity map
        self.db.expire_all()
        return self.find_by_id(user_id)

    def delete(self, user_id: int) -> UserRecord:
        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None:
            raise NotFoundError()
        # Snapshot before the row is gone
        record = UserRecord.from_model(user)
        self.db.delete(user)
        self.db.commit()
        return record

    def list_all(self) -> List[UserRecord]:
        users = self.db.query(User).order_by(User.id.asc()).all()
        return [UserRecord.from_model(user) for user in users]


class InMemoryUserStore(UserStore):
    """
    User Store kept in a process-local dict.

    Data lives only as long as the process. A lock makes the email
    uniqueness check and the write a single step.
    """

    def __init__(self):
        self._users: Dict[int, UserRecord] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def _email_owner(self, email: str) -> Optional[UserRecord]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    def create(self, name: str, email: str, password_hash: str, age: int) -> UserRecord:
        email = normalize_email(email)
        with self._lock:
            if self._email_owner(email) is not None:
                raise DuplicateEmailError()
            now = utcnow()
            user = UserRecord(
                id=self._next_id,
                name=name,
                email=email,
                password=password_hash,
                age=age,
                created_at=now,
                updated_at=now,
            )
            self._users[user.id] = user
            self._next_id += 1
            return user

    def find_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            return self._email_owner(normalize_email(email))

    def find_by_id(self, user_id: int) -> Optional[UserRecord]:
        with self._lock:
            return self._users.get(user_id)

    def update(self, user_id: int, patch: UserPatch) -> UserRecord:
        values = patch.changes()
        if "email" in values:
            values["email"] = normalize_email(values["email"])

        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError()
            if "email" in values:
                owner = self._email_owner(values["email"])
                if owner is not None and owner.id != user_id:
                    raise DuplicateEmailError("Email already exists")
            updated = replace(user, updated_at=utcnow(), **values)
            self._users[user_id] = updated
            return updated

    def delete(self, user_id: int) -> UserRecord:
        with self._lock:
            user = self._users.pop(user_id, None)
        if user is None:
            raise NotFoundError()
        return user

    def list_all(self) -> List[UserRecord]:
        with self._lock:
            return [self._users[user_id] for user_id in sorted(self._users)]

    def clear(self) -> None:
        with self._lock:
            self._users.clear()
            self._next_id = 1


# Shared instance for USER_STORE_BACKEND=memory
memory_store = InMemoryUserStore()
