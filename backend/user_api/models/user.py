from datetime import datetime, timezone
from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime
from user_api.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    User model representing one account.

    The password column holds a bcrypt hash, never the plaintext.
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("age >= 0 AND age <= 150", name="ck_users_age_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    # Stored lowercased; the unique constraint is the authoritative duplicate check
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    age = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    # Set explicitly by the store on every write
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"
