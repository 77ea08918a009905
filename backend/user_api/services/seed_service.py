import logging
from typing import List
from user_api.core.security import get_password_hash
from user_api.storage.user_store import UserRecord, UserStore

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = "password123"

SAMPLE_USERS = [
    {"name": "John Doe", "email": "john@example.com", "age": 30},
    {"name": "Jane Smith", "email": "jane@example.com", "age": 25},
    {"name": "Bob Johnson", "email": "bob@example.com", "age": 35},
]


def seed_sample_users(store: UserStore) -> List[UserRecord]:
    """
    Insert the sample accounts, all with password "password123".

    Emails that already exist are skipped, so running this twice is harmless.
    Returns the users that were created.
    """
    created = []
    for sample in SAMPLE_USERS:
        if store.find_by_email(sample["email"]) is not None:
            continue
        created.append(store.create(
            name=sample["name"],
            email=sample["email"],
            password_hash=get_password_hash(SAMPLE_PASSWORD),
            age=sample["age"],
        ))

    if created:
        logger.info(f"Seeded {len(created)} sample users")
    return created
