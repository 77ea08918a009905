"""Drop and recreate the users table, then insert the sample accounts."""
import logging

from user_api.core.config import settings
from user_api.core.database import SessionLocal, reset_db
from user_api.services.seed_service import SAMPLE_PASSWORD, seed_sample_users
from user_api.storage.user_store import SQLUserStore

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
logger = logging.getLogger("setup_database")


def main() -> None:
    logger.info(f"Resetting users table at {settings.DATABASE_URL}")
    reset_db()

    db = SessionLocal()
    try:
        store = SQLUserStore(db)
        seed_sample_users(store)
        logger.info(f"Total users in database: {len(store.list_all())}")
    finally:
        db.close()

    logger.info(f"Sample login: john@example.com / {SAMPLE_PASSWORD}")


if __name__ == "__main__":
    main()
