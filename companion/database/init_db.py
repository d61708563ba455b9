"""
Database Initialization - Create tables for the companion schema.

Schema migrations are managed outside this service; this only creates
missing tables on a fresh database.
"""
from typing import Optional

from companion.core.logging_config import get_logger
from companion.database.connection import DatabaseConnection, get_database
from companion.database.models import Base

logger = get_logger(__name__)


def init_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Create all tables if they don't exist.

    Returns:
        True if tables were created successfully
    """
    try:
        db = db or get_database()
        Base.metadata.create_all(db.engine)

        logger.info("Companion tables initialized successfully")
        return True

    except Exception as e:
        logger.error(f"Failed to initialize tables: {e}")
        raise


def drop_tables(db: Optional[DatabaseConnection] = None) -> bool:
    """
    Drop all tables (use with caution!).

    Returns:
        True if tables were dropped successfully
    """
    try:
        db = db or get_database()
        Base.metadata.drop_all(db.engine)

        logger.warning("Companion tables dropped")
        return True

    except Exception as e:
        logger.error(f"Failed to drop tables: {e}")
        raise


if __name__ == "__main__":
    print("Initializing companion tables...")
    init_tables()
    print("Done!")
