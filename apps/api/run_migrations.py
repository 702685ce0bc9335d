#!/usr/bin/env python3
"""Database bootstrap: run Alembic migrations (production-safe).

- Always run `alembic upgrade head` on startup.
- If migrations fail, fail fast (don't start with an unknown schema).
- The create_all fallback is only allowed on an empty database and is
  followed by `alembic stamp head`.
"""

import logging
import os
import sys
import time

from dotenv import load_dotenv
from sqlalchemy import inspect, text

load_dotenv()

logger = logging.getLogger(__name__)


def check_db_ready() -> bool:
    """Check if database is ready"""
    from core.database import check_db_connection

    return check_db_connection()


def _get_alembic_config():
    """Load Alembic config for programmatic migrations."""
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    cfg = Config(os.path.join(here, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(here, "alembic"))
    return cfg


def alembic_upgrade_head() -> None:
    """Apply all pending migrations."""
    from alembic import command

    command.upgrade(_get_alembic_config(), "head")


def alembic_stamp_head() -> None:
    """Stamp alembic_version as head (no schema changes)."""
    from alembic import command

    command.stamp(_get_alembic_config(), "head")


def create_schema_directly() -> None:
    """Fallback: create schema directly from SQLAlchemy models.

    Refuses to run when app_user already holds rows; non-empty databases
    must go through Alembic.
    """
    from core.database import Base, engine
    import models  # noqa: F401

    if inspect(engine).has_table("app_user"):
        with engine.connect() as conn:
            count = conn.execute(text("SELECT COUNT(*) FROM app_user")).scalar()
        if count:
            raise RuntimeError(
                f"Refusing direct schema creation on non-empty DB (users={count}). "
                f"Run Alembic migrations instead."
            )

    logger.info("Creating schema directly from models...")
    Base.metadata.create_all(engine, checkfirst=True)

    # Mark as up to date so future runs can upgrade incrementally.
    alembic_stamp_head()
    logger.info("Schema created successfully")


def main() -> None:
    from core.logging import setup_logging

    setup_logging()
    logger.info("Waiting for database to be ready...")
    max_retries = 30

    for attempt in range(1, max_retries + 1):
        if check_db_ready():
            logger.info("Database is ready")
            break
        logger.info(f"Database is unavailable - sleeping (attempt {attempt}/{max_retries})")
        time.sleep(1)
    else:
        logger.error("Database is not ready after maximum retries")
        sys.exit(1)

    try:
        alembic_upgrade_head()
        logger.info("Migrations completed successfully")
        return
    except Exception as e:
        logger.error(f"Alembic upgrade failed: {e}")

    try:
        create_schema_directly()
    except Exception as e:
        logger.error(f"Schema bootstrap failed: {e}")
        sys.exit(1)
    logger.info("Schema bootstrap completed via create_all fallback")


if __name__ == '__main__':
    main()
