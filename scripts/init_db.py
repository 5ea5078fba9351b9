#!/usr/bin/env python3
"""
Apply artpulse/data/schema.sql to the configured PostgreSQL database.

The schema is idempotent (CREATE ... IF NOT EXISTS / CREATE OR REPLACE),
so this is safe to re-run after every deploy.

Usage:
    python scripts/init_db.py
"""

import logging
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from artpulse.data.config import get_settings
from artpulse.data.postgres_store import PostgresStore
from artpulse.exceptions import StoreError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("artpulse.init_db")


def main():
    settings = get_settings()
    db = settings.database
    logger.info(f"Applying schema to {db.host}:{db.port}/{db.name}")

    try:
        with PostgresStore(settings=settings) as store:
            store.ensure_schema()
            health = store.health_check()
    except StoreError as e:
        logger.error(f"Schema initialization failed: {e}")
        return 1

    logger.info(f"Database status: {health['status']}")
    return 0 if health["status"] == "healthy" else 1


if __name__ == "__main__":
    sys.exit(main())
