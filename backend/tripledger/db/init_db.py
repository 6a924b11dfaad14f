"""
Create every table on the configured database.

Usage: ``python -m tripledger.db.init_db``
"""
import logging

from tripledger.core.config import settings
from tripledger.db.base import Base
from tripledger.db.session import init_db

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info("Creating tables on %s", settings.DATABASE_URL.split("@")[-1])
    init_db()
    logger.info("Created %s tables: %s", len(Base.metadata.tables), ", ".join(sorted(Base.metadata.tables)))
