#!/usr/bin/env python3
"""
Seed the request_types table from config/request_types.yaml.
Safe to run repeatedly: names already in the table are left alone.

Usage:
  python scripts/seed_request_types.py [path/to/request_types.yaml]
"""

import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fmx_pm.core.settings import Settings
from fmx_pm.db.session import create_engine_and_sessionmaker
from fmx_pm.services.request_type_service import RequestTypeService, load_request_type_names

logger = logging.getLogger("fmx_pm.scripts.seed_request_types")


def seed_request_types(path: str | None = None) -> int:
    settings = Settings()
    seed_file = Path(path or settings.request_types_file)
    names = load_request_type_names(seed_file)
    if not names:
        logger.warning("No request types listed in %s", seed_file)
        return 0

    db_runtime = create_engine_and_sessionmaker(settings.database_url, echo=settings.db_echo)
    try:
        with db_runtime.SessionLocal() as db:
            added = RequestTypeService().ensure_request_types(db, names)
    finally:
        db_runtime.engine.dispose()

    logger.info("Request types: %s listed, %s added, %s already present", len(names), added, len(names) - added)
    return added


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    seed_request_types(sys.argv[1] if len(sys.argv) > 1 else None)
