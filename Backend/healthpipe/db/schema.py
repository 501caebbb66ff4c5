import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

import healthpipe.db.models  # noqa: F401  registers every table on Base.metadata
from healthpipe.db.base import Base

logger = logging.getLogger(__name__)

# Parent first; drop walks it backwards.
TABLE_ORDER = (
    "health_records",
    "fitness_metrics",
    "health_vitals",
    "sleep_sessions",
    "habits",
    "symptoms",
    "medications",
    "location_data",
)


def _tables():
    return [Base.metadata.tables[name] for name in TABLE_ORDER]


def create_tables(engine: Engine) -> None:
    """Create any missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(bind=engine, tables=_tables(), checkfirst=True)
    logger.info(f"Schema ready ({len(TABLE_ORDER)} tables)")


def drop_tables(engine: Engine) -> None:
    for table in reversed(_tables()):
        table.drop(bind=engine, checkfirst=True)
    logger.info("Dropped all health data tables")


def database_exists(engine: Engine) -> bool:
    """True when the parent table is present."""
    return inspect(engine).has_table(TABLE_ORDER[0])
