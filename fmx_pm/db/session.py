from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 5


@dataclass(frozen=True)
class DBRuntime:
    engine: Engine
    SessionLocal: sessionmaker


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:  # pragma: no cover
    cursor = dbapi_connection.cursor()
    try:
        # RESTRICT/CASCADE rules on assignments and template links rely on this.
        cursor.execute("PRAGMA foreign_keys=ON")
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        except sqlite3.OperationalError as exc:
            logger.debug("SQLite WAL pragma not applied: %s", exc)
    finally:
        cursor.close()


def create_engine_and_sessionmaker(database_url: str, *, echo: bool = False) -> DBRuntime:
    """Engine and session factory for the PM database.

    SQLite files get one connection per checkout and have foreign keys
    switched on for every connection. Other backends use SQLAlchemy's
    default pool.
    """
    if not database_url.startswith("sqlite"):
        engine = create_engine(database_url, echo=echo, future=True, pool_pre_ping=True)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            future=True,
            poolclass=NullPool,
            connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT_SECONDS},
        )
        event.listen(engine, "connect", _apply_sqlite_pragmas)

    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return DBRuntime(engine=engine, SessionLocal=SessionLocal)
