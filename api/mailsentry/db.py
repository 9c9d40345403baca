import sqlite3
from typing import Dict, Iterator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .config import DATABASE_URL

# pool_pre_ping avoids stale connections when the DB is restarted.
engine = create_engine(DATABASE_URL, pool_pre_ping=True)

SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

# Tables the API reads and writes; a missing one means migrations have not run.
REQUIRED_TABLES = ("monitored_addresses", "email_scans", "quarantine_events")


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE CASCADE unless foreign keys are switched on.
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_session() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    with SessionLocal() as session:
        yield session


def db_health(session: Session) -> Dict[str, object]:
    """
    Connectivity and schema check for /health.

    ``db`` is False when the database cannot be reached; ``tables`` maps each
    required table to whether it exists.
    """
    try:
        conn = session.connection()
        conn.execute(text("SELECT 1"))
        inspector = inspect(conn)
        tables = {name: inspector.has_table(name) for name in REQUIRED_TABLES}
    except SQLAlchemyError:
        session.rollback()
        return {"db": False, "tables": {name: False for name in REQUIRED_TABLES}}
    return {"db": True, "tables": tables}
