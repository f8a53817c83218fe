import logging
import re
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import bindparam, create_engine, event, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql.elements import TextClause

from uniform.core.config import get_settings
from uniform.db.tables import metadata

logger = logging.getLogger(__name__)

settings = get_settings()


def _engine_options(url: str) -> dict:
    """
    Per-backend engine options.

    PostgreSQL gets a connection pool and a server-side statement_timeout, so a
    stuck query surfaces as an error (and a rollback) instead of hanging the
    request. SQLite only gets a busy timeout.
    """
    timeout_ms = settings.db_statement_timeout_ms
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False, "timeout": timeout_ms / 1000},
        }
    return {
        # pool_size=5: maintain 5 connections ready
        # max_overflow=10: allow 10 extra connections under load
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
        "connect_args": {"options": f"-c statement_timeout={timeout_ms}"},
    }


engine = create_engine(
    settings.sqlalchemy_url,
    echo=settings.debug,  # Log SQL queries in debug mode
    **_engine_options(settings.sqlalchemy_url)
)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys = ON")
        cursor.close()
        logger.debug("Enabled foreign keys on SQLite connection")

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Every write runs in one transaction: committed on success, rolled back on
    any exception.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM students"))
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def typed_text(sql: str, **bind_types) -> TextClause:
    """
    text() with typed bind parameters.

    Dates and datetimes must go through their SQLAlchemy type so they are
    stored the same way on PostgreSQL and SQLite. Names that do not appear in
    the statement are ignored, so callers building SQL conditionally can
    always pass the full set.
        typed_text("UPDATE applications SET reviewed_at = :now", now=DateTime)
    """
    clause = text(sql)
    typed = [
        bindparam(name, type_=type_)
        for name, type_ in bind_types.items()
        if re.search(rf"(?<![:\w]):{name}\b", sql)
    ]
    if typed:
        clause = clause.bindparams(*typed)
    return clause


def is_postgres(db) -> bool:
    return db.get_bind().dialect.name == "postgresql"


def execute_raw_sql(sql, params: Optional[dict] = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    Accepts a plain string or a clause built with typed_text().
    """
    statement = text(sql) if isinstance(sql, str) else sql
    with get_db_session() as db:
        result = db.execute(statement, params or {})
        # Convert rows to dicts
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_all(db, sql, params: Optional[dict] = None) -> list:
    """Same as execute_raw_sql() but inside an existing session/transaction."""
    statement = text(sql) if isinstance(sql, str) else sql
    result = db.execute(statement, params or {})
    columns = result.keys()
    return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(db, sql, params: Optional[dict] = None) -> Optional[dict]:
    rows = fetch_all(db, sql, params)
    return rows[0] if rows else None


def init_db() -> None:
    """Create any missing tables. Safe to call on every startup."""
    metadata.create_all(engine)
    logger.info("Database schema ready (%s)", engine.dialect.name)


def test_database_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception:
        logger.exception("Database connection failed")
        return False
