"""
Database connection and session management for the Recipe Catalog.

This module provides:
- Database engine creation and configuration
- Session factory for database operations
- session_scope(): the unit of work every mutating service runs inside
- Database initialization (create tables)
- Foreign key enforcement for SQLite
"""

import logging
import sqlite3
from contextlib import contextmanager, nullcontext
from typing import Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from recipe_catalog.models.base import Base
from recipe_catalog.utils.config import get_config

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


@event.listens_for(Engine, "connect")
def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Set SQLite pragmas on connection.

    Enables foreign key constraints so line and rating cascades are enforced
    by the database as well as the ORM. Other drivers are left untouched.
    """
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return

    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Create and configure the database engine.

    Args:
        database_url: Optional database URL. If None, uses config default.
        echo: If True, log all SQL statements (useful for debugging)

    Returns:
        Configured SQLAlchemy Engine
    """
    if database_url is None:
        config = get_config()
        config.ensure_directories()
        database_url = config.database_url

    logger.info(f"Creating database engine: {database_url}")

    if ":memory:" in database_url or "mode=memory" in database_url:
        # In-memory databases must share one connection
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )

    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def init_database(engine: Optional[Engine] = None) -> None:
    """
    Initialize the database by creating all tables.

    Safe to call multiple times - existing tables won't be recreated.

    Args:
        engine: Optional engine to use. If None, uses global engine.
    """
    if engine is None:
        engine = get_engine()

    logger.info("Initializing database tables")

    # Register every model with Base before create_all
    from recipe_catalog import models  # noqa: F401

    Base.metadata.create_all(engine)

    logger.info("Database tables initialized successfully")


def get_engine(force_recreate: bool = False) -> Engine:
    """
    Get the global database engine (created on first use).

    Args:
        force_recreate: If True, recreate the engine even if one exists

    Returns:
        Database engine
    """
    global _engine

    if _engine is None or force_recreate:
        _engine = create_database_engine()

    return _engine


def get_session_factory() -> sessionmaker:
    """
    Get the global session factory.

    Returns:
        Session factory (sessionmaker)
    """
    global _SessionFactory

    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=get_engine(), expire_on_commit=False)

    return _SessionFactory


def get_session() -> Session:
    """
    Create a new database session.

    Prefer session_scope(), which owns commit/rollback/close.
    """
    session_factory = get_session_factory()
    return session_factory()


@contextmanager
def session_scope():
    """
    Provide a transactional scope for database operations.

    This context manager is the unit of work for the catalog:
    - Creates a new session
    - Commits on success
    - Rolls back on any exception, so a detail-row change and the aggregate
      recomputation it triggered succeed or fail together
    - Always closes the session

    Yields:
        Database session

    Example:
        with session_scope() as session:
            recipe = session.get(Recipe, recipe_id)
            ...
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def scope_for(session: Optional[Session] = None):
    """
    Return a context manager yielding a session for a service call.

    Joins the caller's unit of work when a session is passed; otherwise
    opens a new session_scope().
    """
    return nullcontext(session) if session is not None else session_scope()


def verify_database() -> bool:
    """
    Verify that the database is accessible and has the core tables.

    Returns:
        True if database is valid, False otherwise
    """
    try:
        inspector = inspect(get_engine())
        tables = inspector.get_table_names()
        return all(table in tables for table in ("recipes", "ingredients"))
    except Exception as e:
        logger.error(f"Database verification failed: {e}")
        return False


def initialize_app_database() -> None:
    """
    Initialize the application database.

    Creates the database and tables if they don't exist, then verifies them.
    """
    config = get_config()

    if not config.database_exists():
        logger.info(f"Creating new database at: {config.database_url}")
    else:
        logger.info(f"Using existing database at: {config.database_url}")

    init_database(get_engine())

    if verify_database():
        logger.info("Database initialized and verified successfully")
    else:
        logger.warning("Database verification failed - tables may not exist")


def reset_database(confirm: bool = False) -> None:
    """
    Drop all tables and recreate the database.

    WARNING: This will delete all data!

    Args:
        confirm: Must be True to actually reset. Safety check.

    Raises:
        ValueError: If confirm is not True
    """
    if not confirm:
        raise ValueError("Must pass confirm=True to reset database. This will delete all data!")

    engine = get_engine()
    logger.warning("Resetting database - all data will be deleted")
    Base.metadata.drop_all(engine)
    init_database(engine)
