"""
Engine and session handling for Factory Ledger.

The host application calls configure_database() once at startup and
dispose_database() on shutdown. Service functions open their own transaction
through session_scope(), or join the caller's when handed a session.

SQLite is the default store. Every SQLite connection gets
``PRAGMA foreign_keys=ON`` so the ledger cannot reference a missing product.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, close_all_sessions, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.base import Base
from ..utils.config import get_config

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_database_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Build an engine for ``database_url`` (default: the configured URL).

    In-memory SQLite shares a single connection so every session sees the
    same database; file-backed SQLite waits up to 30s on a locked file.
    """
    url = make_url(database_url or get_config().database_url)
    options = {"echo": echo}

    if url.get_backend_name() == "sqlite":
        connect_args = {"check_same_thread": False}
        if url.database in (None, "", ":memory:"):
            options["poolclass"] = StaticPool
        else:
            connect_args["timeout"] = 30
        options["connect_args"] = connect_args
    else:
        options["pool_pre_ping"] = True

    logger.info(f"Creating database engine: {url.render_as_string(hide_password=True)}")
    return create_engine(url, **options)


def configure_database(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """
    Point the service layer at a database and create any missing tables.

    Replaces a previously configured engine. Without ``database_url`` the
    configured location is used, creating its directory if needed.

    Returns:
        The new engine
    """
    global _engine, _SessionFactory

    if database_url is None:
        config = get_config()
        if not config.database_exists():
            config.ensure_directories()
            logger.info(f"Creating new database at: {config.database_path}")

    dispose_database()

    engine = create_database_engine(database_url, echo=echo)

    # Models must be imported before create_all() sees their tables
    from .. import models  # noqa: F401

    Base.metadata.create_all(engine)

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)
    return engine


def get_engine() -> Engine:
    """The configured engine, configuring the default database on first use."""
    if _engine is None:
        configure_database()
    return _engine


def get_session_factory() -> sessionmaker:
    """The session factory bound to the configured engine."""
    if _SessionFactory is None:
        configure_database()
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope():
    """
    Run the enclosed work as one transaction.

    Commits when the block finishes, rolls back if it raises, and closes the
    session either way.

    Example:
        with session_scope() as session:
            session.add(Product(name="Chili Oil", warehouse="finished"))
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


def dispose_database() -> None:
    """Close open sessions and release the engine's connections."""
    global _engine, _SessionFactory

    if _SessionFactory is not None:
        close_all_sessions()
    if _engine is not None:
        _engine.dispose()
        logger.info("Database connections closed")

    _engine = None
    _SessionFactory = None
