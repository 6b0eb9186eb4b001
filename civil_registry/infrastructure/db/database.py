"""
Database connection management.

Supports:
  - SQLite (local dev and tests, no setup)
  - PostgreSQL (production)

Connection string comes from the DATABASE_URL setting.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session

from civil_registry.config.settings import get_settings
from civil_registry.infrastructure.db.models import Base

logger = logging.getLogger(__name__)


def get_database_url() -> str:
    """Get database URL from settings."""
    return get_settings().database_url


def create_db_engine(url: str = None):
    """Create SQLAlchemy engine."""
    db_url = url or get_database_url()

    if db_url.startswith("sqlite"):
        engine = create_engine(
            db_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        # PostgreSQL
        engine = create_engine(
            db_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            echo=False,
        )

    return engine


# ── Global engine & session factory ──
_engine = None
_SessionFactory = None


def get_engine():
    """Get or create the global engine."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory():
    """Get or create the session factory."""
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _SessionFactory


def init_db():
    """Create all tables. Safe to call multiple times."""
    engine = get_engine()
    db_url = get_database_url()
    Base.metadata.create_all(engine)
    logger.info(f"Database initialized: {db_url.split('@')[-1] if '@' in db_url else db_url}")


def dispose_db():
    """Drop the global engine so the next call rebuilds it from current settings."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


# ── Transaction hooks ──
AFTER_COMMIT = "after_commit"
AFTER_ROLLBACK = "after_rollback"


def after_commit(session: Session, callback: Callable[[], object]):
    """Run `callback` once the scope's transaction has committed."""
    session.info.setdefault(AFTER_COMMIT, []).append(callback)


def after_rollback(session: Session, callback: Callable[[], object]):
    """Run `callback` if the scope's transaction is rolled back (compensation)."""
    session.info.setdefault(AFTER_ROLLBACK, []).append(callback)


def _run_hooks(session: Session, kind: str):
    # The transaction outcome is final here; a failing hook is logged, not raised.
    for callback in session.info.pop(kind, []):
        try:
            callback()
        except Exception:
            logger.exception(f"{kind} hook {getattr(callback, '__name__', callback)} failed")


@contextmanager
def get_db() -> Iterator[Session]:
    """Transactional scope: commit on success, roll back on any exception."""
    factory = get_session_factory()
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        session.info.pop(AFTER_COMMIT, None)
        _run_hooks(session, AFTER_ROLLBACK)
        raise
    else:
        session.info.pop(AFTER_ROLLBACK, None)
        _run_hooks(session, AFTER_COMMIT)
    finally:
        session.close()
