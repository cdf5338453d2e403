"""SQLite engine and session factory for the holdings database."""

from typing import Optional

from sqlalchemy import create_engine, Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from fundsync.config.settings import Settings, get_settings

Base = declarative_base()

# Process-wide engine; reset_database() drops it so tests can repoint it
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine(settings: Optional[Settings] = None) -> Engine:
    """Get or create the engine for the configured database URL."""
    global _engine
    if _engine is None:
        url = (settings or get_settings()).get_database_url()
        # Refresh and API worker threads share the file
        _engine = create_engine(url, connect_args={"check_same_thread": False}, echo=False)
    return _engine


def get_session_factory(settings: Optional[Settings] = None) -> sessionmaker:
    """Get or create the session factory bound to get_engine()."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=get_engine(settings),
        )
    return _session_factory


def init_db(settings: Optional[Settings] = None) -> Engine:
    """Create any missing tables and return the engine."""
    from fundsync.repositories.sqlalchemy import orm_models  # noqa: F401

    engine = get_engine(settings)
    Base.metadata.create_all(bind=engine)
    return engine


def reset_database() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
