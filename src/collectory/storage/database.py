"""Engine, session factory and declarative base."""
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from collectory.config import get_settings


class Base(DeclarativeBase):
    """Declarative base for all collectory tables."""


def make_engine(url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across threads so the API's worker
    threads can use them; in-memory databases use a single static
    connection so every session sees the same data.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        database = make_url(url).database
        if not database or database == ":memory:":
            kwargs["poolclass"] = StaticPool
        else:
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


# --- Session factory (created once) ---
_session_factory: sessionmaker[Session] | None = None


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the global session factory."""
    global _session_factory
    if _session_factory is None:
        engine = make_engine(get_settings().database_url)
        _session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    return _session_factory


def reset_session_factory() -> None:
    """Dispose the global engine (useful for testing)."""
    global _session_factory
    if _session_factory is not None:
        _session_factory.kw["bind"].dispose()
    _session_factory = None


def init_db(session_factory: sessionmaker[Session] | None = None) -> None:
    """Create any missing tables."""
    # Import models so they register with the metadata
    from collectory.storage import models  # noqa: F401

    factory = session_factory or get_session_factory()
    Base.metadata.create_all(factory.kw["bind"])


# --- Dependencies ---
def get_session() -> Generator[Session, None, None]:
    """Provide a SQLAlchemy session (FastAPI dependency)."""
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope(session_factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """Session for scripts, the CLI and tests."""
    db = (session_factory or get_session_factory())()
    try:
        yield db
    finally:
        db.close()
