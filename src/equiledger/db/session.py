"""Engine and session management."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager

import structlog
from fastapi import Request
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from equiledger.config import get_settings
from equiledger.db.models import Base

logger = structlog.get_logger(__name__)

SessionFactory = Callable[[], Session]

_engine: Engine | None = None
_sessionmaker: sessionmaker[Session] | None = None


def init_engine(url: str | None = None, **kwargs) -> Engine:
    """Create the global engine and session factory.

    In-memory SQLite URLs get a StaticPool so every session sees the same
    database.
    """
    global _engine, _sessionmaker

    url = url or get_settings().database_url
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if ":memory:" in url or url == "sqlite://":
            kwargs.setdefault("poolclass", StaticPool)

    _engine = create_engine(url, **kwargs)
    _sessionmaker = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("engine_initialized", dialect=_engine.dialect.name)
    return _engine


def get_engine() -> Engine:
    return _engine or init_engine()


def get_sessionmaker() -> sessionmaker[Session]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _sessionmaker


def init_db(engine: Engine | None = None) -> None:
    """Create all tables that do not exist yet."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)
    logger.info("database_initialized")


@contextmanager
def session_scope(factory: SessionFactory | None = None) -> Iterator[Session]:
    """Provide a transactional scope: commit on success, rollback on error."""
    session = (factory or get_sessionmaker())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_session(request: Request) -> Iterator[Session]:
    """FastAPI dependency: a session from the app's factory for one request."""
    with session_scope(request.app.state.session_factory) as session:
        yield session
