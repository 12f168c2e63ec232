"""Database engine and session utilities.

Engines and session factories are created on demand and handed to callers;
nothing is cached at module level.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import AppSettings


def create_engine_from_settings(settings: AppSettings) -> Engine:
    """Build a synchronous engine for ``settings.database_url``."""

    url = settings.database_url
    kwargs: dict = {"echo": settings.database_echo, "future": True}
    in_memory = ":memory:" in url or url in {"sqlite://", "sqlite+pysqlite://"}
    if url.startswith("sqlite") and in_memory:
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Yield a session that is always closed afterwards."""

    session = factory()
    try:
        yield session
    finally:
        session.close()


__all__ = ["create_engine_from_settings", "create_session_factory", "session_scope"]
