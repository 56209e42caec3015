"""Engine/session helpers for the SQL backend."""
from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from syncsketch.core.config import get_settings

Base = declarative_base()

_engines: dict[str, Engine] = {}


def _resolve_url(database_url: Optional[str]) -> str:
    url = (database_url or get_settings().database_url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL must be configured to use the SQL backend.")
    return url


def get_engine(database_url: Optional[str] = None) -> Engine:
    """One engine per URL; without a URL the environment's DATABASE_URL is used."""
    url = _resolve_url(database_url)
    engine = _engines.get(url)
    if engine is None:
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine = create_engine(url, future=True, pool_pre_ping=True, connect_args=connect_args)
        _engines[url] = engine
    return engine


@lru_cache
def _get_sessionmaker(url: str):
    # Entities are handed back to services after the session closes.
    return sessionmaker(bind=get_engine(url), autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@contextmanager
def get_session(database_url: Optional[str] = None) -> Iterator[Session]:
    session: Session = _get_sessionmaker(_resolve_url(database_url))()
    try:
        yield session
    finally:
        session.close()


def reset_engine() -> None:
    """Dispose every cached engine so the next call re-reads DATABASE_URL."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _get_sessionmaker.cache_clear()
