"""SQLAlchemy engine and transaction helpers.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. Repository functions receive an open ``Connection`` so
lifecycle transitions and draft edits can compose several statements into
one transaction.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"

_engine: Engine | None = None
_engine_url: str | None = None


def resolve_database_url(url: str | None = None) -> str:
    return url or os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def _engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite") and ":memory:" in url:
        # In-memory SQLite lives in one connection shared by every checkout
        options["poolclass"] = StaticPool
        options["connect_args"] = {"check_same_thread": False}
    return options


def get_engine(url: str | None = None) -> Engine:
    """Return the process-wide Engine, rebuilding it when the URL changes."""
    global _engine, _engine_url
    resolved = resolve_database_url(url)
    if _engine is not None and _engine_url == resolved:
        return _engine
    if _engine is not None:
        _engine.dispose()
    _engine = create_engine(resolved, **_engine_options(resolved))
    _engine_url = resolved
    logger.info("db.engine.created dialect=%s", _engine.dialect.name)
    return _engine


def reset_engine() -> None:
    """Dispose the cached Engine; the next ``get_engine`` call builds a fresh one."""
    global _engine, _engine_url
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _engine_url = None


@contextmanager
def transaction(engine: Engine | None = None) -> Generator[Connection, None, None]:
    """Yield a connection inside ``BEGIN``; commit on success, roll back on error."""
    eng = engine or get_engine()
    with eng.connect() as conn:
        trans = conn.begin()
        try:
            yield conn
            trans.commit()
        except Exception:
            trans.rollback()
            logger.debug("db transaction rolled back", exc_info=True)
            raise


__all__ = ["DEFAULT_DATABASE_URL", "resolve_database_url", "get_engine", "reset_engine", "transaction"]
