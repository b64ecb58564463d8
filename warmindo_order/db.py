"""
Database connection management.

The storefront database is the Postgres instance behind the Supabase
project; any SQLAlchemy URL works for development and tests. The schema is
owned by the managed project (or created by init_db for local databases),
so nothing here creates tables.

The engine is built on first use, which lets the app and the tests import
everything without DATABASE_URL set.

Environment variables:
    - DATABASE_URL: SQLAlchemy connection URL (required once a query runs)
"""

import logging
import threading
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from . import config

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None
_lock = threading.Lock()


def build_engine(url: Optional[str] = None) -> Engine:
    """
    Create an engine for ``url`` (default: DATABASE_URL).

    SQLite connections are shared across FastAPI's worker threads, so they
    are opened with ``check_same_thread=False``.
    """
    url = url or config.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL environment variable is required")

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, pool_pre_ping=True, echo=False, connect_args=connect_args)
    logger.info("Database engine created (%s)", engine.dialect.name)
    return engine


def get_engine() -> Engine:
    global _engine
    with _lock:
        if _engine is None:
            _engine = build_engine()
        return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    engine = get_engine()
    with _lock:
        if _session_factory is None:
            _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
        return _session_factory
