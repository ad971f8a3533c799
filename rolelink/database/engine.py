"""
rolelink.database.engine — Database Connection & Async Helper
==============================================================

Store operations are **synchronous** (file rewrites, SQLAlchemy sessions).
The bot and the web app live on one ``asyncio`` loop, so every store call
made from async code goes through :func:`run_db`, which ships it to a
worker thread via ``asyncio.to_thread()`` and keeps the loop free.

Usage::

    from rolelink.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine(cfg.database_url)
    init_db(engine)

    # Inside an async handler:
    cred = await run_db(store.get_credential, user_id)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from rolelink.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str) -> Engine:
    """Build a SQLAlchemy :class:`Engine` for *url*.

    The pool is small — this is a single-process bot with a handful of
    concurrent writes at most.
    """
    if url.startswith("sqlite"):
        engine = create_engine(url, echo=False)
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,   # Reconnect stale connections automatically
            pool_timeout=10,
            pool_recycle=3600,
        )
    logger.info("Database engine created → %s", engine.url.render_as_string(hide_password=True))
    return engine


def init_db(engine: Engine) -> None:
    """Create all tables defined in :mod:`rolelink.database.models` (idempotent)."""
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back on error."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** store function on a background thread.

    Every store call made from a cog, the sync service or a route should go
    through this wrapper::

        mapping = await run_db(store.get_mapping, guild_id, role_id)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
