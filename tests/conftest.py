"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from rolelink.config import RoleLinkConfig
from rolelink.database.models import Base
from rolelink.database.store import MemoryStore

# Long enough that PyJWT never warns about a short HMAC key.
TEST_CLIENT_SECRET = "test-client-secret-for-pytest-only-" + "x" * 32


def make_config(**overrides) -> RoleLinkConfig:
    """Build a config for tests.  Usable as both a fixture and a factory."""
    cfg = RoleLinkConfig(
        client_id="1234567890",
        client_secret=TEST_CLIENT_SECRET,
        bot_token="bot-token",
        app_id="1234567890",
        base_url="https://rolelink.test",
    )
    return replace(cfg, **overrides) if overrides else cfg


def run_async(coro):
    """Run an async coroutine to completion without pytest-asyncio."""
    return asyncio.run(coro)


@pytest.fixture
def cfg() -> RoleLinkConfig:
    return make_config()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all RoleLink tables.

    StaticPool keeps one connection so worker threads from ``run_db``
    see the same database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine
