"""
Shared fixtures.

DATABASE_URL has to point at a throwaway SQLite file before anything
imports netrate.config, because the engine is created at import time.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="netrate-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["USE_IFLIST_STUB"] = "1"

import pytest  # noqa: E402

from netrate.database import SessionLocal, init_db  # noqa: E402
from netrate.models import InterfaceStat  # noqa: E402
from netrate.normalizer import CounterNormalizer  # noqa: E402
from netrate.store import StatStore  # noqa: E402


@pytest.fixture
def store():
    return StatStore()


@pytest.fixture
def normalizer():
    return CounterNormalizer()


@pytest.fixture
def db():
    """Session on a clean interface_stats table."""
    init_db()
    session = SessionLocal()
    session.query(InterfaceStat).delete()
    session.commit()
    try:
        yield session
    finally:
        session.close()
