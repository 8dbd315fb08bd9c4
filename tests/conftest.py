"""
Shared fixtures for the NGO ledger test suite.
"""

import tempfile

import pytest
import pytest_asyncio

from chaincode.ngo_ledger.store.memory import InMemoryStateStore
from chaincode.ngo_ledger.store.sqlite import SqliteStateStore


@pytest.fixture
def data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(request, data_dir):
    """Connected store, once per backend."""
    if request.param == "memory":
        s = InMemoryStateStore()
    else:
        s = SqliteStateStore(data_dir, wal_mode=False)
    await s.connect()
    yield s
    await s.close()
