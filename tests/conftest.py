"""Root conftest — shared test configuration and store fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Process settings never point at a real database file during tests
"""

import os

import pytest

from crudstore.infrastructure.database import DatabaseSessionManager
from crudstore.infrastructure.document_store import SqlDocumentStore

# Ensure tests don't accidentally write crudstore.db into the working tree
os.environ.setdefault("CRUDSTORE_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def db_manager():
    manager = DatabaseSessionManager(MEMORY_URL)
    await manager.create_schema()
    yield manager
    await manager.dispose()


@pytest.fixture
async def store(db_manager):
    return SqlDocumentStore(db_manager, "people")
