"""Service test fixtures — RecordService instances over the in-memory store.

Invariants:
    - Each fixture builds its service over the per-test store (tests/conftest.py)
    - recording wraps the same store, so seeded data is visible through it

Design Decisions:
    - make_service factory instead of one fixture per option combination:
      tests state the options they exercise inline
"""

import pytest

from crudstore.services.record_service import RecordService
from tests.services.fake_stores import RecordingStore

PERSON_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "age": {"type": "integer", "minimum": 0},
        "email": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["name"],
    "additionalProperties": False,
}

PEOPLE = [
    {"name": "Alice", "age": 31, "team": "red"},
    {"name": "Bob", "age": 25, "team": "blue"},
    {"name": "Carol", "age": 42, "team": "red"},
    {"name": "Dave", "age": 19, "team": "green"},
    {"name": "Erin", "age": 25, "team": "red"},
]


@pytest.fixture
def make_service(store):
    def _make(**options):
        return RecordService({"model": store, **options})
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
async def people(service):
    """Seed the collection with five people."""
    return await service.create([dict(p) for p in PEOPLE])


@pytest.fixture
def recording(store):
    return RecordingStore(store)
