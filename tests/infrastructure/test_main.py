"""Bootstrap tests — build_service wiring from settings.

Tests cover:
    - Service built over a fresh database with schema created
    - Pagination defaults taken from settings, overridable per service
    - Services for different collections share one session manager
"""

import logging

import pytest

import crudstore.infrastructure.database as db_module
from crudstore.config import Settings
from crudstore.core.domain_types import Page
from crudstore.main import build_service


@pytest.fixture
async def settings(monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)
    yield Settings(
        _env_file=None, database_url="sqlite+aiosqlite:///:memory:",
        paginate_default=2, paginate_max=10, log_level="WARNING",
    )
    if db_module.db_manager is not None:
        await db_module.db_manager.dispose()
    package_logger = logging.getLogger("crudstore")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)


async def test_build_service_uses_settings_pagination(settings):
    service = await build_service("notes", settings)
    await service.create([{"n": i} for i in range(3)])

    page = await service.find()

    assert isinstance(page, Page)
    assert page.total == 3
    assert page.limit == 2


async def test_options_override_settings(settings):
    service = await build_service("notes", settings, paginate=False, id="key")

    created = await service.create({"text": "hello"})

    assert isinstance(await service.find(), list)
    assert created["key"]


async def test_schema_option_attaches_to_store(settings):
    service = await build_service(
        "typed", settings, schema={"type": "object", "required": ["n"]},
    )
    assert service.model.schema == {"type": "object", "required": ["n"]}
    assert service.validate_create is not None


async def test_collections_share_session_manager(settings):
    notes = await build_service("notes", settings)
    tasks = await build_service("tasks", settings)

    await notes.create({"n": 1})

    assert notes.model._db is tasks.model._db
    assert (await tasks.find()).total == 0
