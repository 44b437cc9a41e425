"""RecordService update/remove — full replacement and deletion.

Tests cover:
    - update rejects list payloads and id=None without touching the store
    - update replaces the whole record, keeping (or reinstating) its identifier
    - update with store upsert creates a missing record; without, NotFoundError
    - update validates against the full schema
    - remove returns the exact pre-deletion content; later get raises NotFoundError
    - multi remove deletes only the snapshot; empty snapshot skips the store
"""

import pytest

from crudstore.core.errors import BadRequestError, NotFoundError, RecordValidationError
from crudstore.services.record_service import RecordService
from tests.services.conftest import PERSON_SCHEMA


# --- update -------------------------------------------------------------------

async def test_update_rejects_list_payload_without_store_calls(recording):
    service = RecordService({"model": recording})

    with pytest.raises(BadRequestError) as exc:
        await service.update("some-id", [{"name": "A"}])

    assert "Did you mean `patch`?" in exc.value.message
    assert recording.calls == []


async def test_update_rejects_missing_id_without_store_calls(recording):
    service = RecordService({"model": recording})

    with pytest.raises(BadRequestError):
        await service.update(None, {"name": "A"})

    assert recording.calls == []


async def test_update_replaces_whole_record(service, people):
    alice = people[0]

    updated = await service.update(alice["_id"], {"name": "Alicia", "_id": "ignored"})

    assert updated == {"_id": alice["_id"], "name": "Alicia"}
    assert await service.get(alice["_id"]) == updated


async def test_update_reinstates_custom_identifier(make_service):
    service = make_service(id="uuid")
    await service.create({"uuid": "u-1", "name": "Ann", "age": 3})

    updated = await service.update("u-1", {"uuid": "u-9", "name": "Anne"})

    assert updated["uuid"] == "u-1"
    assert updated["name"] == "Anne"
    assert "age" not in updated


async def test_update_missing_id_raises_not_found(service, people):
    with pytest.raises(NotFoundError):
        await service.update("nope", {"name": "Ghost"})
    assert len(await service.find()) == 5


async def test_update_with_upsert_creates_record(service):
    created = await service.update(
        "fixed-id", {"name": "New"}, {"store": {"upsert": True}},
    )

    assert created == {"_id": "fixed-id", "name": "New"}
    assert await service.get("fixed-id") == created


async def test_update_stamps_updated_timestamp(make_service):
    service = make_service(addTimestamps=True)
    created = await service.create({"name": "Ann"})

    updated = await service.update(created["_id"], {"name": "Anne"})

    assert updated["updatedAt"] >= created["updatedAt"]


async def test_update_validates_against_full_schema(make_service):
    service = make_service(schema=PERSON_SCHEMA)
    created = await service.create({"name": "Ann", "age": 3})

    with pytest.raises(RecordValidationError) as exc:
        await service.update(created["_id"], {"age": 4})

    assert "'name' is a required property" in exc.value.message
    assert await service.get(created["_id"]) == created


# --- remove -------------------------------------------------------------------

async def test_remove_returns_pre_deletion_record(service, people):
    carol = people[2]

    removed = await service.remove(carol["_id"])

    assert removed == carol
    with pytest.raises(NotFoundError):
        await service.get(carol["_id"])


async def test_remove_missing_raises_not_found(service, people):
    with pytest.raises(NotFoundError):
        await service.remove("nope")
    assert len(await service.find()) == 5


async def test_multi_remove_deletes_only_matches(service, people):
    removed = await service.remove(None, {"query": {"team": "red"}})

    assert sorted(r["name"] for r in removed) == ["Alice", "Carol", "Erin"]
    remaining = await service.find()
    assert sorted(r["name"] for r in remaining) == ["Bob", "Dave"]


async def test_multi_remove_with_no_matches_skips_store(store, recording, people):
    service = RecordService({"model": recording})

    assert await service.remove(None, {"query": {"team": "none"}}) == []
    assert "remove" not in recording.methods


async def test_remove_applies_select(service, people):
    removed = await service.remove(people[3]["_id"], {"query": {"$select": ["name"]}})
    assert removed == {"_id": people[3]["_id"], "name": "Dave"}
