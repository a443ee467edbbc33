"""Local backend: key layout, corruption handling and file persistence."""

import json
import logging
from datetime import datetime, timezone

import pytest

from warranty_hub.domain.schemas import ContractCreate, Employee
from warranty_hub.infra.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore
from warranty_hub.infra.local_store import LocalRecordStore, storage_key
from warranty_hub.infra.repositories import build_local_repositories

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _employee(employee_id: str, minute: int = 0) -> Employee:
    return Employee(
        id=employee_id,
        dealer_id="dealer-1",
        name=f"Employee {employee_id}",
        email=f"{employee_id}@example.com",
        created_at=NOW.replace(minute=minute),
    )


@pytest.fixture
def store(kv):
    return LocalRecordStore(kv, "employees", Employee)


class TestKeys:
    def test_storage_key(self):
        assert storage_key("contracts") == "warrantyhub.local.contracts"

    @pytest.mark.asyncio
    async def test_records_stored_as_json_array(self, kv, store):
        await store.insert(_employee("e1"))
        raw = json.loads(kv.get("warrantyhub.local.employees"))
        assert isinstance(raw, list)
        assert raw[0]["id"] == "e1"
        assert raw[0]["created_at"].startswith("2026-01-01T00:00:00")


class TestCorruption:
    @pytest.mark.asyncio
    async def test_corrupt_collection_reads_as_empty(self, kv, store, caplog):
        kv.set(storage_key("employees"), "{not json")
        with caplog.at_level(logging.WARNING):
            assert await store.list() == []
        assert "Corrupt local collection" in caplog.text

    @pytest.mark.asyncio
    async def test_non_list_reads_as_empty(self, kv, store):
        kv.set(storage_key("employees"), json.dumps({"id": "e1"}))
        assert await store.list() == []

    @pytest.mark.asyncio
    async def test_invalid_records_dropped(self, kv, store):
        good = _employee("e1").to_storage("json")
        kv.set(storage_key("employees"), json.dumps([good, {"id": "broken"}]))
        assert [e.id for e in await store.list()] == ["e1"]

    @pytest.mark.asyncio
    async def test_corrupt_contracts_do_not_break_repositories(self, kv):
        kv.set(storage_key("contracts"), "]]]")
        repos = build_local_repositories(kv)
        assert await repos.contracts.list() == []


class TestStoreOperations:
    @pytest.mark.asyncio
    async def test_list_newest_first_and_filtered(self, store):
        await store.insert(_employee("old", minute=1))
        await store.insert(_employee("new", minute=2))
        assert [e.id for e in await store.list()] == ["new", "old"]
        assert [e.id for e in await store.list(id="old")] == ["old"]

    @pytest.mark.asyncio
    async def test_replace_updates_in_place(self, store):
        await store.insert(_employee("e1"))
        await store.replace(_employee("e1").model_copy(update={"name": "Renamed"}))
        assert (await store.get("e1")).name == "Renamed"
        assert len(await store.list()) == 1

    @pytest.mark.asyncio
    async def test_replace_inserts_missing(self, store):
        await store.replace(_employee("e1"))
        assert (await store.get("e1")).id == "e1"

    @pytest.mark.asyncio
    async def test_delete(self, store):
        await store.insert(_employee("e1"))
        await store.delete("e1")
        await store.delete("missing")
        assert await store.list() == []


class TestJsonFileStore:
    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "store.json"
        JsonFileKeyValueStore(path).set("k", "v")
        assert JsonFileKeyValueStore(path).get("k") == "v"

    def test_unreadable_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("garbage", encoding="utf-8")
        assert JsonFileKeyValueStore(path).get("k") is None

    @pytest.mark.asyncio
    async def test_repositories_over_file(self, tmp_path, dealer):
        path = tmp_path / "store.json"
        repos = build_local_repositories(JsonFileKeyValueStore(path))
        contract = await repos.contracts.create(ContractCreate(contract_number="C-1"), dealer)

        reopened = build_local_repositories(JsonFileKeyValueStore(path))
        assert (await reopened.contracts.require(contract.id)).contract_number == "C-1"


class TestInMemoryStore:
    def test_initial_values(self):
        kv = InMemoryKeyValueStore({"a": "1"})
        assert kv.get("a") == "1"
        assert kv.get("b") is None
