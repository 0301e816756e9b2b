"""Tests for the data store and the bundled databases."""

import json

import pytest

from speedtracker.errors import StorageError
from speedtracker.storage.datastore import Database, DataStore
from speedtracker.storage.json_file import JsonFileDatabase
from speedtracker.storage.memory import InMemoryDatabase
from speedtracker.transformer import build_result_record


class FailingDatabase(InMemoryDatabase):
    def __init__(self, fail_on: str):
        super().__init__()
        self.fail_on = fail_on

    async def connect(self) -> None:
        await super().connect()
        if self.fail_on == "connect":
            raise ConnectionError("connection refused")

    async def insert(self, collection, results):
        if self.fail_on == "insert":
            raise RuntimeError("disk full")
        await super().insert(collection, results)

    async def get(self, collection, timestamp_from=None, timestamp_to=None):
        if self.fail_on == "get":
            raise RuntimeError("query failed")
        return await super().get(collection, timestamp_from, timestamp_to)


@pytest.fixture
def records(make_wpt_result):
    return [
        build_result_record(make_wpt_result(f"test_{ts}", ts))
        for ts in (30, 10, 20)
    ]


class TestDatabaseProtocol:

    def test_bundled_databases_satisfy_protocol(self, tmp_path):
        assert isinstance(InMemoryDatabase(), Database)
        assert isinstance(JsonFileDatabase(tmp_path / "r.json"), Database)


@pytest.mark.asyncio
class TestDataStore:

    async def test_insert_returns_none(self, records):
        store = DataStore(InMemoryDatabase())
        assert await store.insert("home", records[0]) is None

    async def test_insert_then_get_roundtrip(self, records):
        store = DataStore(InMemoryDatabase())
        await store.insert("home", records[0])
        results = await store.get("home")
        assert results == [records[0].model_dump()]

    async def test_insert_list(self, records):
        db = InMemoryDatabase()
        store = DataStore(db)
        await store.insert("home", records)
        assert len(db.collections["home"]) == 3

    async def test_partitions_by_profile(self, records):
        store = DataStore(InMemoryDatabase())
        await store.insert("home", records[0])
        await store.insert("blog", records[1])
        assert [r["id"] for r in await store.get("home")] == [records[0].id]
        assert [r["id"] for r in await store.get("blog")] == [records[1].id]
        assert await store.get("checkout") == []

    async def test_time_range_inclusive(self, records):
        store = DataStore(InMemoryDatabase())
        await store.insert("home", records)
        assert [r["timestamp"] for r in await store.get("home", 15, 25)] == [20]
        assert [r["timestamp"] for r in await store.get("home", 10, 20)] == [10, 20]
        assert [r["timestamp"] for r in await store.get("home", timestamp_from=20)] == [20, 30]
        assert [r["timestamp"] for r in await store.get("home", timestamp_to=10)] == [10]

    async def test_results_sorted_by_timestamp(self, records):
        store = DataStore(InMemoryDatabase())
        await store.insert("home", records)
        assert [r["timestamp"] for r in await store.get("home")] == [10, 20, 30]

    async def test_connects_and_disconnects_per_call(self, records):
        db = InMemoryDatabase()
        store = DataStore(db)
        await store.insert("home", records[0])
        await store.get("home")
        assert db.connect_count == 2
        assert db.disconnect_count == 2
        assert db.connected is False

    @pytest.mark.parametrize("operation", ["insert", "get"])
    async def test_disconnects_on_failure(self, records, operation):
        db = FailingDatabase(fail_on=operation)
        store = DataStore(db)
        with pytest.raises(StorageError):
            if operation == "insert":
                await store.insert("home", records[0])
            else:
                await store.get("home")
        assert db.disconnect_count == 1

    async def test_error_carries_underlying_message(self):
        store = DataStore(FailingDatabase(fail_on="get"))
        with pytest.raises(StorageError, match="query failed") as exc_info:
            await store.get("home")
        assert exc_info.value.message == "query failed"

    async def test_connect_failure_is_storage_error(self, records):
        db = FailingDatabase(fail_on="connect")
        with pytest.raises(StorageError, match="connection refused"):
            await DataStore(db).insert("home", records[0])
        assert db.collections == {}


@pytest.mark.asyncio
class TestJsonFileDatabase:

    async def test_missing_file_is_empty(self, tmp_path):
        store = DataStore(JsonFileDatabase(tmp_path / "results.json"))
        assert await store.get("home") == []

    async def test_persists_across_instances(self, tmp_path, records):
        path = tmp_path / "data" / "results.json"
        await DataStore(JsonFileDatabase(path)).insert("home", records)

        results = await DataStore(JsonFileDatabase(path)).get("home", 15, 25)
        assert results == [records[2].model_dump()]

    async def test_file_layout(self, tmp_path, records):
        path = tmp_path / "results.json"
        await DataStore(JsonFileDatabase(path)).insert("home", records[0])
        data = json.loads(path.read_text())
        assert list(data["collections"]) == ["home"]
        assert data["collections"]["home"][0]["id"] == records[0].id
        assert data["last_updated"] != ""

    async def test_corrupt_file_raises(self, tmp_path, records):
        path = tmp_path / "results.json"
        path.write_text("not valid json {{{")
        store = DataStore(JsonFileDatabase(path))
        with pytest.raises(StorageError):
            await store.insert("home", records[0])
        assert path.read_text() == "not valid json {{{"

    async def test_unexpected_layout_raises(self, tmp_path):
        path = tmp_path / "results.json"
        path.write_text(json.dumps({"results": []}))
        with pytest.raises(StorageError, match="Invalid results file"):
            await DataStore(JsonFileDatabase(path)).get("home")

    async def test_use_without_connect_raises(self, tmp_path):
        with pytest.raises(RuntimeError, match="not connected"):
            await JsonFileDatabase(tmp_path / "results.json").get("home")
