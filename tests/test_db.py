import asyncio

import pytest
from bson import ObjectId

from catalog_api.app.core.db import (
    ASCENDING,
    DESCENDING,
    DuplicateKeyError,
    MemoryCollection,
    MemoryDatabase,
    StoreTimeoutError,
    WriteConflictError,
    as_object_id,
    connect,
    matches,
)


@pytest.fixture
def collection():
    return MemoryCollection("things", timeout=1.0)


async def test_insert_assigns_id_and_version(collection):
    doc = await collection.insert({"name": "a"})
    assert isinstance(doc["_id"], ObjectId)
    assert doc["_version"] == 0
    assert await collection.find_by_id(str(doc["_id"])) == doc


async def test_find_by_id_with_malformed_id_returns_none(collection):
    await collection.insert({"name": "a"})
    assert await collection.find_by_id("not-an-object-id") is None
    assert await collection.find_by_id(str(ObjectId())) is None


async def test_returned_documents_are_copies(collection):
    doc = await collection.insert({"name": "a", "tags": ["x"]})
    found = await collection.find_by_id(doc["_id"])
    found["tags"].append("y")
    again = await collection.find_by_id(doc["_id"])
    assert again["tags"] == ["x"]


async def test_regex_filter_is_case_insensitive_with_option(collection):
    await collection.insert({"name": "Wireless Mouse"})
    await collection.insert({"name": "Keyboard"})
    found = await collection.find({"name": {"$regex": "mouse", "$options": "i"}})
    assert [doc["name"] for doc in found] == ["Wireless Mouse"]
    assert await collection.count_documents({"name": {"$regex": "mouse"}}) == 0


async def test_dotted_path_matches_inside_embedded_lists(collection):
    await collection.insert({"name": "p", "reviews": [{"user": "u1"}, {"user": "u2"}]})
    assert await collection.find_one({"reviews.user": "u2"}) is not None
    assert await collection.find_one({"reviews.user": "u3"}) is None
    assert await collection.find_one({"reviews.user": {"$ne": "u1"}}) is None


def test_missing_field_matches_none():
    assert matches({"a": 1}, {"b": None})
    assert not matches({"a": 1}, {"a": None})
    assert matches({"a": 1}, {"a": {"$in": [1, 2]}})


async def test_sort_skip_and_limit(collection):
    for name, rating in [("a", 3), ("b", 5), ("c", 3), ("d", 1)]:
        await collection.insert({"name": name, "rating": rating})
    ordered = await collection.find({}, sort=[("rating", DESCENDING), ("name", ASCENDING)])
    assert [doc["name"] for doc in ordered] == ["b", "a", "c", "d"]
    page = await collection.find({}, sort=[("name", ASCENDING)], skip=1, limit=2)
    assert [doc["name"] for doc in page] == ["b", "c"]


async def test_unique_index_rejects_duplicates_on_insert_and_save(collection):
    await collection.create_index("email", unique=True)
    await collection.insert({"email": "a@example.com"})
    other = await collection.insert({"email": "b@example.com"})
    with pytest.raises(DuplicateKeyError):
        await collection.insert({"email": "a@example.com"})
    other["email"] = "a@example.com"
    with pytest.raises(DuplicateKeyError):
        await collection.save(other)


async def test_save_increments_version(collection):
    doc = await collection.insert({"name": "a"})
    doc["name"] = "b"
    saved = await collection.save(doc)
    assert saved["_version"] == 1
    assert (await collection.find_by_id(doc["_id"]))["name"] == "b"


async def test_save_with_stale_version_is_a_conflict(collection):
    doc = await collection.insert({"name": "a"})
    first = await collection.find_by_id(doc["_id"])
    second = await collection.find_by_id(doc["_id"])
    first["name"] = "first"
    await collection.save(first)
    second["name"] = "second"
    with pytest.raises(WriteConflictError):
        await collection.save(second)
    assert (await collection.find_by_id(doc["_id"]))["name"] == "first"


async def test_remove_deletes_and_returns_snapshot(collection):
    doc = await collection.insert({"name": "a"})
    removed = await collection.remove(doc)
    assert removed["name"] == "a"
    assert await collection.count_documents() == 0


class SlowCollection(MemoryCollection):
    async def _find_one(self, filter):
        await asyncio.sleep(1)
        return None


async def test_store_calls_are_bounded_by_timeout():
    collection = SlowCollection("slow", timeout=0.01)
    with pytest.raises(StoreTimeoutError):
        await collection.find_one({})


def test_memory_database_reuses_collections():
    database = MemoryDatabase()
    assert database.collection("users") is database.collection("users")


def test_connect_memory_url(config):
    assert isinstance(connect(config), MemoryDatabase)


def test_as_object_id():
    oid = ObjectId()
    assert as_object_id(oid) is oid
    assert as_object_id(str(oid)) == oid
    assert as_object_id("xyz") is None
    assert as_object_id(42) is None
