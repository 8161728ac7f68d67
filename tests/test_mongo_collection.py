"""MongoCollection against a stand-in for pymongo's ``AsyncCollection``."""

from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import AutoReconnect
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError

from catalog_api.app.core.db import (
    ASCENDING,
    DESCENDING,
    DocumentStoreError,
    DuplicateKeyError,
    MongoCollection,
    WriteConflictError,
)


class FakeCursor:
    def __init__(self, documents, calls):
        self.documents = documents
        self.calls = calls

    def sort(self, spec):
        self.calls.append(("sort", spec))
        return self

    def skip(self, count):
        self.calls.append(("skip", count))
        return self

    def limit(self, count):
        self.calls.append(("limit", count))
        return self

    async def to_list(self, length=None):
        return list(self.documents)


class FakeAsyncCollection:
    """Records driver calls; ``error`` is raised by the next call when set."""

    name = "products"

    def __init__(self):
        self.calls = []
        self.documents = []
        self.matched_count = 1
        self.error = None

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error

    async def find_one(self, filter):
        self._record("find_one", filter)
        return self.documents[0] if self.documents else None

    def find(self, filter):
        self._record("find", filter)
        return FakeCursor(self.documents, self.calls)

    async def count_documents(self, filter):
        self._record("count_documents", filter)
        return len(self.documents)

    async def insert_one(self, document):
        self._record("insert_one", document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def replace_one(self, filter, document):
        self._record("replace_one", filter, document)
        return SimpleNamespace(matched_count=self.matched_count)

    async def delete_one(self, filter):
        self._record("delete_one", filter)
        return SimpleNamespace(deleted_count=1)

    async def create_index(self, keys, unique=False):
        self._record("create_index", keys, unique)
        return "email_1"


@pytest.fixture
def driver():
    return FakeAsyncCollection()


@pytest.fixture
def collection(driver):
    return MongoCollection(driver, timeout=1.0)


async def test_save_replaces_only_the_version_that_was_read(collection, driver):
    oid = ObjectId()
    saved = await collection.save({"_id": oid, "_version": 2, "name": "Lamp"})

    [(method, filter, document)] = driver.calls
    assert method == "replace_one"
    assert filter == {"_id": oid, "_version": 2}
    assert document == {"_id": oid, "_version": 3, "name": "Lamp"}
    assert saved["_version"] == 3


async def test_save_without_a_match_is_a_write_conflict(collection, driver):
    driver.matched_count = 0
    with pytest.raises(WriteConflictError):
        await collection.save({"_id": ObjectId(), "_version": 0, "name": "Lamp"})


async def test_insert_sets_id_and_version(collection, driver):
    document = await collection.insert({"name": "Lamp"})
    assert isinstance(document["_id"], ObjectId)
    assert driver.calls == [("insert_one", document)]
    assert document["_version"] == 0


async def test_duplicate_key_is_translated(collection, driver):
    driver.error = MongoDuplicateKeyError("E11000 duplicate key error", code=11000)
    with pytest.raises(DuplicateKeyError):
        await collection.insert({"email": "ada@example.com"})


async def test_driver_failures_become_store_errors(collection, driver):
    driver.error = AutoReconnect("connection refused")
    with pytest.raises(DocumentStoreError) as excinfo:
        await collection.find_one({"name": "Lamp"})
    assert not isinstance(excinfo.value, DuplicateKeyError)
    assert "connection refused" in str(excinfo.value)


async def test_find_passes_sort_skip_and_limit(collection, driver):
    driver.documents = [{"_id": ObjectId(), "name": "Lamp"}]
    found = await collection.find(
        {"name": "Lamp"}, sort=[("rating", DESCENDING), ("_id", ASCENDING)], skip=10, limit=5
    )
    assert found == driver.documents
    assert driver.calls == [
        ("find", {"name": "Lamp"}),
        ("sort", [("rating", DESCENDING), ("_id", ASCENDING)]),
        ("skip", 10),
        ("limit", 5),
    ]


async def test_find_without_paging_leaves_cursor_unbounded(collection, driver):
    await collection.find()
    assert driver.calls == [("find", {})]


async def test_unique_index_is_created_ascending(collection, driver):
    await collection.create_index("email", unique=True)
    assert driver.calls == [("create_index", [("email", ASCENDING)], True)]
