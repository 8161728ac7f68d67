import pytest
from bson import ObjectId

from catalog_api.app.core.db import MemoryCollection, WriteConflictError
from catalog_api.app.core.errors import ConflictError, NotFoundError, StoreFailureError, ValidationError
from catalog_api.app.schemas.product import ProductDocument
from catalog_api.app.services.base_service import CrudService
from tests.conftest import BrokenCollection
from tests.test_db import SlowCollection


@pytest.fixture
def crud():
    return CrudService(MemoryCollection("products", timeout=1.0), ProductDocument, "Product")


async def test_create_validates_and_persists(crud):
    doc = await crud.create({"name": "Lamp", "price": 10})
    assert doc["rating"] == 0 and doc["reviews"] == []
    assert (await crud.get_by_id(doc["_id"]))["name"] == "Lamp"


async def test_create_rejects_invalid_data(crud):
    with pytest.raises(ValidationError) as excinfo:
        await crud.create({"name": "Lamp", "price": -1})
    assert "price" in excinfo.value.message


@pytest.mark.parametrize("item_id", [str(ObjectId()), "garbage", None])
async def test_absent_ids_are_not_found(crud, item_id):
    assert await crud.find_by_id(item_id) is None
    with pytest.raises(NotFoundError):
        await crud.get_by_id(item_id)
    with pytest.raises(NotFoundError):
        await crud.update(item_id, {"name": "x"})
    with pytest.raises(NotFoundError):
        await crud.delete(item_id)


async def test_update_is_a_shallow_merge(crud):
    doc = await crud.create({"name": "Lamp", "description": "desk lamp", "price": 10})
    updated = await crud.update(doc["_id"], {"price": 12.5, "unknown": "ignored"})
    assert updated["price"] == 12.5
    assert updated["description"] == "desk lamp"
    assert "unknown" not in updated
    assert updated["_version"] == 1


async def test_update_revalidates_merged_document(crud):
    doc = await crud.create({"name": "Lamp", "price": 10})
    with pytest.raises(ValidationError):
        await crud.update(doc["_id"], {"stock": -3})


async def test_update_reports_concurrent_modification_as_conflict(crud, monkeypatch):
    doc = await crud.create({"name": "Lamp", "price": 10})

    async def conflicting_save(document):
        raise WriteConflictError("changed")

    monkeypatch.setattr(crud.collection, "save", conflicting_save)
    with pytest.raises(ConflictError):
        await crud.update(doc["_id"], {"price": 11})


async def test_delete_returns_removed_snapshot(crud):
    doc = await crud.create({"name": "Lamp", "price": 10})
    removed = await crud.delete(str(doc["_id"]))
    assert removed["name"] == "Lamp"
    assert await crud.find_by_id(doc["_id"]) is None


async def test_store_faults_are_wrapped_with_cause():
    crud = CrudService(BrokenCollection("products"), ProductDocument, "Product")
    with pytest.raises(StoreFailureError) as excinfo:
        await crud.get_by_id(str(ObjectId()))
    assert "connection refused" in excinfo.value.message
    assert not excinfo.value.retryable


async def test_timeouts_are_retryable_store_failures():
    crud = CrudService(SlowCollection("products", timeout=0.01), ProductDocument, "Product")
    with pytest.raises(StoreFailureError) as excinfo:
        await crud.get_by_id(str(ObjectId()))
    assert excinfo.value.retryable
    assert excinfo.value.status == 503
