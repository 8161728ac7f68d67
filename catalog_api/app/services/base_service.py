"""
Generic CRUD component shared by the domain services.

``CrudService`` orchestrates reads and writes against one collection
and validates documents through one pydantic schema.  Domain services
hold an instance of it rather than inheriting from it.  Every operation
performs at most one read followed by at most one write.

Failures are raised as classified ``ServiceError`` subclasses:
an absent record is ``NotFoundError``, store faults are wrapped into
``StoreFailureError`` carrying the original cause message.
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..core.db import (
    Collection,
    Document,
    DocumentStoreError,
    DuplicateKeyError,
    Filter,
    SortSpec,
    StoreTimeoutError,
    WriteConflictError,
)
from ..core.errors import ConflictError, NotFoundError, StoreFailureError, ValidationError


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Render the first pydantic error as ``field: message``."""
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error['msg']}" if location else error["msg"]


def parse_payload(schema: Type[BaseModel], data: Any) -> Dict[str, Any]:
    """Validate a request payload and return only the fields it sets.

    Models are re-validated too: fields outside ``schema`` (for example
    ``is_admin`` on a profile update) are dropped.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_none=True)
    try:
        return schema.model_validate(data or {}).model_dump(exclude_none=True)
    except PydanticValidationError as exc:
        raise ValidationError(describe_validation_error(exc)) from exc


def store_failure(context: str, exc: DocumentStoreError) -> StoreFailureError:
    return StoreFailureError(f"{context}: {exc}", retryable=isinstance(exc, StoreTimeoutError))


class CrudService:
    """Get, create, update and delete documents of one collection."""

    def __init__(self, collection: Collection, schema: Type[BaseModel], model_name: str) -> None:
        self.collection = collection
        self.schema = schema
        self.model_name = model_name

    def validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self.schema.model_validate(data).model_dump()
        except PydanticValidationError as exc:
            raise ValidationError(describe_validation_error(exc)) from exc

    async def find_by_id(self, item_id: Any) -> Optional[Document]:
        """Return the document or ``None`` when no record has this id."""
        try:
            return await self.collection.find_by_id(item_id)
        except DocumentStoreError as exc:
            raise store_failure("Error while retrieving this item", exc) from exc

    async def get_by_id(self, item_id: Any) -> Document:
        item = await self.find_by_id(item_id)
        if item is None:
            raise NotFoundError(f"{self.model_name} not found")
        return item

    async def find_one(self, filter: Filter) -> Optional[Document]:
        try:
            return await self.collection.find_one(filter)
        except DocumentStoreError as exc:
            raise store_failure("Error while retrieving this item", exc) from exc

    async def find(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Document]:
        try:
            return await self.collection.find(filter, sort=sort, skip=skip, limit=limit)
        except DocumentStoreError as exc:
            raise store_failure("Error while retrieving items", exc) from exc

    async def count(self, filter: Optional[Filter] = None) -> int:
        try:
            return await self.collection.count_documents(filter)
        except DocumentStoreError as exc:
            raise store_failure("Error while counting items", exc) from exc

    async def create(self, data: Dict[str, Any]) -> Document:
        document = self.validate(data)
        try:
            return await self.collection.insert(document)
        except DuplicateKeyError as exc:
            raise ConflictError(f"{self.model_name} already exists") from exc
        except DocumentStoreError as exc:
            raise store_failure("Error creating item", exc) from exc

    async def save(self, document: Document) -> Document:
        """Persist a modified document.

        ``WriteConflictError`` is left to the caller, which decides
        whether the read-modify-write cycle should be replayed.
        """
        try:
            return await self.collection.save(document)
        except WriteConflictError:
            raise
        except DuplicateKeyError as exc:
            raise ConflictError(f"{self.model_name} already exists") from exc
        except DocumentStoreError as exc:
            raise store_failure("Error on updating item", exc) from exc

    async def update(self, item_id: Any, data: Dict[str, Any]) -> Document:
        """Shallow-merge ``data`` over the stored document and save it."""
        item = await self.get_by_id(item_id)
        merged = {field: item[field] for field in self.schema.model_fields if field in item}
        merged.update(data)
        item.update(self.validate(merged))
        try:
            return await self.save(item)
        except WriteConflictError as exc:
            raise ConflictError(f"{self.model_name} was modified concurrently, please retry") from exc

    async def delete(self, item_id: Any) -> Document:
        """Remove the document and return its last state."""
        item = await self.get_by_id(item_id)
        try:
            return await self.collection.remove(item)
        except DocumentStoreError as exc:
            raise store_failure("Error on deleting item", exc) from exc
