"""
Document store integration.

This module exposes the persistence capability consumed by the service
layer: named collections of schema-flexible documents that can be
looked up by id or filter, counted, inserted, saved and removed.  Two
backends implement it:

* ``MemoryCollection`` keeps documents in process.  It understands the
  small filter dialect used by the services (equality, dotted paths
  into embedded lists, ``$regex``/``$options``, ``$ne`` and ``$in``).
* ``MongoCollection`` delegates to the asynchronous pymongo driver.

Every store call is bounded by a timeout.  Documents carry a
store-managed ``_version`` counter and ``save`` only succeeds when the
caller saw the latest version, so read-modify-write sequences detect
concurrent writers instead of silently overwriting them.

``connect`` builds a ``Database`` handle from the settings and
``init_db`` creates the indexes the services rely on.  The handle is
created once at startup, passed into the services and closed on
shutdown.
"""

import asyncio
import copy
import logging
import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Awaitable, Dict, Iterator, List, Optional, Sequence, Tuple

from bson import ObjectId
from pymongo import AsyncMongoClient
from pymongo.errors import DuplicateKeyError as MongoDuplicateKeyError
from pymongo.errors import PyMongoError

from .config import Settings, settings

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Filter = Dict[str, Any]
SortSpec = Sequence[Tuple[str, int]]

ASCENDING = 1
DESCENDING = -1

USERS = "users"
PRODUCTS = "products"

VERSION_FIELD = "_version"


class DocumentStoreError(Exception):
    """The store rejected a call."""


class DuplicateKeyError(DocumentStoreError):
    """A write violated a unique index."""


class WriteConflictError(DocumentStoreError):
    """The document changed since it was read."""


class StoreTimeoutError(DocumentStoreError):
    """The store did not answer within the configured timeout."""


def as_object_id(value: Any) -> Optional[ObjectId]:
    """Return ``value`` as an ObjectId, or None when it cannot be one."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class Collection(ABC):
    """A named collection of documents.

    Public methods bound each backend call with ``timeout`` and manage
    ``_id`` and ``_version``; subclasses implement the underscored
    primitives.
    """

    def __init__(self, name: str, timeout: Optional[float] = None) -> None:
        self.name = name
        self.timeout = timeout

    async def _bounded(self, awaitable: Awaitable[Any]) -> Any:
        if not self.timeout:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as exc:
            raise StoreTimeoutError(
                f"{self.name}: store call timed out after {self.timeout}s"
            ) from exc

    async def find_by_id(self, document_id: Any) -> Optional[Document]:
        oid = as_object_id(document_id)
        if oid is None:
            return None
        return await self.find_one({"_id": oid})

    async def find_one(self, filter: Filter) -> Optional[Document]:
        return await self._bounded(self._find_one(filter))

    async def find(
        self,
        filter: Optional[Filter] = None,
        sort: Optional[SortSpec] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Document]:
        return await self._bounded(self._find(filter or {}, sort, skip, limit))

    async def count_documents(self, filter: Optional[Filter] = None) -> int:
        return await self._bounded(self._count(filter or {}))

    async def insert(self, document: Document) -> Document:
        """Store a new document and return it with ``_id`` and ``_version`` set."""
        doc = dict(document)
        doc.setdefault("_id", ObjectId())
        doc[VERSION_FIELD] = 0
        await self._bounded(self._insert(doc))
        return doc

    async def save(self, document: Document) -> Document:
        """Replace a stored document if nobody else changed it meanwhile.

        Raises ``WriteConflictError`` when the stored ``_version`` differs
        from the one carried by ``document``.
        """
        version = document.get(VERSION_FIELD)
        doc = dict(document)
        doc[VERSION_FIELD] = (version or 0) + 1
        matched = await self._bounded(
            self._replace({"_id": document["_id"], VERSION_FIELD: version}, doc)
        )
        if not matched:
            raise WriteConflictError(f"{self.name}: document {document['_id']} was modified concurrently")
        return doc

    async def remove(self, document: Document) -> Document:
        await self._bounded(self._delete({"_id": document["_id"]}))
        return document

    async def create_index(self, field: str, unique: bool = False) -> None:
        await self._bounded(self._create_index(field, unique))

    @abstractmethod
    async def _find_one(self, filter: Filter) -> Optional[Document]: ...

    @abstractmethod
    async def _find(self, filter: Filter, sort: Optional[SortSpec], skip: int, limit: int) -> List[Document]: ...

    @abstractmethod
    async def _count(self, filter: Filter) -> int: ...

    @abstractmethod
    async def _insert(self, document: Document) -> None: ...

    @abstractmethod
    async def _replace(self, filter: Filter, document: Document) -> int:
        """Replace the first match of ``filter``; return the number matched."""

    @abstractmethod
    async def _delete(self, filter: Filter) -> int: ...

    @abstractmethod
    async def _create_index(self, field: str, unique: bool) -> None: ...


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

def _resolve(document: Document, path: str) -> List[Any]:
    """Collect the values reachable by a dotted path.

    Embedded lists are traversed, so ``reviews.user`` yields the ``user``
    of every review.
    """
    values: List[Any] = [document]
    for part in path.split("."):
        found = []
        for value in values:
            if isinstance(value, dict):
                if part in value:
                    found.append(value[part])
            elif isinstance(value, list):
                found.extend(item[part] for item in value if isinstance(item, dict) and part in item)
        values = found
    candidates: List[Any] = []
    for value in values:
        candidates.append(value)
        if isinstance(value, list):
            candidates.extend(value)
    return candidates or [None]


def _matches_condition(candidates: List[Any], condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(key.startswith("$") for key in condition):
        for operator, operand in condition.items():
            if operator == "$regex":
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                pattern = re.compile(operand, flags)
                if not any(isinstance(c, str) and pattern.search(c) for c in candidates):
                    return False
            elif operator == "$options":
                continue
            elif operator == "$ne":
                if any(c == operand for c in candidates):
                    return False
            elif operator == "$in":
                if not any(c in operand for c in candidates):
                    return False
            else:
                raise DocumentStoreError(f"Unsupported operator {operator}")
        return True
    return any(c == condition for c in candidates)


def matches(document: Document, filter: Filter) -> bool:
    return all(_matches_condition(_resolve(document, path), condition) for path, condition in filter.items())


def _sort_key(field: str):
    def key(document: Document):
        value = document.get(field)
        return (value is not None, value)
    return key


class MemoryCollection(Collection):
    """Collection held in a process-local dict, keyed by ``_id``."""

    def __init__(self, name: str, timeout: Optional[float] = None) -> None:
        super().__init__(name, timeout)
        self._documents: Dict[ObjectId, Document] = {}
        self._unique_fields: List[str] = []

    def _select(self, filter: Filter) -> List[Document]:
        return [doc for doc in self._documents.values() if matches(doc, filter)]

    def _check_unique(self, document: Document) -> None:
        for field in self._unique_fields:
            for other in self._documents.values():
                if other["_id"] != document["_id"] and other.get(field) == document.get(field):
                    raise DuplicateKeyError(
                        f"{self.name}: duplicate key for {field}={document.get(field)!r}"
                    )

    async def _find_one(self, filter: Filter) -> Optional[Document]:
        selected = self._select(filter)
        return copy.deepcopy(selected[0]) if selected else None

    async def _find(self, filter: Filter, sort: Optional[SortSpec], skip: int, limit: int) -> List[Document]:
        selected = self._select(filter)
        for field, direction in reversed(list(sort or [])):
            selected.sort(key=_sort_key(field), reverse=direction == DESCENDING)
        selected = selected[skip:]
        if limit:
            selected = selected[:limit]
        return copy.deepcopy(selected)

    async def _count(self, filter: Filter) -> int:
        return len(self._select(filter))

    async def _insert(self, document: Document) -> None:
        if document["_id"] in self._documents:
            raise DuplicateKeyError(f"{self.name}: duplicate key for _id={document['_id']}")
        self._check_unique(document)
        self._documents[document["_id"]] = copy.deepcopy(document)

    async def _replace(self, filter: Filter, document: Document) -> int:
        selected = self._select(filter)
        if not selected:
            return 0
        self._check_unique(document)
        self._documents[selected[0]["_id"]] = copy.deepcopy(document)
        return 1

    async def _delete(self, filter: Filter) -> int:
        selected = self._select(filter)
        if not selected:
            return 0
        del self._documents[selected[0]["_id"]]
        return 1

    async def _create_index(self, field: str, unique: bool) -> None:
        if unique and field not in self._unique_fields:
            self._unique_fields.append(field)


# ---------------------------------------------------------------------------
# MongoDB backend
# ---------------------------------------------------------------------------

@contextmanager
def _driver_errors() -> Iterator[None]:
    """Translate pymongo exceptions into store errors."""
    try:
        yield
    except MongoDuplicateKeyError as exc:
        raise DuplicateKeyError(str(exc)) from exc
    except PyMongoError as exc:
        raise DocumentStoreError(str(exc)) from exc


class MongoCollection(Collection):
    """Collection backed by a pymongo ``AsyncCollection``."""

    def __init__(self, collection: Any, timeout: Optional[float] = None) -> None:
        super().__init__(collection.name, timeout)
        self._collection = collection

    async def _find_one(self, filter: Filter) -> Optional[Document]:
        with _driver_errors():
            return await self._collection.find_one(filter)

    async def _find(self, filter: Filter, sort: Optional[SortSpec], skip: int, limit: int) -> List[Document]:
        with _driver_errors():
            cursor = self._collection.find(filter)
            if sort:
                cursor = cursor.sort(list(sort))
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            return await cursor.to_list(length=None)

    async def _count(self, filter: Filter) -> int:
        with _driver_errors():
            return await self._collection.count_documents(filter)

    async def _insert(self, document: Document) -> None:
        with _driver_errors():
            await self._collection.insert_one(document)

    async def _replace(self, filter: Filter, document: Document) -> int:
        with _driver_errors():
            result = await self._collection.replace_one(filter, document)
            return result.matched_count

    async def _delete(self, filter: Filter) -> int:
        with _driver_errors():
            result = await self._collection.delete_one(filter)
            return result.deleted_count

    async def _create_index(self, field: str, unique: bool) -> None:
        with _driver_errors():
            await self._collection.create_index([(field, ASCENDING)], unique=unique)


# ---------------------------------------------------------------------------
# Database handles
# ---------------------------------------------------------------------------

class Database(ABC):
    """Process-wide handle giving access to named collections."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.timeout = timeout

    @abstractmethod
    def collection(self, name: str) -> Collection: ...

    async def close(self) -> None:
        return None


class MemoryDatabase(Database):
    collection_class = MemoryCollection

    def __init__(self, timeout: Optional[float] = None) -> None:
        super().__init__(timeout)
        self._collections: Dict[str, MemoryCollection] = {}

    def collection(self, name: str) -> Collection:
        if name not in self._collections:
            self._collections[name] = self.collection_class(name, self.timeout)
        return self._collections[name]


class MongoDatabase(Database):
    def __init__(self, url: str, name: str, timeout: Optional[float] = None) -> None:
        super().__init__(timeout)
        self.client = AsyncMongoClient(url)
        self._db = self.client[name]

    def collection(self, name: str) -> Collection:
        return MongoCollection(self._db[name], self.timeout)

    async def close(self) -> None:
        await self.client.close()


def connect(config: Optional[Settings] = None) -> Database:
    """Create the database handle described by ``config``."""
    config = config or settings
    if config.database_url.startswith("memory://"):
        logger.info("Using in-memory document store")
        return MemoryDatabase(timeout=config.store_timeout)
    logger.info("Connecting to MongoDB database %s", config.database_name)
    return MongoDatabase(config.database_url, config.database_name, timeout=config.store_timeout)


async def init_db(database: Database) -> None:
    """Create the indexes the services depend on.

    Uniqueness of user emails is enforced here so that two concurrent
    registrations cannot both succeed.
    """
    await database.collection(USERS).create_index("email", unique=True)
