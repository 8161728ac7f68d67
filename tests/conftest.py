"""Shared fixtures: settings, an in-memory database and the services."""

import pytest
from fastapi.testclient import TestClient

from catalog_api.app.core.config import Settings
from catalog_api.app.core.db import DocumentStoreError, MemoryCollection, MemoryDatabase, init_db
from catalog_api.app.main import create_app
from catalog_api.app.services.product_service import ProductService
from catalog_api.app.services.user_service import UserService


class BrokenCollection(MemoryCollection):
    """Collection whose reads fail as if the server were unreachable."""

    async def _find_one(self, filter):
        raise DocumentStoreError("connection refused")

    async def _find(self, filter, sort, skip, limit):
        raise DocumentStoreError("connection refused")


@pytest.fixture
def config():
    return Settings(
        database_url="memory://",
        secret_key="test-secret",
        store_timeout=1.0,
        write_retries=3,
        default_page_size=10,
        log_level="WARNING",
    )


@pytest.fixture
async def database(config):
    database = MemoryDatabase(timeout=config.store_timeout)
    await init_db(database)
    yield database
    await database.close()


@pytest.fixture
def users(database, config):
    return UserService(database, config)


@pytest.fixture
def products(database, config):
    return ProductService(database, config)


def user_payload(email="ada@example.com", password="s3cret-pass", **overrides):
    payload = {"firstname": "Ada", "lastname": "Lovelace", "email": email, "password": password}
    payload.update(overrides)
    return payload


@pytest.fixture
async def ada(users):
    result = await users.register(user_payload())
    assert result.ok, result.message
    return result.data


@pytest.fixture
async def mouse(products):
    result = await products.create_product(
        {"name": "Wireless Mouse", "description": "2.4GHz", "price": 24.99, "stock": 10}
    )
    assert result.ok, result.message
    return result.data


@pytest.fixture
def client(config):
    app = create_app(config)
    with TestClient(app) as client:
        yield client
