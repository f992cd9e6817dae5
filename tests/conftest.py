"""
Shared fixtures for the store backend tests.

The durable path runs against mongomock; the fallback path against a fresh
MemoryStore. Fixtures named ``storage`` / ``client`` are parametrized over
both, so a test written once covers each path.
"""
from unittest.mock import MagicMock

import mongomock
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import PyMongoError

from config import Settings
from database import StorageSelector, ensure_indexes
from main import create_app
from memory import MemoryStore
from storage import Repositories, Storage


class ReachableSelector(StorageSelector):
    """Selector that always reports the durable store as up."""

    def __init__(self):
        super().__init__(client=None)

    def durable_available(self) -> bool:
        return True


@pytest.fixture
def mongo_db():
    db = mongomock.MongoClient()["bramanda_test"]
    ensure_indexes(db)
    return db


@pytest.fixture
def memory_storage():
    return Storage(StorageSelector(None), memory=MemoryStore())


@pytest.fixture
def durable_storage(mongo_db):
    return Storage(ReachableSelector(), db=mongo_db)


@pytest.fixture(params=["memory", "durable"])
def storage(request):
    """Storage backed by one path or the other"""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def broken_storage():
    """
    Storage whose durable repositories all raise PyMongoError

    The memory fallback underneath is real and empty.
    """
    storage = Storage(ReachableSelector(), memory=MemoryStore())
    error = PyMongoError("connection reset")
    products, subscribers, orders = MagicMock(), MagicMock(), MagicMock()
    for repo in (products, subscribers, orders):
        for name in ("create", "list", "find_by_key", "count", "mark_paid", "add_many"):
            getattr(repo, name).side_effect = error
    storage.durable = Repositories(products=products, subscribers=subscribers,
                                   orders=orders, durable=True)
    return storage


@pytest.fixture
def settings():
    return Settings(SEED_SAMPLE_PRODUCTS=False)


@pytest.fixture
def client(storage, settings):
    return TestClient(create_app(settings=settings, storage=storage))


@pytest.fixture
def broken_client(broken_storage, settings):
    return TestClient(create_app(settings=settings, storage=broken_storage))


@pytest.fixture
def sample_order_data():
    return {
        "customerName": "Asha Shrestha",
        "customerEmail": "asha@example.com",
        "customerPhone": "9800000000",
        "customerAddress": "Thamel, Kathmandu",
        "items": [
            {"productId": "1", "productName": "Minimalist Watch", "quantity": 2,
             "price": 199.99, "image": "https://example.com/watch.jpg"},
        ],
        "totalAmount": 399.98,
        "paymentMethod": "esewa",
    }
