"""Tests for the Mongo helpers and the connectivity check."""
import time
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import AutoReconnect, ServerSelectionTimeoutError

from config import Settings
from database import ORDERS, StorageSelector, create_client, create_document, get_documents, serialize_doc
from main import create_app
from schemas import ProductIn
from storage import open_storage


class TestStorageSelector:

    def test_no_client_means_memory(self):
        selector = StorageSelector(None)
        assert selector.durable_available() is False
        assert selector.wait_for_server() is False

    def test_reads_topology_without_pinging(self):
        client = MagicMock()
        client.topology_description.has_writable_server.return_value = True
        assert StorageSelector(client).durable_available() is True
        client.admin.command.assert_not_called()

    def test_no_writable_server(self):
        client = MagicMock()
        client.topology_description.has_writable_server.return_value = False
        assert StorageSelector(client).durable_available() is False
        client.admin.command.assert_not_called()

    def test_topology_error_is_not_raised(self):
        client = MagicMock()
        client.topology_description.has_writable_server.side_effect = AutoReconnect("reset")
        assert StorageSelector(client).durable_available() is False

    def test_read_on_every_call(self):
        client = MagicMock()
        client.topology_description.has_writable_server.side_effect = [True, False, True]
        selector = StorageSelector(client)
        assert [selector.durable_available() for _ in range(3)] == [True, False, True]

    def test_wait_for_server_pings(self):
        client = MagicMock()
        client.admin.command.return_value = {"ok": 1.0}
        assert StorageSelector(client).wait_for_server() is True
        client.admin.command.assert_called_once_with("ping")

    @pytest.mark.parametrize("error", [ServerSelectionTimeoutError("no servers"), AutoReconnect("reset")])
    def test_wait_for_server_failure_is_not_raised(self, error):
        client = MagicMock()
        client.admin.command.side_effect = error
        assert StorageSelector(client).wait_for_server() is False


class TestUnreachableServer:
    """A real client pointed at a closed port: requests must not wait on it."""

    TIMEOUT_MS = 1000

    @pytest.fixture
    def offline_storage(self):
        storage = open_storage(Settings(DATABASE_URL="mongodb://127.0.0.1:1", MONGO_TIMEOUT_MS=self.TIMEOUT_MS))
        yield storage
        storage.close()

    def test_durable_available_is_immediate(self, offline_storage):
        for _ in range(3):
            started = time.monotonic()
            assert offline_storage.selector.durable_available() is False
            assert time.monotonic() - started < self.TIMEOUT_MS / 1000 / 4

    def test_requests_served_from_memory_without_delay(self, offline_storage):
        client = TestClient(create_app(settings=Settings(SEED_SAMPLE_PRODUCTS=False), storage=offline_storage))
        timings = []
        for path in ("/api/health", "/api/products", "/api/health"):
            started = time.monotonic()
            response = client.get(path)
            timings.append(time.monotonic() - started)
            assert response.status_code == 200

        assert client.get("/api/health").json()["database"] == "Using Memory"
        assert max(timings) < self.TIMEOUT_MS / 1000 / 2


def test_create_client_applies_timeouts():
    client = create_client(Settings(DATABASE_URL="mongodb://localhost:27017", MONGO_TIMEOUT_MS=750))
    try:
        options = client.options
        assert options.server_selection_timeout == 0.75
        assert options.pool_options.connect_timeout == 0.75
    finally:
        client.close()


def test_create_document_stamps_created_at(mongo_db):
    new_id = create_document(mongo_db, "product", ProductIn(name="Lamp", price=25))
    doc = mongo_db["product"].find_one({"_id": ObjectId(new_id)})
    assert doc["name"] == "Lamp"
    assert doc["in_stock"] is True
    assert isinstance(doc["created_at"], datetime)


def test_create_document_keeps_given_created_at(mongo_db):
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    new_id = create_document(mongo_db, ORDERS, {"order_id": "BR1", "created_at": when})
    doc = serialize_doc(mongo_db[ORDERS].find_one({"_id": ObjectId(new_id)}))
    assert doc["created_at"] == when


def test_get_documents_filter_sort_limit(mongo_db):
    for i in range(5):
        mongo_db["product"].insert_one({"name": f"p{i}", "rank": i, "in_stock": i % 2 == 0})

    in_stock = get_documents(mongo_db, "product", {"in_stock": True})
    assert sorted(d["name"] for d in in_stock) == ["p0", "p2", "p4"]

    top = get_documents(mongo_db, "product", sort=[("rank", -1)], limit=2)
    assert [d["name"] for d in top] == ["p4", "p3"]


class TestSerializeDoc:

    def test_id_is_renamed(self):
        oid = ObjectId()
        doc = serialize_doc({"_id": oid, "name": "x"})
        assert doc == {"id": str(oid), "name": "x"}

    def test_naive_datetimes_read_as_utc(self):
        doc = serialize_doc({"created_at": datetime(2024, 5, 1, 12, 0)})
        assert doc["created_at"].tzinfo == timezone.utc

    def test_empty(self):
        assert serialize_doc(None) is None
        assert serialize_doc({}) == {}
