"""
MongoDB access: client construction, the per-request connectivity check and
small document helpers shared by the Mongo repositories.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings

logger = logging.getLogger(__name__)

PRODUCTS = "product"
SUBSCRIBERS = "subscriber"
ORDERS = "order"


def create_client(settings: Settings) -> MongoClient:
    """Build a client without blocking on the server.

    pymongo connects in the background; every operation is bounded by
    ``MONGO_TIMEOUT_MS`` so an unreachable server fails fast instead of hanging.
    """
    timeout = settings.MONGO_TIMEOUT_MS
    return MongoClient(
        settings.DATABASE_URL,
        serverSelectionTimeoutMS=timeout,
        connectTimeoutMS=timeout,
        socketTimeoutMS=timeout,
        tz_aware=True,
    )


def ensure_indexes(db: Database) -> None:
    db[SUBSCRIBERS].create_index([("email", ASCENDING)], unique=True)
    db[ORDERS].create_index([("order_id", ASCENDING)], unique=True)
    db[ORDERS].create_index([("created_at", ASCENDING)])


class StorageSelector:
    """Answers "is the durable store reachable right now?".

    Reads the client's current topology on every call, never cached, since
    connectivity can change while the process runs. pymongo's background
    monitor keeps that topology current, so the check never waits on the
    network. Never raises.
    """

    def __init__(self, client: Optional[MongoClient]):
        self.client = client

    def durable_available(self) -> bool:
        if self.client is None:
            return False
        try:
            return self.client.topology_description.has_writable_server()
        except PyMongoError as e:
            logger.debug("Durable store state unknown: %s", e)
            return False

    def wait_for_server(self) -> bool:
        """Block until the server answers a ping or the server selection
        timeout runs out. Startup only; requests use ``durable_available``."""
        if self.client is None:
            return False
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.debug("Durable store unreachable: %s", e)
            return False


def _as_document(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document, stamping created_at if missing. Returns the new _id as a string."""
    doc = _as_document(data)
    doc.setdefault("created_at", datetime.now(timezone.utc))
    result = db[collection_name].insert_one(doc)
    return str(result.inserted_id)


def get_documents(
    db: Database,
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    limit: Optional[int] = None,
    sort: Optional[List[tuple]] = None,
) -> List[Dict[str, Any]]:
    cursor = db[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Turn a raw Mongo document into plain model input: ``_id`` becomes ``id``,
    naive datetimes are read as UTC."""
    if not doc:
        return doc
    doc = dict(doc)
    if doc.get("_id") is not None:
        doc["id"] = str(doc.pop("_id"))
    for k, v in list(doc.items()):
        if isinstance(v, datetime) and v.tzinfo is None:
            doc[k] = v.replace(tzinfo=timezone.utc)
    return doc
