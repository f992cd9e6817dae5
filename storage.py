"""
Per-request storage selection.

``Storage.repositories()`` reads the durable store's connection state once and
hands back the Mongo bundle when a writable server is known, the in-memory
bundle otherwise.
"""
import logging
from typing import NamedTuple, Optional

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings
from database import StorageSelector, create_client, ensure_indexes
from memory import MemoryStore
from repositories import (
    MemoryOrderRepository,
    MemoryProductRepository,
    MemorySubscriberRepository,
    MongoOrderRepository,
    MongoProductRepository,
    MongoSubscriberRepository,
    OrderRepository,
    ProductRepository,
    SubscriberRepository,
)

logger = logging.getLogger(__name__)


class Repositories(NamedTuple):
    products: ProductRepository
    subscribers: SubscriberRepository
    orders: OrderRepository
    durable: bool


class Storage:

    def __init__(self, selector: StorageSelector, db: Optional[Database] = None,
                 memory: Optional[MemoryStore] = None):
        self.selector = selector
        self.db = db
        self.memory = memory or MemoryStore()
        self.fallback = Repositories(
            products=MemoryProductRepository(self.memory),
            subscribers=MemorySubscriberRepository(self.memory),
            orders=MemoryOrderRepository(self.memory),
            durable=False,
        )
        self.durable = None
        if db is not None:
            self.durable = Repositories(
                products=MongoProductRepository(db),
                subscribers=MongoSubscriberRepository(db),
                orders=MongoOrderRepository(db),
                durable=True,
            )

    def repositories(self) -> Repositories:
        if self.durable is not None and self.selector.durable_available():
            return self.durable
        return self.fallback

    def close(self) -> None:
        client = self.selector.client
        if isinstance(client, MongoClient):
            client.close()


def open_storage(settings: Settings) -> Storage:
    """Create the Mongo client and wrap it in a Storage.

    An unreachable server is not an error here; requests simply fall back to
    memory until it comes up.
    """
    client = create_client(settings)
    selector = StorageSelector(client)
    db = client[settings.DATABASE_NAME]

    if selector.wait_for_server():
        logger.info("MongoDB connected (%s)", settings.DATABASE_NAME)
        try:
            ensure_indexes(db)
        except PyMongoError:
            logger.warning("Could not create MongoDB indexes", exc_info=True)
    else:
        logger.warning("MongoDB not reachable at startup; using in-memory storage until it is")

    return Storage(selector, db)
