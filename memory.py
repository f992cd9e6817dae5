"""
In-process fallback collections, used while the durable store is unreachable.
"""
import threading
from typing import List

from ids import MillisecondIds
from schemas import Order, Product, Subscriber


class MemoryStore:
    """Ordered in-memory collections for products, subscribers and orders.

    Request handlers run on a thread pool, so every scan or mutation must
    hold ``lock``.
    """

    def __init__(self, ids: MillisecondIds = None):
        self.lock = threading.RLock()
        self.ids = ids or MillisecondIds()
        self.products: List[Product] = []
        self.subscribers: List[Subscriber] = []
        self.orders: List[Order] = []

    def next_id(self) -> str:
        return str(self.ids.next())

    def clear(self) -> None:
        with self.lock:
            self.products.clear()
            self.subscribers.clear()
            self.orders.clear()
