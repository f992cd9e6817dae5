"""
Repository layer

Each entity has one contract and two variants: Mongo-backed and in-memory.
Both variants return the same pydantic models, so callers cannot tell which
one served them.
"""
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

from database import ORDERS, PRODUCTS, SUBSCRIBERS, create_document, get_documents, serialize_doc
from memory import MemoryStore
from schemas import Order, OrderStatus, PaymentStatus, Product, ProductIn, Subscriber, SubscriberIn


class ProductRepository(ABC):

    @abstractmethod
    def create(self, product: ProductIn) -> Product:
        ...

    @abstractmethod
    def list(self, in_stock_only: bool = True) -> List[Product]:
        ...

    @abstractmethod
    def find_by_key(self, product_id: str) -> Optional[Product]:
        ...

    @abstractmethod
    def count(self) -> int:
        ...

    @abstractmethod
    def add_many(self, products: List[ProductIn]) -> int:
        ...


class SubscriberRepository(ABC):

    @abstractmethod
    def create(self, subscriber: SubscriberIn) -> Subscriber:
        """Upsert by email: an existing subscriber is returned untouched."""

    @abstractmethod
    def list(self) -> List[Subscriber]:
        ...

    @abstractmethod
    def find_by_key(self, email: str) -> Optional[Subscriber]:
        ...

    @abstractmethod
    def count(self) -> int:
        ...


class OrderRepository(ABC):

    @abstractmethod
    def create(self, order: Order) -> Order:
        ...

    @abstractmethod
    def list(self) -> List[Order]:
        """All orders, newest first."""

    @abstractmethod
    def find_by_key(self, order_id: str) -> Optional[Order]:
        ...

    @abstractmethod
    def mark_paid(self, order_id: str) -> bool:
        """Set paymentStatus=paid and orderStatus=confirmed. False if no such order."""

    @abstractmethod
    def count(self) -> int:
        ...


# ----------------------
# MongoDB
# ----------------------
class MongoProductRepository(ProductRepository):

    def __init__(self, db: Database):
        self.collection = db[PRODUCTS]
        self.db = db

    def create(self, product: ProductIn) -> Product:
        new_id = create_document(self.db, PRODUCTS, product)
        return self.find_by_key(new_id)

    def list(self, in_stock_only: bool = True) -> List[Product]:
        query = {"in_stock": True} if in_stock_only else {}
        return [Product(**serialize_doc(d)) for d in get_documents(self.db, PRODUCTS, query)]

    def find_by_key(self, product_id: str) -> Optional[Product]:
        try:
            key = ObjectId(product_id)
        except (InvalidId, TypeError):
            return None
        doc = self.collection.find_one({"_id": key})
        return Product(**serialize_doc(doc)) if doc else None

    def count(self) -> int:
        return self.collection.count_documents({})

    def add_many(self, products: List[ProductIn]) -> int:
        now = datetime.now(timezone.utc)
        docs = [dict(p.model_dump(), created_at=now) for p in products]
        result = self.collection.insert_many(docs)
        return len(result.inserted_ids)


class MongoSubscriberRepository(SubscriberRepository):

    def __init__(self, db: Database):
        self.collection = db[SUBSCRIBERS]

    def create(self, subscriber: SubscriberIn) -> Subscriber:
        # Atomic; the unique email index covers concurrent first-time subscribes
        doc = self.collection.find_one_and_update(
            {"email": subscriber.email},
            {"$setOnInsert": {
                "email": subscriber.email,
                "name": subscriber.name,
                "created_at": datetime.now(timezone.utc),
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return Subscriber(**serialize_doc(doc))

    def list(self) -> List[Subscriber]:
        return [Subscriber(**serialize_doc(d)) for d in self.collection.find()]

    def find_by_key(self, email: str) -> Optional[Subscriber]:
        doc = self.collection.find_one({"email": email})
        return Subscriber(**serialize_doc(doc)) if doc else None

    def count(self) -> int:
        return self.collection.count_documents({})


class MongoOrderRepository(OrderRepository):

    def __init__(self, db: Database):
        self.collection = db[ORDERS]
        self.db = db

    def create(self, order: Order) -> Order:
        create_document(self.db, ORDERS, order)
        return order

    def list(self) -> List[Order]:
        docs = get_documents(self.db, ORDERS, sort=[("created_at", DESCENDING), ("_id", DESCENDING)])
        return [Order(**serialize_doc(d)) for d in docs]

    def find_by_key(self, order_id: str) -> Optional[Order]:
        doc = self.collection.find_one({"order_id": order_id})
        return Order(**serialize_doc(doc)) if doc else None

    def mark_paid(self, order_id: str) -> bool:
        result = self.collection.update_one(
            {"order_id": order_id},
            {"$set": {
                "payment_status": PaymentStatus.PAID.value,
                "order_status": OrderStatus.CONFIRMED.value,
            }},
        )
        return result.matched_count > 0

    def count(self) -> int:
        return self.collection.count_documents({})


# ----------------------
# In-memory fallback
# ----------------------
class MemoryProductRepository(ProductRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    def create(self, product: ProductIn) -> Product:
        stored = Product(id=self.store.next_id(), **product.model_dump())
        with self.store.lock:
            self.store.products.append(stored)
        return stored.model_copy(deep=True)

    def list(self, in_stock_only: bool = True) -> List[Product]:
        with self.store.lock:
            return [p.model_copy(deep=True) for p in self.store.products
                    if p.in_stock or not in_stock_only]

    def find_by_key(self, product_id: str) -> Optional[Product]:
        with self.store.lock:
            for p in self.store.products:
                if p.id == product_id:
                    return p.model_copy(deep=True)
        return None

    def count(self) -> int:
        with self.store.lock:
            return len(self.store.products)

    def add_many(self, products: List[ProductIn]) -> int:
        for p in products:
            self.create(p)
        return len(products)


class MemorySubscriberRepository(SubscriberRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    def create(self, subscriber: SubscriberIn) -> Subscriber:
        with self.store.lock:
            for s in self.store.subscribers:
                if s.email == subscriber.email:
                    return s.model_copy(deep=True)
            stored = Subscriber(**subscriber.model_dump())
            self.store.subscribers.append(stored)
            return stored.model_copy(deep=True)

    def list(self) -> List[Subscriber]:
        with self.store.lock:
            return [s.model_copy(deep=True) for s in self.store.subscribers]

    def find_by_key(self, email: str) -> Optional[Subscriber]:
        with self.store.lock:
            for s in self.store.subscribers:
                if s.email == email:
                    return s.model_copy(deep=True)
        return None

    def count(self) -> int:
        with self.store.lock:
            return len(self.store.subscribers)


class MemoryOrderRepository(OrderRepository):

    def __init__(self, store: MemoryStore):
        self.store = store

    def create(self, order: Order) -> Order:
        with self.store.lock:
            self.store.orders.append(order.model_copy(deep=True))
        return order

    def list(self) -> List[Order]:
        # Appended in creation order
        with self.store.lock:
            return [o.model_copy(deep=True) for o in reversed(self.store.orders)]

    def find_by_key(self, order_id: str) -> Optional[Order]:
        with self.store.lock:
            order = self._find(order_id)
            return order.model_copy(deep=True) if order else None

    def mark_paid(self, order_id: str) -> bool:
        with self.store.lock:
            order = self._find(order_id)
            if order is None:
                return False
            order.payment_status = PaymentStatus.PAID.value
            order.order_status = OrderStatus.CONFIRMED.value
            return True

    def count(self) -> int:
        with self.store.lock:
            return len(self.store.orders)

    def _find(self, order_id: str) -> Optional[Order]:
        for o in self.store.orders:
            if o.order_id == order_id:
                return o
        return None
