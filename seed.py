"""Sample catalogue loaded at startup."""
import logging

from pymongo.errors import PyMongoError

from schemas import Product, ProductIn
from storage import Storage

logger = logging.getLogger(__name__)

SAMPLE_PRODUCTS = [
    ProductIn(
        name="Minimalist Watch",
        price=199.99,
        description="Elegant black and white minimalist watch with leather strap",
        image="https://images.unsplash.com/photo-1523170335258-f5ed11844a49?w=400",
        category="Accessories",
    ),
    ProductIn(
        name="Classic Sunglasses",
        price=149.99,
        description="Premium black frame sunglasses with UV protection",
        image="https://images.unsplash.com/photo-1572635196237-14b3f281503f?w=400",
        category="Accessories",
    ),
    ProductIn(
        name="Designer Handbag",
        price=299.99,
        description="Luxurious black leather handbag with silver accents",
        image="https://images.unsplash.com/photo-1584917865442-de89df76afd3?w=400",
        category="Bags",
    ),
    ProductIn(
        name="Wireless Earbuds",
        price=179.99,
        description="High-quality white wireless earbuds with noise cancellation",
        image="https://images.unsplash.com/photo-1590658165737-15a047b8b5e3?w=400",
        category="Electronics",
    ),
]

# Offline catalogue is the first three, with fixed ids
MEMORY_SAMPLE_COUNT = 3


def seed_memory(storage: Storage) -> int:
    memory = storage.memory
    with memory.lock:
        if memory.products:
            return 0
        for i, product in enumerate(SAMPLE_PRODUCTS[:MEMORY_SAMPLE_COUNT], start=1):
            memory.products.append(Product(id=str(i), **product.model_dump()))
    return MEMORY_SAMPLE_COUNT


def seed_sample_products(storage: Storage) -> int:
    """Fill an empty durable catalogue; if the durable store can't be used,
    put the sample catalogue in memory instead. Returns products added."""
    if storage.durable is not None and storage.selector.durable_available():
        try:
            if storage.durable.products.count() == 0:
                added = storage.durable.products.add_many(SAMPLE_PRODUCTS)
                logger.info("Sample products added to database (%d)", added)
                return added
            return 0
        except PyMongoError:
            logger.warning("Could not add sample products to database", exc_info=True)

    added = seed_memory(storage)
    if added:
        logger.info("Sample products loaded into memory (%d)", added)
    return added
