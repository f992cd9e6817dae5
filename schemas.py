from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Documents are stored with snake_case keys; the HTTP API speaks camelCase.


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


class PaymentMethod(str, Enum):
    COD = "cod"
    ESEWA = "esewa"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"


# ----------------------
# Collections
# ----------------------
class ProductIn(CamelModel):
    name: str = Field(..., description="Product name")
    price: float = Field(..., description="Unit price")
    description: Optional[str] = Field(None, description="Product description")
    image: Optional[str] = Field(None, description="Image URL")
    category: Optional[str] = Field(None, description="Catalogue category")
    in_stock: bool = Field(True, description="Whether the product is listed")


class Product(ProductIn):
    id: str
    created_at: datetime = Field(default_factory=utcnow)


class SubscriberIn(CamelModel):
    email: str = Field(..., description="Subscriber email, unique")
    name: Optional[str] = None


class Subscriber(SubscriberIn):
    created_at: datetime = Field(default_factory=utcnow)


class OrderItem(CamelModel):
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    quantity: int = 1
    price: float = 0
    image: Optional[str] = None


class OrderIn(CamelModel):
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    items: List[OrderItem] = Field(default_factory=list)
    total_amount: float = 0
    payment_method: PaymentMethod = PaymentMethod.COD


class Order(OrderIn):
    order_id: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.PENDING
    created_at: datetime = Field(default_factory=utcnow)


# ----------------------
# Request / response envelopes
# ----------------------
class ProductCreated(CamelModel):
    success: bool = True
    product: Product


class SubscribeResult(CamelModel):
    success: bool = True
    message: str


class OrderPlaced(CamelModel):
    success: bool = True
    order_id: str
    message: str


class PaymentVerification(CamelModel):
    order_id: Optional[str] = None
    transaction_id: Optional[str] = None


class PaymentVerified(CamelModel):
    success: bool = True
    message: str
    order_id: Optional[str] = None


class Failure(CamelModel):
    success: bool = False
    message: str


class HealthStatus(CamelModel):
    status: str
    database: str
    products: int
    subscribers: int
    orders: int
    timestamp: str


class ServiceIndex(CamelModel):
    message: str
    version: str
    endpoints: Dict[str, str]
    status: str
