"""
Order lifecycle: placement, (simulated) eSewa payment verification and lookups.

orderStatus:   pending -> confirmed -> shipped -> delivered
paymentStatus: pending -> paid | failed

Only the pending -> confirmed / pending -> paid step is driven here, by
``verify_payment``.
"""
import logging
from typing import List, Optional

from ids import MillisecondIds
from schemas import Order, OrderIn, OrderStatus, PaymentStatus
from storage import Storage

logger = logging.getLogger(__name__)

ORDER_ID_PREFIX = "BR"


def confirmation_message(order_id: str) -> str:
    return f"Order #{order_id} placed successfully!"


class OrderService:

    def __init__(self, storage: Storage, ids: Optional[MillisecondIds] = None):
        self.storage = storage
        self.ids = ids or MillisecondIds()

    def new_order_id(self) -> str:
        return f"{ORDER_ID_PREFIX}{self.ids.next()}"

    def place_order(self, payload: OrderIn) -> Order:
        """Persist a new pending order on whichever store is active.

        Durable-store errors propagate to the caller.
        """
        order = Order(
            order_id=self.new_order_id(),
            payment_status=PaymentStatus.PENDING,
            order_status=OrderStatus.PENDING,
            **payload.model_dump(),
        )
        repos = self.storage.repositories()
        repos.orders.create(order)
        logger.info("Order %s placed (%s storage, %s)", order.order_id,
                    "durable" if repos.durable else "memory", order.payment_method)
        return order

    def verify_payment(self, order_id: Optional[str], transaction_id: Optional[str] = None) -> bool:
        """Mark an order paid and confirmed.

        The transaction id is not checked against eSewa. Returns whether an
        order matched; an unknown id changes nothing. Calling it again on a
        paid order leaves it as is.
        """
        found = bool(order_id) and self.storage.repositories().orders.mark_paid(order_id)
        if found:
            logger.info("Payment recorded for order %s (transaction %s)", order_id, transaction_id)
        else:
            logger.warning("Payment verification for unknown order %s (transaction %s)",
                           order_id, transaction_id)
        return found

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.storage.repositories().orders.find_by_key(order_id)

    def list_orders(self) -> List[Order]:
        return self.storage.repositories().orders.list()
