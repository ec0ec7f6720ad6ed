from datetime import UTC, datetime
from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from core.logging import PaddleEvents
from db.models import Order, OrderStatus
from payments.types import LineItem, OrderDetails

log = structlog.get_logger(__name__)


def to_details(order: Order) -> OrderDetails:
    return OrderDetails(
        id=order.id,
        total=Decimal(order.total),
        tax=Decimal(order.total_tax),
        billing_email=order.billing_email,
        billing_country=order.billing_country,
        billing_postcode=order.billing_postcode,
        order_key=order.order_key,
        status=order.status.value,
        line_items=tuple(
            LineItem(product_id=item.product_id, name=item.name)
            for item in order.line_items
        ),
    )


class OrderLedger:
    """Order lookups and payment completion over a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> OrderDetails | None:
        order = self.db.get(Order, order_id)
        return to_details(order) if order else None

    def is_paid(self, order_id: int) -> bool:
        order = self.db.get(Order, order_id)
        return order is not None and order.status == OrderStatus.paid

    def mark_paid(self, order_id: int) -> bool:
        """Complete payment for the order. Returns False when it was already paid."""
        order = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .one_or_none()
        )
        if order is None:
            raise LookupError(f"Order {order_id} not found")
        if order.status == OrderStatus.paid:
            return False

        order.status = OrderStatus.paid
        order.paid_at = datetime.now(UTC)
        self.db.commit()
        log.info(PaddleEvents.ORDER_PAID, order_id=order_id)
        return True
