"""
Database Models Module

This module defines SQLAlchemy ORM models for:
- Store orders and their line items
- Gateway options (vendor credentials, cached public key, checkout flags)
"""

import secrets
from datetime import datetime, UTC
from enum import Enum as PyEnum

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def _order_key() -> str:
    return f"wc_order_{secrets.token_hex(6)}"


class OrderStatus(PyEnum):
    pending = "pending"
    processing = "processing"
    paid = "paid"
    cancelled = "cancelled"


class Order(Base):
    """A store order awaiting or having received payment."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_key = Column(String(64), nullable=False, default=_order_key)
    status = Column(Enum(OrderStatus), nullable=False, default=OrderStatus.pending)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    total_tax = Column(Numeric(12, 2), nullable=False, default=0)
    billing_email = Column(String(255), nullable=False, default="")
    billing_country = Column(String(2), nullable=False, default="")
    billing_postcode = Column(String(32), nullable=False, default="")
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    paid_at = Column(DateTime, nullable=True)

    line_items = relationship(
        "OrderLineItem",
        back_populates="order",
        order_by="OrderLineItem.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status})>"


class OrderLineItem(Base):
    __tablename__ = "order_line_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False)
    name = Column(String(255), nullable=False)

    order = relationship("Order", back_populates="line_items")

    def __repr__(self):
        return f"<OrderLineItem(order_id={self.order_id}, name={self.name!r})>"


class Option(Base):
    """Key/value gateway option, the equivalent of a CMS options row."""

    __tablename__ = "options"

    key = Column(String(191), primary_key=True)
    value = Column(Text, nullable=False, default="")
    updated_at = Column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    def __repr__(self):
        return f"<Option(key={self.key!r})>"
