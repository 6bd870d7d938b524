"""Order and OrderItem SQLAlchemy models"""

from enum import Enum

from sqlalchemy import (
    Column,
    Text,
    String,
    Integer,
    Numeric,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, generate_id, utcnow


class OrderStatus(str, Enum):
    """Order fulfilment status."""
    DRAFT = "draft"
    PENDING = "pending"
    PAID = "paid"
    READY_TO_SHIP = "ready_to_ship"
    SHIPPED = "shipped"


class Order(Base):
    """Customer order containing positioned order items."""
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=generate_id)
    customer_name = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default=OrderStatus.DRAFT.value)
    total_amount = Column(Numeric(12, 2), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.position",
        cascade="all, delete-orphan",
    )


class OrderItem(Base):
    """Order line with the raw item fields and its match record.

    Match record columns: matched_product_id, match_confidence, match_status,
    final_price. New items start in match_status 'pending'.
    """
    __tablename__ = "order_items"
    __table_args__ = (
        UniqueConstraint("order_id", "position", name="uq_order_items_order_position"),
        Index("ix_order_items_order_id", "order_id"),
        Index("ix_order_items_match_status", "match_status"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)
    item_number = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    quantity = Column(Integer, nullable=False, default=1)
    matched_product_id = Column(String(36), ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    match_confidence = Column(Integer, nullable=True)
    match_status = Column(String(20), nullable=False, default="pending")
    final_price = Column(Numeric(12, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    order = relationship("Order", back_populates="items")
    matched_product = relationship("Product")
