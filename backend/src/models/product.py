"""Product SQLAlchemy model"""

from sqlalchemy import Column, Text, String, Boolean, Integer, Numeric, DateTime, Index

from .base import Base, generate_id, utcnow


class Product(Base):
    """Catalog product master data.

    Only active products take part in order item matching. ``item_number``
    is expected to be unique among active products but is not enforced.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_item_number", "item_number"),
        Index("ix_products_is_active", "is_active"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    item_number = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    quantity_on_hand = Column(Integer, nullable=False, default=0)
    price = Column(Numeric(12, 2), nullable=True)
    image_url = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
