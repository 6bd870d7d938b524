"""Catalog repository: read side of the product catalog for matching"""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from database import get_db_session
from models.product import Product as ProductModel
from matching.ports import CatalogStorePort, Product, PersistenceError


def to_domain_product(row: ProductModel) -> Product:
    """Map a products row onto the matching engine's Product."""
    return Product(
        id=row.id,
        item_code=row.item_number or "",
        description=row.description or "",
        unit_price=row.price,
        active=bool(row.is_active),
    )


class CatalogRepository(CatalogStorePort):
    """Repository for products table reads.

    Implements the catalog store port consumed by the catalog index and the
    match lifecycle manager.
    """

    def __init__(self, db: Session):
        """Initialize repository with database session.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def list_active_products(self) -> List[Product]:
        """List active products in catalog order (oldest first).

        Raises:
            PersistenceError: If the query fails
        """
        query = (
            select(ProductModel)
            .where(ProductModel.is_active.is_(True))
            .order_by(ProductModel.created_at, ProductModel.id)
        )
        try:
            rows = self.db.execute(query).scalars().all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to list active products: {e}") from e
        return [to_domain_product(row) for row in rows]

    def get_product(self, product_id: str) -> Optional[Product]:
        """Fetch a product by id, active or not.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            row = self.db.get(ProductModel, product_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(f"Failed to read product {product_id}: {e}") from e
        return to_domain_product(row) if row is not None else None


class SessionScopedCatalogStore(CatalogStorePort):
    """Catalog store for process-wide consumers such as the shared index.

    Each read opens its own session and closes it before returning, so no
    transaction or pooled connection outlives the call and concurrent
    reloads never share a session.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def list_active_products(self) -> List[Product]:
        """List active products in catalog order.

        Raises:
            PersistenceError: If the session or the query fails
        """
        try:
            with get_db_session(self.session_factory) as session:
                return CatalogRepository(session).list_active_products()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list active products: {e}") from e

    def get_product(self, product_id: str) -> Optional[Product]:
        """Fetch a product by id, active or not.

        Raises:
            PersistenceError: If the session or the query fails
        """
        try:
            with get_db_session(self.session_factory) as session:
                return CatalogRepository(session).get_product(product_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read product {product_id}: {e}") from e
