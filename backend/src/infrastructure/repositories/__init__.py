"""SQLAlchemy repositories implementing the matching store ports"""

from .catalog_repository import CatalogRepository, SessionScopedCatalogStore
from .order_item_repository import OrderItemRepository

__all__ = ["CatalogRepository", "SessionScopedCatalogStore", "OrderItemRepository"]
