"""Matching ports and interfaces for hexagonal architecture.

Value types shared by the cascade stages, the store ports the engine consumes
from the system of record, and the matching error taxonomy.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, List, Sequence

from .status import MatchMethod, MatchStatus


@dataclass(frozen=True)
class Product:
    """Catalog product as seen by the matching engine.

    Attributes:
        id: Opaque product identifier
        item_code: Catalog item number
        description: Free-text product description
        unit_price: Catalog unit price
        active: Only active products are eligible match targets
    """
    id: str
    item_code: str
    description: str
    unit_price: Optional[Decimal]
    active: bool = True


@dataclass
class MatchInput:
    """Order item fields the cascade resolves against the catalog.

    Attributes:
        item_code: Item number as written on the order (optional)
        description: Free-text description (optional)
        quantity: Ordered quantity, defaults to 1 when absent or non-positive
        image_url: Optional image reference (carried, not used for matching)
    """
    item_code: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[int] = 1
    image_url: Optional[str] = None

    def __post_init__(self):
        if not self.quantity or self.quantity < 1:
            self.quantity = 1


@dataclass(frozen=True)
class Candidate:
    """Catalog product proposed as a possible match.

    Attributes:
        product: Candidate product
        score: Fuzzy score in [0, 1] (0 = perfect, 1 = worst), None when the
            candidate comes from the unscored catalog-prefix fallback
    """
    product: Product
    score: Optional[float] = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of one match attempt. Written once, never mutated.

    Attributes:
        matched_product_id: Matched product id (None if no match)
        confidence: Integer confidence 0-100
        method: Cascade stage that produced the result
        reasoning: Human-readable explanation
    """
    matched_product_id: Optional[str]
    confidence: int
    method: MatchMethod
    reasoning: str


@dataclass(frozen=True)
class MatchRecordUpdate:
    """Full overwrite of an order item's match record."""
    matched_product_id: Optional[str]
    confidence: Optional[int]
    status: MatchStatus
    resolved_price: Optional[Decimal]
    updated_at: datetime


@dataclass(frozen=True)
class OrderItemRecord:
    """Order item as read from the order-item store.

    Attributes:
        id: Order item id
        order_id: Owning order id
        position: 1-based position within the order
        input: Match input fields of the item
        matched_product_id: Current matched product (None if none)
        confidence: Current match confidence (None before first match)
        status: Current match status
        resolved_price: Current resolved price
        updated_at: Last update timestamp
    """
    id: str
    order_id: str
    position: int
    input: MatchInput
    matched_product_id: Optional[str]
    confidence: Optional[int]
    status: MatchStatus
    resolved_price: Optional[Decimal]
    updated_at: Optional[datetime] = None


class CatalogStorePort(ABC):
    """Port interface for reading the product catalog."""

    @abstractmethod
    def list_active_products(self) -> List[Product]:
        """List all active products in catalog order.

        Raises:
            PersistenceError: If the store read fails
        """
        pass

    @abstractmethod
    def get_product(self, product_id: str) -> Optional[Product]:
        """Fetch a single product by id (active or not).

        Raises:
            PersistenceError: If the store read fails
        """
        pass


class OrderItemStorePort(ABC):
    """Port interface for reading order items and writing match records."""

    @abstractmethod
    def read_item(self, item_id: str) -> Optional[OrderItemRecord]:
        """Read an order item with its current match record.

        Raises:
            PersistenceError: If the store read fails
        """
        pass

    @abstractmethod
    def write_match(self, item_id: str, update: MatchRecordUpdate) -> None:
        """Overwrite the match record of an order item.

        Raises:
            NotFound: If the item does not exist
            PersistenceError: If the store write fails
        """
        pass

    @abstractmethod
    def list_item_ids(self, order_id: str) -> List[str]:
        """List item ids of an order in position order.

        Raises:
            PersistenceError: If the store read fails
        """
        pass

    @abstractmethod
    def create_items(self, order_id: str, inputs: Sequence[MatchInput]) -> List[str]:
        """Create pending order items and return their ids in position order.

        Raises:
            NotFound: If the order does not exist
            PersistenceError: If the store write fails
        """
        pass


class MatchingError(Exception):
    """Base exception for matching errors."""
    pass


class CatalogUnavailable(MatchingError):
    """Catalog index could not be loaded; no resolution until reloaded."""
    pass


class InferenceError(MatchingError):
    """AI inference failed, timed out or returned an unusable response."""
    pass


class PersistenceError(MatchingError):
    """Store access failed.

    When raised after a match decision was computed, ``result`` carries that
    decision; the stored record is stale.
    """

    def __init__(self, message: str, result: Optional[MatchResult] = None):
        super().__init__(message)
        self.result = result


class NotFound(MatchingError):
    """Referenced order item or product does not exist."""
    pass
