"""Pydantic schemas for matching endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .ports import MatchInput, MatchResult
from .status import MatchMethod, MatchStatus


class MatchInputSchema(BaseModel):
    """Order item fields submitted for matching."""
    item_code: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    quantity: Optional[int] = 1
    image_url: Optional[str] = None

    def to_domain(self) -> MatchInput:
        return MatchInput(
            item_code=self.item_code,
            description=self.description,
            quantity=self.quantity,
            image_url=self.image_url,
        )


class MatchResultSchema(BaseModel):
    """Result of one match attempt."""
    matched_product_id: Optional[str]
    confidence: int = Field(ge=0, le=100)
    method: MatchMethod
    reasoning: str

    @classmethod
    def from_result(cls, result: MatchResult) -> "MatchResultSchema":
        return cls(
            matched_product_id=result.matched_product_id,
            confidence=result.confidence,
            method=result.method,
            reasoning=result.reasoning,
        )


class ItemMatchResultSchema(MatchResultSchema):
    """Match result tagged with the order item it belongs to."""
    item_id: str


class BatchMatchRequest(BaseModel):
    """Order items in position order (position 1 first)."""
    items: List[MatchInputSchema] = Field(min_length=1)


class BatchMatchResponse(BaseModel):
    """Results of matching an order, in position order."""
    order_id: str
    matched: int
    results: List[MatchResultSchema]


class CreateItemsResponse(BaseModel):
    """Items created on an order, each with its match result."""
    order_id: str
    results: List[ItemMatchResultSchema]


class ConfirmMatchRequest(BaseModel):
    """Reviewer's choice of product for an order item."""
    product_id: str
    final_price: Optional[Decimal] = Field(default=None, ge=0)


class MatchActionResponse(BaseModel):
    """Acknowledgement of a confirm or reject action."""
    item_id: str
    status: MatchStatus


class CatalogReloadResponse(BaseModel):
    """State of the catalog index after a reload."""
    product_count: int
    duplicate_codes: List[str]
    loaded_at: datetime


class MatchErrorDetail(BaseModel):
    """Error body for failed matching requests.

    ``result`` carries the computed match when only the record write failed.
    """
    error: str
    message: str
    result: Optional[Dict[str, Any]] = None
