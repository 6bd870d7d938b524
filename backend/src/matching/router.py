"""Matching API endpoints.

Thin HTTP surface over MatchingService: single-item and per-order matching,
and the reviewer actions on computed matches.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from dependencies import get_matching_service
from .ports import (
    MatchingError,
    CatalogUnavailable,
    PersistenceError,
    NotFound,
)
from .schemas import (
    MatchInputSchema,
    MatchResultSchema,
    ItemMatchResultSchema,
    BatchMatchRequest,
    BatchMatchResponse,
    CreateItemsResponse,
    ConfirmMatchRequest,
    MatchActionResponse,
    CatalogReloadResponse,
    MatchErrorDetail,
)
from .service import MatchingService
from .status import MatchStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["matching"])


def to_http_error(exc: MatchingError) -> HTTPException:
    """Map a matching error onto an HTTP error response.

    NotFound -> 404, CatalogUnavailable -> 503, PersistenceError -> 503 with
    the computed result attached when the decision was made but not saved.
    """
    if isinstance(exc, NotFound):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=MatchErrorDetail(error="not_found", message=str(exc)).model_dump(),
        )
    if isinstance(exc, CatalogUnavailable):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=MatchErrorDetail(error="catalog_unavailable", message=str(exc)).model_dump(),
        )
    if isinstance(exc, PersistenceError):
        result = None
        if exc.result is not None:
            result = MatchResultSchema.from_result(exc.result).model_dump(mode="json")
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=MatchErrorDetail(
                error="persistence_error",
                message=str(exc),
                result=result,
            ).model_dump(),
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=MatchErrorDetail(error="matching_error", message=str(exc)).model_dump(),
    )


@router.post("/order-items/{item_id}/match", response_model=MatchResultSchema)
async def match_item(
    item_id: str,
    request: MatchInputSchema,
    service: MatchingService = Depends(get_matching_service),
):
    """Match one order item against the catalog and store the result.

    Args:
        item_id: Order item id
        request: Match input fields
        service: Matching service

    Returns:
        MatchResult of this attempt

    Raises:
        HTTPException: 404 if the item does not exist, 503 if the catalog or
            the store is unavailable
    """
    try:
        result = await service.process_item(item_id, request.to_domain())
    except MatchingError as e:
        raise to_http_error(e) from e
    return MatchResultSchema.from_result(result)


@router.post("/order-items/{item_id}/reprocess", response_model=MatchResultSchema)
async def reprocess_item(
    item_id: str,
    service: MatchingService = Depends(get_matching_service),
):
    """Re-run matching for an order item from its stored fields."""
    try:
        result = await service.reprocess_match(item_id)
    except MatchingError as e:
        raise to_http_error(e) from e
    return MatchResultSchema.from_result(result)


@router.post("/order-items/{item_id}/confirm", response_model=MatchActionResponse)
def confirm_item(
    item_id: str,
    request: ConfirmMatchRequest,
    service: MatchingService = Depends(get_matching_service),
):
    """Confirm a product for an order item (reviewer action).

    The final price defaults to the product's catalog price.
    """
    try:
        service.confirm_match(item_id, request.product_id, request.final_price)
    except MatchingError as e:
        raise to_http_error(e) from e
    return MatchActionResponse(item_id=item_id, status=MatchStatus.CONFIRMED)


@router.post("/order-items/{item_id}/reject", response_model=MatchActionResponse)
def reject_item(
    item_id: str,
    service: MatchingService = Depends(get_matching_service),
):
    """Reject the current match of an order item (reviewer action)."""
    try:
        service.reject_match(item_id)
    except MatchingError as e:
        raise to_http_error(e) from e
    return MatchActionResponse(item_id=item_id, status=MatchStatus.REJECTED)


@router.post("/orders/{order_id}/match", response_model=BatchMatchResponse)
async def match_order(
    order_id: str,
    request: BatchMatchRequest,
    service: MatchingService = Depends(get_matching_service),
):
    """Match the existing items of an order, in position order.

    Inputs map onto item positions 1..n; positions without an item are
    skipped.
    """
    inputs = [item.to_domain() for item in request.items]
    try:
        results = await service.batch_process(order_id, inputs)
    except MatchingError as e:
        raise to_http_error(e) from e
    return BatchMatchResponse(
        order_id=order_id,
        matched=len(results),
        results=[MatchResultSchema.from_result(r) for r in results],
    )


@router.post(
    "/orders/{order_id}/items",
    response_model=CreateItemsResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_order_items(
    order_id: str,
    request: BatchMatchRequest,
    service: MatchingService = Depends(get_matching_service),
):
    """Append items to an order and match each of them."""
    inputs = [item.to_domain() for item in request.items]
    try:
        matched = await service.add_items(order_id, inputs)
    except MatchingError as e:
        raise to_http_error(e) from e
    return CreateItemsResponse(
        order_id=order_id,
        results=[
            ItemMatchResultSchema(item_id=item_id, **MatchResultSchema.from_result(result).model_dump())
            for item_id, result in matched
        ],
    )


@router.post("/catalog/reload", response_model=CatalogReloadResponse)
def reload_catalog(service: MatchingService = Depends(get_matching_service)):
    """Rebuild the catalog index after products were added or changed."""
    try:
        service.reload_catalog()
    except MatchingError as e:
        raise to_http_error(e) from e

    snapshot = service.index.snapshot
    return CatalogReloadResponse(
        product_count=len(snapshot),
        duplicate_codes=sorted(snapshot.duplicate_codes),
        loaded_at=snapshot.loaded_at,
    )
