"""Human actions on computed matches: confirm, reject, reprocess."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from .orchestrator import MatchOrchestrator
from .ports import (
    CatalogStorePort,
    MatchRecordUpdate,
    MatchResult,
    OrderItemRecord,
    OrderItemStorePort,
    NotFound,
)
from .status import MatchStatus

logger = logging.getLogger(__name__)


class MatchLifecycleManager:
    """Mutate a previously computed match record on behalf of a reviewer."""

    def __init__(
        self,
        catalog: CatalogStorePort,
        items: OrderItemStorePort,
        orchestrator: MatchOrchestrator,
    ):
        self.catalog = catalog
        self.items = items
        self.orchestrator = orchestrator

    def confirm_match(
        self,
        item_id: str,
        product_id: str,
        final_price: Optional[Decimal] = None,
    ) -> None:
        """Confirm a product for an order item.

        Args:
            item_id: Order item id
            product_id: Product chosen by the reviewer
            final_price: Agreed price; catalog price when omitted

        Raises:
            NotFound: If the product or the order item does not exist
            PersistenceError: If the store access fails
        """
        product = self.catalog.get_product(product_id)
        if product is None:
            raise NotFound(f"Product {product_id} not found")

        item = self._require_item(item_id)

        resolved_price = final_price if final_price is not None else product.unit_price
        self.items.write_match(
            item_id,
            MatchRecordUpdate(
                matched_product_id=product.id,
                confidence=item.confidence,
                status=MatchStatus.CONFIRMED,
                resolved_price=resolved_price,
                updated_at=datetime.now(timezone.utc),
            ),
        )
        logger.info(
            f"Item {item_id} confirmed as product {product.id}",
            extra={"item_id": item_id, "product_id": product.id},
        )

    def reject_match(self, item_id: str) -> None:
        """Reject the current match of an order item.

        Clears the matched product and price. Only a later confirm or
        reprocess moves the item out of ``rejected``.

        Raises:
            NotFound: If the order item does not exist
            PersistenceError: If the store access fails
        """
        item = self._require_item(item_id)
        self.items.write_match(
            item_id,
            MatchRecordUpdate(
                matched_product_id=None,
                confidence=item.confidence,
                status=MatchStatus.REJECTED,
                resolved_price=None,
                updated_at=datetime.now(timezone.utc),
            ),
        )
        logger.info(f"Item {item_id} match rejected", extra={"item_id": item_id})

    async def reprocess_match(self, item_id: str) -> MatchResult:
        """Re-run the full cascade for an order item from its stored inputs.

        Safe to repeat: each run overwrites the record in one write, and the
        previous record stands until that write succeeds.

        Raises:
            NotFound: If the order item does not exist
            CatalogUnavailable: If the catalog index is not loaded
            PersistenceError: If the store access fails
        """
        item = self._require_item(item_id)
        logger.info(f"Reprocessing item {item_id}", extra={"item_id": item_id})
        return await self.orchestrator.process_item(item_id, item.input)

    def _require_item(self, item_id: str) -> OrderItemRecord:
        item = self.items.read_item(item_id)
        if item is None:
            raise NotFound(f"Order item {item_id} not found")
        return item
