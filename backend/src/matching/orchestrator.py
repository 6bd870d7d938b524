"""Match cascade orchestration.

Pipeline per order item:
1. Exact item-code lookup (confidence 100, short-circuits)
2. Fuzzy candidate shortlist (no candidates -> no match)
3. AI ranking of the shortlist
4. On AI failure: fall back to the top fuzzy candidate, or no match
5. Classify the result (no product -> manual review) and write the match record
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence

from .ai_resolver import AIResolver
from .candidate_retriever import CandidateRetriever
from .catalog_index import CatalogIndex
from .exact_resolver import ExactResolver
from .ports import (
    Candidate,
    MatchInput,
    MatchRecordUpdate,
    MatchResult,
    OrderItemStorePort,
    InferenceError,
    PersistenceError,
)
from .scorer import confidence_from_score
from .status import ConfidenceThresholds, MatchMethod, classify_match
from observability.metrics import match_results_total, match_confidence

logger = logging.getLogger(__name__)


class CascadeStage(str, Enum):
    """Stages of a single match attempt (not persisted)."""
    START = "start"
    EXACT_CHECKED = "exact-checked"
    CANDIDATES_FETCHED = "candidates-fetched"
    AI_ATTEMPTED = "ai-attempted"
    RESOLVED = "resolved"


_TRANSITIONS = {
    CascadeStage.START: {CascadeStage.EXACT_CHECKED},
    CascadeStage.EXACT_CHECKED: {CascadeStage.CANDIDATES_FETCHED, CascadeStage.RESOLVED},
    CascadeStage.CANDIDATES_FETCHED: {CascadeStage.AI_ATTEMPTED, CascadeStage.RESOLVED},
    CascadeStage.AI_ATTEMPTED: {CascadeStage.RESOLVED},
    CascadeStage.RESOLVED: set(),
}


def advance_stage(path: List[CascadeStage], target: CascadeStage) -> None:
    """Append ``target`` to a cascade path.

    Raises:
        RuntimeError: If the transition from the last stage is not allowed
    """
    current = path[-1]
    if target not in _TRANSITIONS[current]:
        raise RuntimeError(f"Illegal cascade transition {current.value} -> {target.value}")
    path.append(target)


class MatchOrchestrator:
    """Run the exact -> fuzzy -> AI cascade and persist its outcome.

    AI failures are absorbed into a degraded result (fuzzy or none). Store
    failures propagate: there is no safe default for the system of record.
    """

    def __init__(
        self,
        index: CatalogIndex,
        items: OrderItemStorePort,
        ai_resolver: AIResolver,
        thresholds: Optional[ConfidenceThresholds] = None,
        max_candidates: int = 10,
    ):
        """Initialize orchestrator.

        Args:
            index: Loaded catalog index
            items: Order-item store receiving match records
            ai_resolver: AI ranking stage
            thresholds: Classification thresholds (defaults 85/60)
            max_candidates: Shortlist size handed to the AI stage
        """
        if max_candidates < 1:
            raise ValueError(f"max_candidates must be >= 1, got {max_candidates}")

        self.index = index
        self.items = items
        self.ai_resolver = ai_resolver
        self.thresholds = thresholds or ConfidenceThresholds()
        self.max_candidates = max_candidates

    async def resolve(self, input_data: MatchInput, index: Optional[CatalogIndex] = None) -> MatchResult:
        """Run the cascade for one item without persisting anything.

        Args:
            input_data: Order item to match
            index: Catalog view to use (defaults to a view pinned now)

        Returns:
            Exactly one MatchResult

        Raises:
            CatalogUnavailable: If the catalog index is not loaded
        """
        index = index or self.index.pinned()
        path = [CascadeStage.START]

        result = await self._run_cascade(input_data, index, path)
        advance_stage(path, CascadeStage.RESOLVED)

        logger.debug(
            f"Cascade {' -> '.join(stage.value for stage in path)} via {result.method.value}",
            extra={"method": result.method.value},
        )
        return result

    async def _run_cascade(
        self,
        input_data: MatchInput,
        index: CatalogIndex,
        path: List[CascadeStage],
    ) -> MatchResult:
        product = ExactResolver(index).resolve(input_data.item_code)
        advance_stage(path, CascadeStage.EXACT_CHECKED)
        if product is not None:
            return MatchResult(
                matched_product_id=product.id,
                confidence=100,
                method=MatchMethod.EXACT,
                reasoning="Exact item number match",
            )

        candidates = CandidateRetriever(index).get_candidates(input_data, self.max_candidates)
        advance_stage(path, CascadeStage.CANDIDATES_FETCHED)
        if not candidates:
            return MatchResult(
                matched_product_id=None,
                confidence=0,
                method=MatchMethod.NONE,
                reasoning="No candidate products found",
            )

        advance_stage(path, CascadeStage.AI_ATTEMPTED)
        try:
            return await self.ai_resolver.rank(input_data, candidates)
        except InferenceError as e:
            logger.warning(f"AI matching failed, falling back to fuzzy: {e}")
            return self._fuzzy_fallback(candidates)

    async def process_item(self, item_id: str, input_data: MatchInput) -> MatchResult:
        """Match one order item and write its match record.

        Args:
            item_id: Order item id
            input_data: Match input fields of the item

        Returns:
            MatchResult of this attempt

        Raises:
            CatalogUnavailable: If the catalog index is not loaded
            NotFound: If the order item no longer exists
            PersistenceError: If the record write fails; ``err.result``
                holds the computed decision, the stored record is stale
        """
        index = self.index.pinned()
        result = await self.resolve(input_data, index=index)
        status = classify_match(result.matched_product_id, result.confidence, self.thresholds)

        resolved_price = None
        if result.matched_product_id:
            product = index.get(result.matched_product_id)
            resolved_price = product.unit_price if product else None

        update = MatchRecordUpdate(
            matched_product_id=result.matched_product_id,
            confidence=result.confidence,
            status=status,
            resolved_price=resolved_price,
            updated_at=datetime.now(timezone.utc),
        )

        try:
            self.items.write_match(item_id, update)
        except PersistenceError as e:
            logger.error(
                f"Failed to write match record for item {item_id}: {e}",
                extra={"item_id": item_id},
            )
            raise PersistenceError(
                f"Match computed but record for item {item_id} not saved: {e}",
                result=result,
            ) from e

        match_results_total.labels(method=result.method.value, status=status.value).inc()
        match_confidence.observe(result.confidence)
        logger.info(
            f"Item {item_id} matched via {result.method.value} "
            f"(confidence={result.confidence}, status={status.value})",
            extra={
                "item_id": item_id,
                "product_id": result.matched_product_id,
                "method": result.method.value,
                "status": status.value,
            },
        )
        return result

    async def batch_process(
        self,
        order_id: str,
        inputs: Sequence[MatchInput],
        item_ids: Optional[Sequence[str]] = None,
    ) -> List[MatchResult]:
        """Match every item of an order, one after another in position order.

        Args:
            order_id: Order id
            inputs: Match inputs in position order (position 1 first)
            item_ids: Item ids in position order, as returned by the creation
                call; read once from the store when omitted

        Returns:
            Results for the items that exist, in position order

        Raises:
            PersistenceError: If a store read or write fails (items matched
                before the failure keep their new records)
        """
        if item_ids is None:
            item_ids = self.items.list_item_ids(order_id)

        results = []
        for position, input_data in enumerate(inputs, start=1):
            if position > len(item_ids):
                logger.warning(
                    f"Order {order_id} has no item at position {position}; skipped",
                    extra={"order_id": order_id},
                )
                continue
            results.append(await self.process_item(item_ids[position - 1], input_data))

        logger.info(
            f"Matched {len(results)} of {len(inputs)} items for order {order_id}",
            extra={"order_id": order_id},
        )
        return results

    def _fuzzy_fallback(self, candidates: Sequence[Candidate]) -> MatchResult:
        """Degrade to the top-ranked fuzzy candidate if it carries a score."""
        best = candidates[0]
        if best.score is not None:
            return MatchResult(
                matched_product_id=best.product.id,
                confidence=confidence_from_score(best.score),
                method=MatchMethod.FUZZY,
                reasoning="Fuzzy match fallback (AI unavailable)",
            )
        return MatchResult(
            matched_product_id=None,
            confidence=0,
            method=MatchMethod.NONE,
            reasoning="Matching failed",
        )
