"""Matching service facade and wiring.

Single entry point for callers (order creation flow, review screens,
webhook ingesters): item matching, batch matching and the review actions.
"""

import logging
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from config import Settings, get_settings
from domain.ai.ports import LLMProviderPort
from infrastructure.ai.openai_provider import OpenAICompatibleProvider
from infrastructure.repositories import CatalogRepository, OrderItemRepository
from observability.request_id import ensure_request_id
from .ai_resolver import AIResolver
from .catalog_index import CatalogIndex
from .lifecycle import MatchLifecycleManager
from .orchestrator import MatchOrchestrator
from .ports import CatalogStorePort, MatchInput, MatchResult, OrderItemStorePort
from .status import ConfidenceThresholds

logger = logging.getLogger(__name__)


class MatchingService:
    """Facade over the match orchestrator and lifecycle manager."""

    def __init__(
        self,
        index: CatalogIndex,
        orchestrator: MatchOrchestrator,
        lifecycle: MatchLifecycleManager,
    ):
        self.index = index
        self.orchestrator = orchestrator
        self.lifecycle = lifecycle

    def reload_catalog(self) -> None:
        """Rebuild the catalog index (e.g. after a product import)."""
        self.index.reload()

    async def process_item(self, item_id: str, input_data: MatchInput) -> MatchResult:
        """Match a single order item and persist the outcome."""
        return await self.orchestrator.process_item(item_id, input_data)

    async def batch_process(
        self,
        order_id: str,
        inputs: Sequence[MatchInput],
        item_ids: Optional[Sequence[str]] = None,
    ) -> List[MatchResult]:
        """Match every item of an order sequentially in position order."""
        ensure_request_id()
        return await self.orchestrator.batch_process(order_id, inputs, item_ids=item_ids)

    async def add_items(
        self,
        order_id: str,
        inputs: Sequence[MatchInput],
    ) -> List[Tuple[str, MatchResult]]:
        """Create pending items on an order and match them.

        Returns:
            (item_id, result) pairs in position order
        """
        ensure_request_id()
        item_ids = self.orchestrator.items.create_items(order_id, inputs)
        results = await self.orchestrator.batch_process(order_id, inputs, item_ids=item_ids)
        return list(zip(item_ids, results))

    def confirm_match(self, item_id: str, product_id: str, final_price: Optional[Decimal] = None) -> None:
        self.lifecycle.confirm_match(item_id, product_id, final_price)

    def reject_match(self, item_id: str) -> None:
        self.lifecycle.reject_match(item_id)

    async def reprocess_match(self, item_id: str) -> MatchResult:
        ensure_request_id()
        return await self.lifecycle.reprocess_match(item_id)


def build_llm_provider(settings: Settings) -> Optional[LLMProviderPort]:
    """Create the inference provider, or None when no API key is configured."""
    if not settings.FIREWORKS_API_KEY:
        logger.warning("FIREWORKS_API_KEY not set; AI matching disabled, fuzzy fallback only")
        return None
    return OpenAICompatibleProvider(
        api_key=settings.FIREWORKS_API_KEY,
        base_url=settings.AI_BASE_URL,
        model=settings.AI_MODEL,
        timeout_seconds=settings.ai_timeout_seconds,
        max_attempts=settings.MATCH_AI_RETRIES,
    )


def build_catalog_index(catalog: CatalogStorePort, settings: Settings) -> CatalogIndex:
    """Create an (unloaded) catalog index configured from settings."""
    return CatalogIndex(
        catalog,
        similarity_threshold=settings.MATCH_FUZZY_THRESHOLD,
        edit_distance_budget=settings.MATCH_FUZZY_DISTANCE,
    )


def build_matching_service(
    catalog: CatalogStorePort,
    items: OrderItemStorePort,
    settings: Optional[Settings] = None,
    llm_provider: Optional[LLMProviderPort] = None,
    index: Optional[CatalogIndex] = None,
) -> MatchingService:
    """Wire a MatchingService from store ports and settings.

    A new catalog index is built and loaded unless a shared one is passed.

    Args:
        catalog: Catalog store
        items: Order-item store
        settings: Settings (defaults to get_settings())
        llm_provider: Inference provider; built from settings when omitted,
            left out (AI stage always falls back) when no API key is set
        index: Shared, already loaded catalog index

    Raises:
        CatalogUnavailable: If the initial catalog load fails
    """
    settings = settings or get_settings()

    if llm_provider is None:
        llm_provider = build_llm_provider(settings)

    if index is None:
        index = build_catalog_index(catalog, settings)
        index.load()

    return assemble_matching_service(index, catalog, items, settings, llm_provider)


def assemble_matching_service(
    index: CatalogIndex,
    catalog: CatalogStorePort,
    items: OrderItemStorePort,
    settings: Settings,
    llm_provider: Optional[LLMProviderPort],
) -> MatchingService:
    """Wire a MatchingService from ready-made parts.

    ``llm_provider`` may be None, in which case the AI stage always falls back.
    """
    ai_resolver = AIResolver(
        llm_provider,
        temperature=settings.MATCH_AI_TEMPERATURE,
        max_tokens=settings.MATCH_AI_MAX_TOKENS,
        # Overall deadline covers every attempt the provider may make
        timeout_seconds=settings.ai_timeout_seconds * settings.MATCH_AI_RETRIES,
    )
    orchestrator = MatchOrchestrator(
        index,
        items,
        ai_resolver,
        thresholds=ConfidenceThresholds(
            auto_accept=settings.MATCH_AUTO_ACCEPT_THRESHOLD,
            quick_review=settings.MATCH_QUICK_REVIEW_THRESHOLD,
        ),
        max_candidates=settings.MATCH_MAX_AI_CANDIDATES,
    )
    lifecycle = MatchLifecycleManager(catalog, items, orchestrator)
    return MatchingService(index, orchestrator, lifecycle)


def create_matching_service(
    session: Session,
    settings: Optional[Settings] = None,
    llm_provider: Optional[LLMProviderPort] = None,
) -> MatchingService:
    """Wire a MatchingService backed by SQLAlchemy repositories on ``session``."""
    return build_matching_service(
        CatalogRepository(session),
        OrderItemRepository(session),
        settings=settings,
        llm_provider=llm_provider,
    )
