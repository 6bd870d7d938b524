"""Unit tests for MatchLifecycleManager: confirm, reject, reprocess"""

from decimal import Decimal

import pytest
import pytest_asyncio

from matching.ai_resolver import AIResolver
from matching.lifecycle import MatchLifecycleManager
from matching.orchestrator import MatchOrchestrator
from matching.ports import MatchInput, NotFound, PersistenceError, Product
from matching.status import MatchMethod, MatchStatus


@pytest.fixture
def lifecycle(catalog_store, item_store, orchestrator):
    return MatchLifecycleManager(catalog_store, item_store, orchestrator)


@pytest_asyncio.fixture
async def matched_item(orchestrator, item_store):
    """Order item already matched by the cascade (AI down -> fuzzy)."""
    input_data = MatchInput(description="leather walet black")
    item_store.add("item-1", input_data)
    await orchestrator.process_item("item-1", input_data)
    return item_store.read_item("item-1")


class TestConfirmMatch:

    @pytest.mark.asyncio
    async def test_confirm_uses_catalog_price(self, lifecycle, item_store, matched_item):
        lifecycle.confirm_match("item-1", "p-wallet-brown")

        record = item_store.read_item("item-1")
        assert record.status == MatchStatus.CONFIRMED
        assert record.matched_product_id == "p-wallet-brown"
        assert record.resolved_price == Decimal("31.50")
        assert record.confidence == matched_item.confidence

    @pytest.mark.asyncio
    async def test_confirm_with_final_price(self, lifecycle, item_store, matched_item):
        lifecycle.confirm_match("item-1", "p-wallet-black", final_price=Decimal("25.00"))
        assert item_store.read_item("item-1").resolved_price == Decimal("25.00")

    @pytest.mark.asyncio
    async def test_confirm_zero_price_is_kept(self, lifecycle, item_store, matched_item):
        lifecycle.confirm_match("item-1", "p-wallet-black", final_price=Decimal("0"))
        assert item_store.read_item("item-1").resolved_price == Decimal("0")

    @pytest.mark.asyncio
    async def test_unknown_product_leaves_record_unchanged(self, lifecycle, item_store, matched_item):
        """Test confirming a nonexistent product fails without touching the record"""
        writes_before = len(item_store.writes)

        with pytest.raises(NotFound):
            lifecycle.confirm_match("item-1", "p-does-not-exist")

        assert item_store.read_item("item-1") == matched_item
        assert len(item_store.writes) == writes_before

    def test_unknown_item(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.confirm_match("missing", "p-wallet-black")

    def test_inactive_product_can_be_confirmed(self, lifecycle, catalog_store, item_store):
        """Test a reviewer may pick a product that left the active catalog"""
        catalog_store.products.append(
            Product(id="p-retired", item_code="OLD-1", description="Retired", unit_price=Decimal("3.00"), active=False)
        )
        item_store.add("item-1", MatchInput(description="old thing"))

        lifecycle.confirm_match("item-1", "p-retired")

        assert item_store.read_item("item-1").matched_product_id == "p-retired"

    def test_store_failure_propagates(self, lifecycle, item_store):
        item_store.add("item-1", MatchInput(description="wallet"))
        item_store.fail_writes = True
        with pytest.raises(PersistenceError):
            lifecycle.confirm_match("item-1", "p-wallet-black")


class TestRejectMatch:

    @pytest.mark.asyncio
    async def test_reject_clears_product_and_price(self, lifecycle, item_store, matched_item):
        lifecycle.reject_match("item-1")

        record = item_store.read_item("item-1")
        assert record.status == MatchStatus.REJECTED
        assert record.matched_product_id is None
        assert record.resolved_price is None
        assert record.confidence == matched_item.confidence

    def test_unknown_item(self, lifecycle):
        with pytest.raises(NotFound):
            lifecycle.reject_match("missing")


class TestReprocessMatch:

    @pytest.mark.asyncio
    async def test_reprocess_reruns_cascade_from_stored_input(self, lifecycle, item_store, matched_item):
        lifecycle.reject_match("item-1")

        result = await lifecycle.reprocess_match("item-1")

        assert result.method == MatchMethod.FUZZY
        record = item_store.read_item("item-1")
        assert record.matched_product_id == "p-wallet-black"
        assert record.status in (MatchStatus.AUTO_MATCHED, MatchStatus.MANUAL_REVIEW)

    @pytest.mark.asyncio
    async def test_reprocess_twice_agrees(self, catalog_index, catalog_store, item_store, llm_factory):
        """Test reprocessing is repeatable with a deterministic provider"""
        provider = llm_factory('{"product_id": "p-tote", "confidence": 77, "reasoning": "Bag"}')
        orchestrator = MatchOrchestrator(catalog_index, item_store, AIResolver(provider))
        lifecycle = MatchLifecycleManager(catalog_store, item_store, orchestrator)
        item_store.add("item-1", MatchInput(description="canvas bag"))

        first = await lifecycle.reprocess_match("item-1")
        second = await lifecycle.reprocess_match("item-1")

        assert (first.method, first.matched_product_id) == (second.method, second.matched_product_id)
        assert item_store.read_item("item-1").matched_product_id == "p-tote"

    @pytest.mark.asyncio
    async def test_unknown_item(self, lifecycle):
        with pytest.raises(NotFound):
            await lifecycle.reprocess_match("missing")
