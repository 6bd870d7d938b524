"""Integration tests: MatchingService over SQLAlchemy repositories (SQLite)"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from config import Settings
from database import create_session_factory
from domain.ai.ports import LLMServiceError
from infrastructure.repositories import CatalogRepository, OrderItemRepository, SessionScopedCatalogStore
from matching.catalog_index import CatalogIndex
from matching.ports import MatchInput, MatchRecordUpdate, NotFound
from matching.service import create_matching_service
from matching.status import MatchMethod, MatchStatus
from models.order import OrderItem as OrderItemModel
from models.product import Product as ProductModel


@pytest.fixture
def settings():
    return Settings(_env_file=None, FIREWORKS_API_KEY=None, DATABASE_URL="sqlite://")


class TestCatalogRepository:

    def test_lists_active_products_in_catalog_order(self, seeded_session, sample_products):
        products = CatalogRepository(seeded_session).list_active_products()
        assert [p.id for p in products] == [p.id for p in sample_products]

    def test_inactive_products_excluded_but_readable(self, seeded_session):
        seeded_session.get(ProductModel, "p-tote").is_active = False
        seeded_session.commit()
        repo = CatalogRepository(seeded_session)

        assert "p-tote" not in [p.id for p in repo.list_active_products()]
        product = repo.get_product("p-tote")
        assert product.active is False
        assert product.unit_price == Decimal("19.50")

    def test_get_missing_product(self, seeded_session):
        assert CatalogRepository(seeded_session).get_product("nope") is None


class RecordingSessionFactory:
    """Session factory that keeps every session it hands out."""

    def __init__(self, engine):
        self.factory = create_session_factory(engine)
        self.sessions = []

    def __call__(self):
        session = self.factory()
        self.sessions.append(session)
        return session


class TestSessionScopedCatalogStore:
    """Catalog reads for the process-wide index"""

    def test_each_read_ends_its_own_session(self, seeded_session, sample_products):
        engine = seeded_session.get_bind()
        factory = RecordingSessionFactory(engine)
        store = SessionScopedCatalogStore(factory)

        assert [p.id for p in store.list_active_products()] == [p.id for p in sample_products]
        assert store.list_active_products()
        assert store.get_product("p-tote").item_code == "BT-100"

        assert len(set(map(id, factory.sessions))) == 3
        assert not any(session.in_transaction() for session in factory.sessions)
        assert engine.pool.checkedout() == 0

    def test_reload_sees_committed_edits(self, seeded_session):
        store = SessionScopedCatalogStore(create_session_factory(seeded_session.get_bind()))
        assert store.get_product("p-tote").description == "Canvas Tote Bag"

        seeded_session.get(ProductModel, "p-tote").description = "Canvas Shopper"
        seeded_session.commit()

        assert store.get_product("p-tote").description == "Canvas Shopper"

    def test_concurrent_reloads(self, seeded_session, sample_products):
        engine = seeded_session.get_bind()
        factory = RecordingSessionFactory(engine)
        index = CatalogIndex(SessionScopedCatalogStore(factory))

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(lambda _: index.reload(), range(8)))

        assert len(index.snapshot) == len(sample_products)
        assert len(factory.sessions) == 8
        assert not any(session.in_transaction() for session in factory.sessions)
        assert engine.pool.checkedout() == 0


class TestOrderItemRepository:

    def test_create_items_appends_positions(self, seeded_session):
        repo = OrderItemRepository(seeded_session)
        first = repo.create_items("order-1", [MatchInput(item_code="A"), MatchInput(item_code="B")])
        second = repo.create_items("order-1", [MatchInput(description="C", quantity=0)])

        assert repo.list_item_ids("order-1") == first + second
        record = repo.read_item(second[0])
        assert record.position == 3
        assert record.status == MatchStatus.PENDING
        assert record.input.quantity == 1

    def test_create_items_for_unknown_order(self, seeded_session):
        with pytest.raises(NotFound):
            OrderItemRepository(seeded_session).create_items("missing", [MatchInput(item_code="A")])

    def test_write_match_to_unknown_item(self, seeded_session):
        update = MatchRecordUpdate(
            matched_product_id=None,
            confidence=0,
            status=MatchStatus.MANUAL_REVIEW,
            resolved_price=None,
            updated_at=datetime.now(timezone.utc),
        )
        with pytest.raises(NotFound):
            OrderItemRepository(seeded_session).write_match("missing", update)

    def test_read_missing_item(self, seeded_session):
        assert OrderItemRepository(seeded_session).read_item("missing") is None


class TestMatchingService:
    """End-to-end matching against the database"""

    @pytest.mark.asyncio
    async def test_add_items_matches_and_persists(self, seeded_session, settings, llm_factory):
        provider = llm_factory(LLMServiceError("down"))
        service = create_matching_service(seeded_session, settings=settings, llm_provider=provider)

        matched = await service.add_items("order-1", [
            MatchInput(item_code="vn-001"),
            MatchInput(description="leather walet black"),
            MatchInput(),
        ])

        assert [result.method for _, result in matched] == [
            MatchMethod.EXACT, MatchMethod.FUZZY, MatchMethod.NONE,
        ]

        exact_row = seeded_session.get(OrderItemModel, matched[0][0])
        assert exact_row.matched_product_id == "p-wallet-black"
        assert exact_row.match_confidence == 100
        assert exact_row.match_status == "auto_matched"
        assert exact_row.final_price == Decimal("29.99")

        none_row = seeded_session.get(OrderItemModel, matched[2][0])
        assert none_row.matched_product_id is None
        assert none_row.match_confidence == 0
        assert none_row.match_status == "manual_review"

    @pytest.mark.asyncio
    async def test_batch_process_reads_item_ids(self, seeded_session, settings, llm_factory):
        inputs = [MatchInput(item_code="BT-100"), MatchInput(item_code="KC-7")]
        OrderItemRepository(seeded_session).create_items("order-1", inputs)
        service = create_matching_service(seeded_session, settings=settings, llm_provider=llm_factory())

        results = await service.batch_process("order-1", inputs)

        assert [r.matched_product_id for r in results] == ["p-tote", "p-keychain"]

    @pytest.mark.asyncio
    async def test_ai_result_persisted(self, seeded_session, settings, llm_factory):
        provider = llm_factory('{"product_id": "p-wallet-brown", "confidence": 64, "reasoning": "Brown wallet"}')
        service = create_matching_service(seeded_session, settings=settings, llm_provider=provider)

        (item_id, result), = await service.add_items("order-1", [MatchInput(description="leather wallet")])

        assert result.method == MatchMethod.AI
        row = seeded_session.get(OrderItemModel, item_id)
        assert row.match_status == "manual_review"
        assert row.match_confidence == 64

    @pytest.mark.asyncio
    async def test_review_actions(self, seeded_session, settings, llm_factory):
        service = create_matching_service(seeded_session, settings=settings, llm_provider=llm_factory())
        (item_id, _), = await service.add_items("order-1", [MatchInput(item_code="VN-001")])

        service.confirm_match(item_id, "p-wallet-brown", Decimal("20.00"))
        row = seeded_session.get(OrderItemModel, item_id)
        assert (row.match_status, row.matched_product_id, row.final_price) == (
            "confirmed", "p-wallet-brown", Decimal("20.00"),
        )

        service.reject_match(item_id)
        seeded_session.refresh(row)
        assert (row.match_status, row.matched_product_id, row.final_price) == ("rejected", None, None)

        result = await service.reprocess_match(item_id)
        seeded_session.refresh(row)
        assert result.method == MatchMethod.EXACT
        assert row.match_status == "auto_matched"

    @pytest.mark.asyncio
    async def test_confirm_unknown_product_leaves_row_unchanged(self, seeded_session, settings, llm_factory):
        service = create_matching_service(seeded_session, settings=settings, llm_provider=llm_factory())
        (item_id, _), = await service.add_items("order-1", [MatchInput(item_code="VN-001")])

        with pytest.raises(NotFound):
            service.confirm_match(item_id, "p-nonexistent")

        row = seeded_session.get(OrderItemModel, item_id)
        assert row.match_status == "auto_matched"
        assert row.matched_product_id == "p-wallet-black"

    @pytest.mark.asyncio
    async def test_reload_catalog_sees_new_products(self, seeded_session, settings, llm_factory):
        service = create_matching_service(seeded_session, settings=settings, llm_provider=llm_factory())
        seeded_session.add(ProductModel(id="p-new", item_number="NEW-1", description="Brand New", price=Decimal("9.99")))
        seeded_session.commit()

        assert service.index.find_by_code("NEW-1") is None
        service.reload_catalog()

        (_, result), = await service.add_items("order-1", [MatchInput(item_code="new-1")])
        assert result.matched_product_id == "p-new"
