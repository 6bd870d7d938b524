"""Pytest fixtures for matching tests.

Provides reusable test fixtures for:
- In-memory catalog and order-item stores
- A scripted LLM provider
- A loaded catalog index over a small sample catalog
- SQLite-backed database sessions for repository and API tests

Usage:
    @pytest.mark.asyncio
    async def test_exact_match(orchestrator, item_store):
        result = await orchestrator.process_item("item-1", MatchInput(item_code="VN-001"))
        assert result.method == MatchMethod.EXACT
"""

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, Generator, List, Optional, Sequence

import pytest
from sqlalchemy.orm import Session

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from database import create_db_engine, create_session_factory
from domain.ai.ports import LLMCompletionResult, LLMProviderPort, LLMServiceError
from matching.ai_resolver import AIResolver
from matching.catalog_index import CatalogIndex
from matching.orchestrator import MatchOrchestrator
from matching.ports import (
    CatalogStorePort,
    MatchInput,
    MatchRecordUpdate,
    NotFound,
    OrderItemRecord,
    OrderItemStorePort,
    PersistenceError,
    Product,
)
from matching.status import MatchStatus
from models import Base
from models.order import Order as OrderModel
from models.product import Product as ProductModel


SAMPLE_PRODUCTS = [
    Product(id="p-wallet-black", item_code="VN-001", description="Leather Wallet Black", unit_price=Decimal("29.99")),
    Product(id="p-wallet-brown", item_code="VN-002", description="Leather Wallet Brown", unit_price=Decimal("31.50")),
    Product(id="p-tote", item_code="BT-100", description="Canvas Tote Bag", unit_price=Decimal("19.50")),
    Product(id="p-keychain", item_code="KC-7", description="Brass Key Chain", unit_price=Decimal("5.00")),
    Product(id="p-scarf", item_code="SC-210", description="Silk Scarf Red", unit_price=None),
]


class InMemoryCatalogStore(CatalogStorePort):
    """Catalog store over a Python list. Set ``fail`` to simulate outages."""

    def __init__(self, products: Sequence[Product] = ()):
        self.products = list(products)
        self.fail = False
        self.list_calls = 0

    def list_active_products(self) -> List[Product]:
        self.list_calls += 1
        if self.fail:
            raise PersistenceError("catalog store unavailable")
        return [p for p in self.products if p.active]

    def get_product(self, product_id: str) -> Optional[Product]:
        if self.fail:
            raise PersistenceError("catalog store unavailable")
        return next((p for p in self.products if p.id == product_id), None)


class InMemoryOrderItemStore(OrderItemStorePort):
    """Order-item store over a dict. Set ``fail_writes`` to simulate outages."""

    def __init__(self):
        self.records: Dict[str, OrderItemRecord] = {}
        self.writes: List[tuple] = []
        self.fail_writes = False

    def add(self, item_id: str, input_data: MatchInput, order_id: str = "order-1", position: Optional[int] = None) -> OrderItemRecord:
        if position is None:
            position = sum(1 for r in self.records.values() if r.order_id == order_id) + 1
        record = OrderItemRecord(
            id=item_id,
            order_id=order_id,
            position=position,
            input=input_data,
            matched_product_id=None,
            confidence=None,
            status=MatchStatus.PENDING,
            resolved_price=None,
        )
        self.records[item_id] = record
        return record

    def read_item(self, item_id: str) -> Optional[OrderItemRecord]:
        return self.records.get(item_id)

    def write_match(self, item_id: str, update: MatchRecordUpdate) -> None:
        if self.fail_writes:
            raise PersistenceError("order item store unavailable")
        record = self.records.get(item_id)
        if record is None:
            raise NotFound(f"Order item {item_id} not found")
        self.records[item_id] = OrderItemRecord(
            id=record.id,
            order_id=record.order_id,
            position=record.position,
            input=record.input,
            matched_product_id=update.matched_product_id,
            confidence=update.confidence,
            status=update.status,
            resolved_price=update.resolved_price,
            updated_at=update.updated_at,
        )
        self.writes.append((item_id, update))

    def list_item_ids(self, order_id: str) -> List[str]:
        records = [r for r in self.records.values() if r.order_id == order_id]
        return [r.id for r in sorted(records, key=lambda r: r.position)]

    def create_items(self, order_id: str, inputs: Sequence[MatchInput]) -> List[str]:
        start = len(self.list_item_ids(order_id))
        item_ids = []
        for offset, input_data in enumerate(inputs, start=1):
            item_id = f"{order_id}-item-{start + offset}"
            self.add(item_id, input_data, order_id=order_id, position=start + offset)
            item_ids.append(item_id)
        return item_ids


class FakeLLMProvider(LLMProviderPort):
    """Scripted LLM provider.

    Responses are consumed in order; the last one repeats. A response that is
    an exception instance is raised instead of returned.
    """

    def __init__(self, *responses, delay: float = 0.0):
        self.responses = list(responses)
        self.delay = delay
        self.calls: List[dict] = []

    @property
    def name(self) -> str:
        return "fake"

    async def complete(self, system_prompt, user_prompt, *, temperature, max_tokens):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if not self.responses:
            raise LLMServiceError("no scripted response")

        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return LLMCompletionResult(raw_output=response, provider="fake", model="fake-model")


@pytest.fixture
def sample_products() -> List[Product]:
    return list(SAMPLE_PRODUCTS)


@pytest.fixture
def catalog_store(sample_products) -> InMemoryCatalogStore:
    return InMemoryCatalogStore(sample_products)


@pytest.fixture
def catalog_index(catalog_store) -> CatalogIndex:
    """Catalog index loaded from the sample catalog."""
    index = CatalogIndex(catalog_store)
    index.load()
    return index


@pytest.fixture
def item_store() -> InMemoryOrderItemStore:
    return InMemoryOrderItemStore()


@pytest.fixture
def llm_factory():
    """Build a FakeLLMProvider: ``llm_factory('{"product_id": ...}', delay=0.1)``."""
    return FakeLLMProvider


@pytest.fixture
def failing_llm() -> FakeLLMProvider:
    """Provider whose every call fails with a service error."""
    return FakeLLMProvider(LLMServiceError("inference endpoint down"))


@pytest.fixture
def orchestrator(catalog_index, item_store, failing_llm) -> MatchOrchestrator:
    """Orchestrator whose AI stage is always down."""
    return MatchOrchestrator(catalog_index, item_store, AIResolver(failing_llm))


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture(scope="function")
def db_url(tmp_path) -> str:
    """File-backed SQLite URL (pooled connections must share one database)."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture(scope="function")
def db_session(db_url) -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    engine = create_db_engine(db_url)
    Base.metadata.create_all(bind=engine)
    session = create_session_factory(engine)()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


def seed_catalog(session: Session, products: Sequence[Product]) -> None:
    """Insert domain products as rows, keeping list order as catalog order."""
    base_time = datetime(2025, 1, 1, tzinfo=timezone.utc)
    for offset, product in enumerate(products):
        session.add(ProductModel(
            id=product.id,
            item_number=product.item_code,
            description=product.description,
            price=product.unit_price,
            is_active=product.active,
            created_at=base_time + timedelta(seconds=offset),
        ))
    session.commit()


@pytest.fixture(scope="function")
def seeded_session(db_session, sample_products) -> Session:
    """Database session with the sample catalog and one empty order."""
    seed_catalog(db_session, sample_products)
    db_session.add(OrderModel(id="order-1", customer_name="Test Customer"))
    db_session.commit()
    return db_session
