"""In-memory catalog index with exact code lookup and fuzzy search.

The index is rebuilt copy-on-write: every load builds a fresh immutable
CatalogSnapshot and swaps the reference. Resolvers that captured the previous
snapshot keep reading it unchanged, so reads take no lock. Loads are
serialized so concurrent reloads publish one snapshot at a time.
"""

import copy
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process, utils

from .ports import CatalogStorePort, Candidate, Product, CatalogUnavailable, PersistenceError
from observability.metrics import catalog_products, catalog_duplicate_codes

logger = logging.getLogger(__name__)


def normalize_code(code: Optional[str]) -> str:
    """Normalize an item code for exact comparison (trim + lower-case)."""
    return (code or "").strip().lower()


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable view of the active catalog at one point in time.

    Attributes:
        products: Active products in catalog order
        code_keys: Item codes as indexed for fuzzy search (same order)
        description_keys: Descriptions as indexed for fuzzy search (same order)
        by_code: Normalized item code -> first product carrying it
        by_id: Product id -> product
        duplicate_codes: Normalized codes shared by more than one product
        loaded_at: Snapshot build time
    """
    products: Tuple[Product, ...]
    code_keys: Tuple[str, ...]
    description_keys: Tuple[str, ...]
    by_code: Dict[str, Product] = field(default_factory=dict)
    by_id: Dict[str, Product] = field(default_factory=dict)
    duplicate_codes: FrozenSet[str] = frozenset()
    loaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __len__(self) -> int:
        return len(self.products)


class CatalogIndex:
    """Searchable snapshot of the active product catalog.

    Lifecycle is explicit: construct with a catalog store, call ``load()``
    before use and ``reload()`` to pick up catalog changes.
    """

    def __init__(
        self,
        store: CatalogStorePort,
        similarity_threshold: float = 0.3,
        edit_distance_budget: int = 100,
    ):
        """Initialize catalog index.

        Args:
            store: Catalog store used on every (re)load
            similarity_threshold: Max fuzzy score (0 = perfect, 1 = worst)
                for a product to be returned by search
            edit_distance_budget: Leading characters of each indexed field
                that take part in fuzzy matching
        """
        if not 0.0 <= similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be in [0, 1], got {similarity_threshold}")
        if edit_distance_budget < 1:
            raise ValueError(f"edit_distance_budget must be positive, got {edit_distance_budget}")

        self.store = store
        self.similarity_threshold = similarity_threshold
        self.edit_distance_budget = edit_distance_budget
        self._snapshot: Optional[CatalogSnapshot] = None
        self._load_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> CatalogSnapshot:
        """Current snapshot.

        Raises:
            CatalogUnavailable: If the catalog was never loaded successfully
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise CatalogUnavailable("Catalog index is not loaded")
        return snapshot

    def load(self) -> None:
        """Load active products and publish a new snapshot.

        The previous snapshot stays in service if the store read fails.

        Raises:
            CatalogUnavailable: If the catalog store read fails
        """
        with self._load_lock:
            try:
                products = self.store.list_active_products()
            except PersistenceError as e:
                logger.error(f"Catalog load failed: {e}")
                raise CatalogUnavailable(f"Failed to load product catalog: {e}") from e

            snapshot = self._build_snapshot(products)
            self._snapshot = snapshot

        catalog_products.set(len(snapshot))
        catalog_duplicate_codes.set(len(snapshot.duplicate_codes))
        logger.info(f"Catalog index loaded with {len(snapshot)} active products")

    def reload(self) -> None:
        """Rebuild the index from the store (copy-on-rebuild)."""
        logger.info("Rebuilding catalog index")
        self.load()

    def pinned(self) -> "CatalogIndex":
        """Return a read-only view bound to the current snapshot.

        Reloads of this index do not affect the view, which lets one match
        run see a single consistent catalog.

        Raises:
            CatalogUnavailable: If the catalog was never loaded
        """
        view = copy.copy(self)
        view._snapshot = self.snapshot
        return view

    def find_by_code(self, code: Optional[str]) -> Optional[Product]:
        """Exact, case- and surrounding-whitespace-insensitive code lookup."""
        normalized = normalize_code(code)
        if not normalized:
            return None
        return self.snapshot.by_code.get(normalized)

    def get(self, product_id: Optional[str]) -> Optional[Product]:
        """Look up an active product by id in the current snapshot."""
        if not product_id:
            return None
        return self.snapshot.by_id.get(product_id)

    def search(self, query: Optional[str], limit: int) -> List[Candidate]:
        """Fuzzy search over item code and description, best match first.

        An empty query returns the first ``limit`` active products in catalog
        order without scores. This keeps the cascade supplied with candidates
        for items that carry no text; it is not a real match.

        Args:
            query: Search text
            limit: Maximum number of candidates

        Returns:
            Candidates ordered by ascending score (0 = perfect)

        Raises:
            CatalogUnavailable: If the catalog was never loaded
        """
        snapshot = self.snapshot
        if limit < 1:
            return []

        query = (query or "").strip()
        if not query:
            return self.prefix(limit, snapshot=snapshot)

        score_cutoff = (1.0 - self.similarity_threshold) * 100
        best_ratios: Dict[int, float] = {}

        for keys in (snapshot.code_keys, snapshot.description_keys):
            matches = process.extract(
                query,
                keys,
                scorer=fuzz.WRatio,
                processor=utils.default_process,
                limit=None,
                score_cutoff=score_cutoff,
            )
            for _choice, ratio, idx in matches:
                if ratio > best_ratios.get(idx, -1.0):
                    best_ratios[idx] = ratio

        # Highest ratio first, catalog order breaks ties
        ranked = sorted(best_ratios.items(), key=lambda item: (-item[1], item[0]))

        return [
            Candidate(product=snapshot.products[idx], score=round(1.0 - ratio / 100.0, 4))
            for idx, ratio in ranked[:limit]
        ]

    def prefix(self, limit: int, snapshot: Optional[CatalogSnapshot] = None) -> List[Candidate]:
        """First ``limit`` active products in catalog order, unscored."""
        if snapshot is None:
            snapshot = self.snapshot
        if limit < 1:
            return []
        return [Candidate(product=product) for product in snapshot.products[:limit]]

    def _build_snapshot(self, products: Sequence[Product]) -> CatalogSnapshot:
        """Build an immutable snapshot, validating code uniqueness."""
        active = tuple(p for p in products if p.active)
        if len(active) != len(products):
            logger.warning(
                f"Catalog store returned {len(products) - len(active)} inactive products; ignored"
            )

        budget = self.edit_distance_budget
        by_code: Dict[str, Product] = {}
        by_id: Dict[str, Product] = {}
        duplicates = set()

        for product in active:
            by_id[product.id] = product
            code = normalize_code(product.item_code)
            if not code:
                continue
            if code in by_code:
                duplicates.add(code)
                continue
            by_code[code] = product

        for code in sorted(duplicates):
            logger.warning(
                f"Duplicate item code '{code}' in active catalog; "
                f"exact matches resolve to product {by_code[code].id}"
            )

        return CatalogSnapshot(
            products=active,
            code_keys=tuple((p.item_code or "")[:budget] for p in active),
            description_keys=tuple((p.description or "")[:budget] for p in active),
            by_code=by_code,
            by_id=by_id,
            duplicate_codes=frozenset(duplicates),
        )
