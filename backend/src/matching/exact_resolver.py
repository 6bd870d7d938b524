"""Exact item-code resolution, the first stage of the cascade."""

from typing import Optional

from .catalog_index import CatalogIndex
from .ports import Product


class ExactResolver:
    """Resolve an item code to a catalog product by normalized equality.

    No fuzzy or AI fallback happens here; a hit short-circuits the cascade.
    """

    def __init__(self, index: CatalogIndex):
        self.index = index

    def resolve(self, code: Optional[str]) -> Optional[Product]:
        """Return the product whose item code equals ``code``.

        Comparison ignores case and surrounding whitespace. Empty or missing
        codes resolve to None without touching the index.

        Raises:
            CatalogUnavailable: If the catalog index is not loaded
        """
        if not code or not code.strip():
            return None
        return self.index.find_by_code(code)
