"""Fuzzy candidate retrieval for the AI stage."""

import logging
from typing import List

from .catalog_index import CatalogIndex
from .ports import Candidate, MatchInput

logger = logging.getLogger(__name__)


def build_search_text(input_data: MatchInput) -> str:
    """Join item code and description into one search string."""
    parts = [(input_data.item_code or "").strip(), (input_data.description or "").strip()]
    return " ".join(part for part in parts if part)


class CandidateRetriever:
    """Build a ranked shortlist of catalog products for one order item."""

    def __init__(self, index: CatalogIndex):
        self.index = index

    def get_candidates(self, input_data: MatchInput, max_candidates: int) -> List[Candidate]:
        """Return up to ``max_candidates`` candidates, best first.

        Items without any text get the unscored catalog prefix. When fuzzy
        search finds nothing within the similarity threshold the unscored
        prefix is returned as well, so the result is empty only for an empty
        catalog.

        Args:
            input_data: Order item to match
            max_candidates: Shortlist size

        Returns:
            Ordered candidates (scored fuzzy hits or unscored prefix)

        Raises:
            CatalogUnavailable: If the catalog index is not loaded
        """
        search_text = build_search_text(input_data)

        if not search_text:
            return self.index.search("", max_candidates)[:max_candidates]

        candidates = self.index.search(search_text, max_candidates)[:max_candidates]
        if candidates:
            return candidates

        logger.debug(f"No fuzzy candidates for '{search_text}', using catalog prefix")
        return self.index.prefix(max_candidates)
