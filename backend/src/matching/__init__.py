"""Matching module.

Resolves free-text order items to catalog products through a cascade:
- Exact item-code lookup
- Fuzzy candidate retrieval (rapidfuzz)
- AI-assisted disambiguation, with fuzzy fallback when the AI stage fails

The wired facade lives in ``matching.service``.
"""

from .ports import (
    Product,
    MatchInput,
    Candidate,
    MatchResult,
    MatchRecordUpdate,
    OrderItemRecord,
    CatalogStorePort,
    OrderItemStorePort,
    MatchingError,
    CatalogUnavailable,
    InferenceError,
    PersistenceError,
    NotFound,
)
from .status import MatchStatus, MatchMethod, ConfidenceThresholds, classify_confidence, classify_match
from .catalog_index import CatalogIndex, CatalogSnapshot
from .exact_resolver import ExactResolver
from .candidate_retriever import CandidateRetriever
from .ai_resolver import AIResolver
from .orchestrator import MatchOrchestrator, CascadeStage
from .lifecycle import MatchLifecycleManager

__all__ = [
    "Product",
    "MatchInput",
    "Candidate",
    "MatchResult",
    "MatchRecordUpdate",
    "OrderItemRecord",
    "CatalogStorePort",
    "OrderItemStorePort",
    "MatchingError",
    "CatalogUnavailable",
    "InferenceError",
    "PersistenceError",
    "NotFound",
    "MatchStatus",
    "MatchMethod",
    "ConfidenceThresholds",
    "classify_confidence",
    "classify_match",
    "CatalogIndex",
    "CatalogSnapshot",
    "ExactResolver",
    "CandidateRetriever",
    "AIResolver",
    "MatchOrchestrator",
    "CascadeStage",
    "MatchLifecycleManager",
]
