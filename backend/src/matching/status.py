"""Match status and method enumerations plus confidence classification.

Record lifecycle:
    pending → auto_matched | manual_review   (automatic classification)
    any     → confirmed | rejected            (human action)
    any     → auto_matched | manual_review   (reprocess)

``pending`` is only ever the initial state of a newly created item.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class MatchStatus(str, Enum):
    """Persisted match status of an order item."""
    PENDING = "pending"
    AUTO_MATCHED = "auto_matched"
    MANUAL_REVIEW = "manual_review"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class MatchMethod(str, Enum):
    """Cascade stage that produced a match result."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    AI = "ai"
    NONE = "none"


@dataclass(frozen=True)
class ConfidenceThresholds:
    """Ascending confidence thresholds driving automatic classification.

    Attributes:
        auto_accept: Confidence at/above which a match is auto-accepted
        quick_review: Lighter review tier; routes to manual review as well
    """
    auto_accept: int = 85
    quick_review: int = 60

    def __post_init__(self):
        if not 0 <= self.quick_review <= self.auto_accept <= 100:
            raise ValueError(
                f"Thresholds must satisfy 0 <= quick_review <= auto_accept <= 100, "
                f"got quick_review={self.quick_review}, auto_accept={self.auto_accept}"
            )


def classify_confidence(confidence: int, thresholds: ConfidenceThresholds) -> MatchStatus:
    """Classify a match confidence into a persisted status.

    Args:
        confidence: Match confidence 0-100
        thresholds: Configured thresholds

    Returns:
        AUTO_MATCHED at/above auto_accept, MANUAL_REVIEW otherwise
    """
    if confidence >= thresholds.auto_accept:
        return MatchStatus.AUTO_MATCHED
    elif confidence >= thresholds.quick_review:
        # TODO: route to a dedicated quick-review queue once one exists
        return MatchStatus.MANUAL_REVIEW
    return MatchStatus.MANUAL_REVIEW


def classify_match(
    matched_product_id: Optional[str],
    confidence: int,
    thresholds: ConfidenceThresholds,
) -> MatchStatus:
    """Classify a match result into a persisted status.

    A result without a product is never auto-accepted, whatever confidence
    the AI reported for it.
    """
    if not matched_product_id:
        return MatchStatus.MANUAL_REVIEW
    return classify_confidence(confidence, thresholds)
