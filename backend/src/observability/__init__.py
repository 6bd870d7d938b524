"""Observability module.

Provides structured logging, request correlation and Prometheus metrics.
"""

from .logging_config import configure_logging, JSONFormatter, RequestIDFilter
from .metrics import (
    match_results_total,
    match_confidence,
    ai_calls_total,
    ai_latency_ms,
    ai_tokens_total,
    catalog_products,
    catalog_duplicate_codes,
)
from .request_id import (
    request_id_var,
    get_request_id,
    set_request_id,
    generate_request_id,
    ensure_request_id,
)

__all__ = [
    # Logging
    "configure_logging",
    "JSONFormatter",
    "RequestIDFilter",
    # Metrics
    "match_results_total",
    "match_confidence",
    "ai_calls_total",
    "ai_latency_ms",
    "ai_tokens_total",
    "catalog_products",
    "catalog_duplicate_codes",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "ensure_request_id",
]
