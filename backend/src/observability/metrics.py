"""Prometheus metrics for the matching engine.

Defines operational metrics for monitoring match quality and AI usage.
"""

from prometheus_client import Counter, Histogram, Gauge

# Matching metrics
match_results_total = Counter(
    "orderdesk_match_results_total",
    "Total match attempts by resolving method and classified status",
    ["method", "status"]  # method: exact|fuzzy|ai|none
)

match_confidence = Histogram(
    "orderdesk_match_confidence",
    "Match confidence distribution (0-100)",
    buckets=[0, 10, 20, 30, 40, 50, 60, 70, 80, 85, 90, 95, 100]
)

# AI call metrics
ai_calls_total = Counter(
    "orderdesk_ai_calls_total",
    "Total AI inference calls",
    ["provider", "status"]  # status: success|error
)

ai_latency_ms = Histogram(
    "orderdesk_ai_latency_ms",
    "AI inference latency in milliseconds",
    ["provider"],
    buckets=[50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000]
)

ai_tokens_total = Counter(
    "orderdesk_ai_tokens_total",
    "Total AI tokens consumed",
    ["provider", "direction"]  # direction: input|output
)

# Catalog metrics
catalog_products = Gauge(
    "orderdesk_catalog_products",
    "Active products in the current catalog snapshot"
)

catalog_duplicate_codes = Gauge(
    "orderdesk_catalog_duplicate_codes",
    "Item codes shared by more than one active product in the current snapshot"
)
