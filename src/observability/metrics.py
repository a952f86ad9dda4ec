"""Prometheus metrics for the semantic search engine.

Provides metrics instrumentation for:
- Embedding requests per strategy tier
- Search latency, result counts and top scores per search mode
- Vector store size and persistence operations
"""

from prometheus_client import (
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from src.logging_config import get_logger

logger = get_logger(__name__)

# Embedding Metrics
EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests by answering strategy",
    ["strategy", "status"],
)

EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["strategy"],
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0],
)

# Search Metrics
SEARCH_REQUEST_TOTAL = Counter(
    "search_requests_total",
    "Total search requests",
    ["mode"],
)

SEARCH_DURATION = Histogram(
    "search_duration_seconds",
    "Search duration in seconds",
    ["mode"],
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

SEARCH_RESULTS_RETURNED = Histogram(
    "search_results_returned",
    "Number of results returned per search",
    ["mode"],
    buckets=[0, 1, 2, 3, 5, 10, 20, 50],
)

SEARCH_TOP_SCORE = Histogram(
    "search_top_score",
    "Top result score per search",
    ["mode"],
    buckets=[0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0],
)

# Vector Store Metrics
VECTORSTORE_ENTRIES = Gauge(
    "vectorstore_entries",
    "Number of live entries in the vector store",
    ["store"],
)

VECTORSTORE_OPERATION_DURATION = Histogram(
    "vectorstore_operation_duration_seconds",
    "Vector store operation duration",
    ["operation", "status"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def track_embedding_request(
    strategy: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track an embedding request.

    Args:
        strategy: Tier that answered (sentence, word, hashed) or "none".
        duration: Request duration in seconds.
        success: Whether a vector was produced.
    """
    status = "success" if success else "empty"

    EMBEDDING_REQUEST_TOTAL.labels(strategy=strategy, status=status).inc()
    EMBEDDING_REQUEST_DURATION.labels(strategy=strategy).observe(duration)


def track_search_request(
    mode: str,
    duration: float,
    results_returned: int,
    top_score: float,
) -> None:
    """Track a search request.

    Args:
        mode: Search mode (vector, text, hybrid, keyword_fallback).
        duration: Search duration in seconds.
        results_returned: Number of results returned.
        top_score: Highest score among the results.
    """
    SEARCH_REQUEST_TOTAL.labels(mode=mode).inc()
    SEARCH_DURATION.labels(mode=mode).observe(duration)
    SEARCH_RESULTS_RETURNED.labels(mode=mode).observe(results_returned)
    if top_score > 0:
        SEARCH_TOP_SCORE.labels(mode=mode).observe(top_score)


def track_store_operation(
    operation: str,
    duration: float,
    success: bool = True,
) -> None:
    """Track a vector store maintenance operation (save, load, rebuild)."""
    status = "success" if success else "error"
    VECTORSTORE_OPERATION_DURATION.labels(
        operation=operation, status=status
    ).observe(duration)


def update_store_size(store: str, entries: int) -> None:
    """Record the current number of entries in a store."""
    VECTORSTORE_ENTRIES.labels(store=store).set(entries)
