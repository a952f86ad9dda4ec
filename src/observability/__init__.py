"""Observability module for metrics and monitoring."""

from src.observability.metrics import (
    get_metrics,
    track_embedding_request,
    track_search_request,
    track_store_operation,
    update_store_size,
)

__all__ = [
    "get_metrics",
    "track_embedding_request",
    "track_search_request",
    "track_store_operation",
    "update_store_size",
]
