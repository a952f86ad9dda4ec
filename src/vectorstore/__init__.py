"""Vector store module."""

from src.vectorstore.keyword_index import KeywordIndex
from src.vectorstore.models import (
    LocationInfo,
    MediaType,
    SearchFilters,
    SearchResult,
    VectorEntry,
    VectorEntryInput,
    VectorMetadata,
)
from src.vectorstore.service import VectorStore

__all__ = [
    "KeywordIndex",
    "LocationInfo",
    "MediaType",
    "SearchFilters",
    "SearchResult",
    "VectorEntry",
    "VectorEntryInput",
    "VectorMetadata",
    "VectorStore",
]
