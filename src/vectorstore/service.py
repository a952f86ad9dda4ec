"""Local vector store with keyword index, hybrid search and persistence."""

import asyncio
import time
from collections.abc import Iterable, Sequence
from pathlib import Path

import numpy as np
import numpy.typing as npt

from src.config import StoreSettings, get_settings
from src.embeddings.service import EmbeddingService, get_embedding_service
from src.embeddings.tokenize import extract_keywords
from src.embeddings.vectors import as_array, cosine_similarity, rank_scores
from src.exceptions import PersistenceError, ValidationError
from src.logging_config import get_logger
from src.observability.metrics import (
    track_search_request,
    track_store_operation,
    update_store_size,
)
from src.vectorstore.keyword_index import KeywordIndex
from src.vectorstore.models import (
    SearchFilters,
    SearchResult,
    VectorEntry,
    VectorEntryInput,
    VectorMetadata,
)
from src.vectorstore.persistence import SnapshotFile

logger = get_logger(__name__)

# Hybrid matches must combine to more than this to be returned.
HYBRID_MIN_SCORE = 0.1

BatchItem = VectorEntryInput | tuple[str, Sequence[float], VectorMetadata]


class VectorStore:
    """Keyed collection of vectors with exact nearest-neighbor search.

    Entries live in memory and are persisted as one JSON document. All
    access to the entries, the keyword index and the document goes
    through one asyncio lock, so operations run one at a time in
    submission order and nobody observes a half-applied upsert. Query
    embedding happens before the lock is taken.

    Scoring is brute force: every candidate that passes the filters is
    compared with the query vector.
    """

    def __init__(
        self,
        settings: StoreSettings | None = None,
        embedding_service: EmbeddingService | None = None,
        path: Path | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            settings: Store configuration. Uses defaults if not provided.
            embedding_service: Engine for query and metadata embeddings.
                Defaults to the shared process-wide service.
            path: Persisted document location, overriding settings.
        """
        self._settings = settings or get_settings().store
        self._embeddings = embedding_service or get_embedding_service()
        self._snapshot = SnapshotFile(path or self._settings.path)
        self._name = self._snapshot.path.stem

        self._entries: dict[str, VectorEntry] = {}
        self._arrays: dict[str, npt.NDArray[np.float32]] = {}
        self._keywords = KeywordIndex()
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        settings: StoreSettings | None = None,
        embedding_service: EmbeddingService | None = None,
        path: Path | None = None,
    ) -> "VectorStore":
        """Create a store and, if autoload is enabled, load its document."""
        store = cls(settings=settings, embedding_service=embedding_service, path=path)
        if store._settings.autoload:
            await store.load_from_disk()
        return store

    @property
    def path(self) -> Path:
        """Location of the persisted document."""
        return self._snapshot.path

    @property
    def embedding_service(self) -> EmbeddingService:
        """Engine used for query and metadata embeddings."""
        return self._embeddings

    # -- entries ---------------------------------------------------------

    def _put(self, entry: VectorEntry) -> None:
        """Insert or replace an entry. Caller holds the lock."""
        previous = self._entries.get(entry.id)
        old_keywords = previous.metadata.keywords if previous is not None else ()
        self._entries[entry.id] = entry
        self._arrays[entry.id] = as_array(entry.vector)
        self._keywords.replace(entry.id, old_keywords, entry.metadata.keywords)

    def _touch_size(self) -> None:
        update_store_size(self._name, len(self._entries))

    async def upsert(
        self,
        id: str,
        vector: Sequence[float],
        metadata: VectorMetadata,
    ) -> VectorEntry:
        """Insert or wholly replace the entry for `id`.

        Keyword associations the previous version had but the new
        metadata lacks are removed.

        Returns:
            The stored entry, stamped with the current time.
        """
        entry = VectorEntry(
            id=id, vector=tuple(float(x) for x in vector), metadata=metadata
        )
        async with self._lock:
            self._put(entry)
            self._touch_size()
        logger.debug("Upserted entry", extra={"entry_id": id})
        return entry

    async def upsert_batch(self, entries: Iterable[BatchItem]) -> int:
        """Upsert entries in input order.

        Items may be VectorEntryInput or (id, vector, metadata) tuples.
        Each item is applied as its own upsert.

        Returns:
            Number of entries written.
        """
        count = 0
        for item in entries:
            if isinstance(item, VectorEntryInput):
                entry_id, vector, metadata = item.id, item.vector, item.metadata
            elif isinstance(item, tuple) and len(item) == 3:
                entry_id, vector, metadata = item
            else:
                raise ValidationError(
                    "Batch items must be VectorEntryInput or (id, vector, metadata)",
                    details={"item_type": type(item).__name__},
                )
            await self.upsert(entry_id, vector, metadata)
            count += 1
        return count

    async def index_item(self, id: str, metadata: VectorMetadata) -> bool:
        """Embed an item's metadata and upsert it.

        Returns:
            False (and nothing is stored) if no metadata field could be
            embedded.
        """
        vector = await self._embeddings.embed_media_metadata(
            description=metadata.description,
            keywords=metadata.keywords,
            transcript=metadata.transcript,
            people=metadata.people,
        )
        if vector is None:
            logger.info("Item has no embeddable metadata", extra={"entry_id": id})
            return False
        await self.upsert(id, vector, metadata)
        return True

    async def get(self, id: str) -> VectorEntry | None:
        """Entry for `id`, or None."""
        async with self._lock:
            return self._entries.get(id)

    async def delete(self, id: str) -> bool:
        """Remove an entry and its keyword associations.

        Returns:
            True if an entry was removed; False if `id` was unknown.
        """
        async with self._lock:
            entry = self._entries.pop(id, None)
            if entry is None:
                return False
            self._arrays.pop(id, None)
            self._keywords.remove(id, entry.metadata.keywords)
            self._touch_size()
        logger.debug("Deleted entry", extra={"entry_id": id})
        return True

    async def count(self) -> int:
        """Number of live entries."""
        async with self._lock:
            return len(self._entries)

    async def ids(self) -> list[str]:
        """Ids of all live entries, sorted."""
        async with self._lock:
            return sorted(self._entries)

    async def keyword_ids(self, keyword: str) -> frozenset[str]:
        """Ids indexed under a keyword (case-insensitive)."""
        async with self._lock:
            return self._keywords.lookup(keyword)

    # -- search ----------------------------------------------------------

    @staticmethod
    def _check_top_k(top_k: int) -> None:
        if top_k < 0:
            raise ValidationError("top_k must not be negative", details={"top_k": top_k})

    def _candidates(self, filters: SearchFilters | None) -> list[VectorEntry]:
        """Entries passing the filters. Caller holds the lock."""
        if filters is None:
            return list(self._entries.values())
        return [e for e in self._entries.values() if filters.matches(e.metadata)]

    def _results(self, ranked: list[tuple[str, float]]) -> list[SearchResult]:
        """Attach metadata to ranked ids. Caller holds the lock."""
        return [
            SearchResult(id=entry_id, score=score, metadata=self._entries[entry_id].metadata)
            for entry_id, score in ranked
            if entry_id in self._entries
        ]

    async def search(
        self,
        query: str,
        top_k: int = 10,
        threshold: float = 0.25,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Semantic search for a text query.

        Returns an empty list if the query cannot be embedded.
        """
        self._check_top_k(top_k)
        start = time.perf_counter()

        query_vector = await self._embeddings.embed(query)
        if query_vector is None:
            logger.warning("Could not embed search query", extra={"query_length": len(query)})
            track_search_request("text", time.perf_counter() - start, 0, 0.0)
            return []

        results = await self._search_vector(query_vector, top_k, threshold, filters)
        self._track("text", start, results)
        return results

    async def search_by_vector(
        self,
        query_vector: Sequence[float],
        top_k: int = 10,
        threshold: float = 0.25,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Nearest neighbors of a query vector.

        Filters narrow the candidates first; every remaining entry is
        scored by cosine similarity, entries below `threshold` are
        dropped, and the best `top_k` are returned (ties by id).
        """
        self._check_top_k(top_k)
        start = time.perf_counter()
        results = await self._search_vector(query_vector, top_k, threshold, filters)
        self._track("vector", start, results)
        return results

    async def _search_vector(
        self,
        query_vector: Sequence[float],
        top_k: int,
        threshold: float,
        filters: SearchFilters | None,
    ) -> list[SearchResult]:
        query = as_array(query_vector)
        async with self._lock:
            scores = (
                (entry.id, cosine_similarity(query, self._arrays[entry.id]))
                for entry in self._candidates(filters)
            )
            ranked = rank_scores(
                ((entry_id, score) for entry_id, score in scores if score >= threshold),
                top_k,
            )
            return self._results(ranked)

    async def hybrid_search(
        self,
        query: str,
        top_k: int = 10,
        keyword_weight: float = 0.3,
        semantic_weight: float = 0.7,
        filters: SearchFilters | None = None,
    ) -> list[SearchResult]:
        """Blend keyword overlap with semantic similarity.

        Query keywords are extracted the same way as for indexing; each
        one found in the keyword index adds 1/len(keywords) to the
        entries carrying it. With a query vector, every candidate scores
        `semantic_weight * cosine + keyword_weight * keyword_score` and
        only scores above 0.1 are kept. If the query cannot be embedded,
        the keyword scores alone are ranked.

        Filters apply to both paths.
        """
        self._check_top_k(top_k)
        start = time.perf_counter()
        tokens = extract_keywords(query)

        query_vector = await self._embeddings.embed(query)

        async with self._lock:
            keyword_scores = self._keywords.score(tokens)
            allowed = {entry.id for entry in self._candidates(filters)}

            if query_vector is None:
                logger.info(
                    "Hybrid search falling back to keywords only",
                    extra={"query_length": len(query)},
                )
                ranked = rank_scores(
                    (
                        (entry_id, score)
                        for entry_id, score in keyword_scores.items()
                        if entry_id in allowed
                    ),
                    top_k,
                )
                results = self._results(ranked)
                mode = "keyword_fallback"
            else:
                query_arr = as_array(query_vector)
                combined: list[tuple[str, float]] = []
                for entry_id in allowed:
                    semantic = cosine_similarity(query_arr, self._arrays[entry_id])
                    score = semantic_weight * semantic + keyword_weight * keyword_scores.get(
                        entry_id, 0.0
                    )
                    if score > HYBRID_MIN_SCORE:
                        combined.append((entry_id, score))
                results = self._results(rank_scores(combined, top_k))
                mode = "hybrid"

        self._track(mode, start, results)
        return results

    @staticmethod
    def _track(mode: str, start: float, results: list[SearchResult]) -> None:
        top_score = results[0].score if results else 0.0
        track_search_request(mode, time.perf_counter() - start, len(results), top_score)

    # -- maintenance -----------------------------------------------------

    async def rebuild_embeddings(self) -> int:
        """Recompute every vector from its metadata, then save.

        Entries whose metadata cannot be embedded keep their vector.
        Entries rewritten by a concurrent upsert while the rebuild was
        embedding are left as the upsert wrote them.

        Returns:
            Number of entries whose vector was replaced.
        """
        start = time.perf_counter()
        async with self._lock:
            pending = [(e.id, e.metadata, e.updated_at) for e in self._entries.values()]
        logger.info(f"Rebuilding embeddings for {len(pending)} entries")

        updated = 0
        for entry_id, metadata, stamp in pending:
            vector = await self._embeddings.embed_media_metadata(
                description=metadata.description,
                keywords=metadata.keywords,
                transcript=metadata.transcript,
                people=metadata.people,
            )
            if vector is None:
                continue
            async with self._lock:
                current = self._entries.get(entry_id)
                if current is None or current.updated_at != stamp:
                    continue
                self._put(
                    VectorEntry(id=entry_id, vector=vector, metadata=current.metadata)
                )
                updated += 1

        logger.info(f"Updated {updated} embeddings")
        track_store_operation("rebuild", time.perf_counter() - start)
        await self.save_to_disk()
        return updated

    async def save_to_disk(self) -> bool:
        """Write every entry to the persisted document.

        Returns:
            True if the document was written. Failures are logged and the
            in-memory store is unaffected.
        """
        start = time.perf_counter()
        async with self._lock:
            entries = list(self._entries.values())
            try:
                await asyncio.to_thread(self._snapshot.write, entries)
            except PersistenceError as e:
                logger.error(f"Save failed: {e.message}", extra=e.details)
                track_store_operation("save", time.perf_counter() - start, success=False)
                return False

        logger.info(
            f"Saved {len(entries)} vectors to disk", extra={"path": str(self.path)}
        )
        track_store_operation("save", time.perf_counter() - start)
        return True

    async def load_from_disk(self) -> bool:
        """Merge the persisted document into the store.

        Loaded entries replace in-memory entries with the same id;
        others are kept. Missing, unreadable or malformed documents are
        logged and leave the store as it was.

        Returns:
            True if a document was loaded.
        """
        start = time.perf_counter()
        async with self._lock:
            if not self._snapshot.exists():
                logger.info("No existing store found", extra={"path": str(self.path)})
                return False
            try:
                entries = await asyncio.to_thread(self._snapshot.read)
            except PersistenceError as e:
                logger.error(f"Load failed: {e.message}", extra=e.details)
                track_store_operation("load", time.perf_counter() - start, success=False)
                return False

            for entry in entries:
                self._put(entry)
            self._touch_size()
            total = len(self._entries)

        logger.info(
            f"Loaded {len(entries)} vectors from disk",
            extra={"path": str(self.path), "total": total},
        )
        track_store_operation("load", time.perf_counter() - start)
        return True

    async def clear(self) -> None:
        """Remove all entries, the keyword index and the persisted document."""
        async with self._lock:
            self._entries.clear()
            self._arrays.clear()
            self._keywords.clear()
            self._touch_size()
            try:
                await asyncio.to_thread(self._snapshot.delete)
            except PersistenceError as e:
                logger.error(f"Could not delete store document: {e.message}", extra=e.details)
        logger.info("Cleared all vectors")
