"""Tests for the store maintenance CLI."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from scripts.store_cli import build_parser, run
from src.config import StoreSettings
from src.embeddings.service import EmbeddingService
from src.vectorstore.models import MediaType, VectorMetadata
from src.vectorstore.service import VectorStore


@pytest.fixture
async def saved_store(store_path: Path, embedding_service: EmbeddingService) -> Path:
    """A persisted store with two indexed items."""
    store = VectorStore(
        settings=StoreSettings(path=store_path, autoload=False),
        embedding_service=embedding_service,
    )
    await store.index_item(
        "A", VectorMetadata(description="a beach at sunset", keywords=["sunset", "beach"])
    )
    await store.index_item(
        "B",
        VectorMetadata(
            description="a snowy mountain peak",
            keywords=["mountain"],
            media_type=MediaType.VIDEO,
        ),
    )
    assert await store.save_to_disk()
    return store_path


@pytest.fixture(autouse=True)
def hashed_engine(embedding_service: EmbeddingService):
    """Route the CLI's default engine to the hashed-only service."""
    with patch(
        "src.vectorstore.service.get_embedding_service",
        return_value=embedding_service,
    ):
        yield


class TestParser:
    """Tests for argument parsing."""

    def test_search_defaults(self) -> None:
        """search has the store defaults."""
        args = build_parser().parse_args(["search", "beach"])
        assert args.top_k == 10
        assert args.threshold == 0.25
        assert args.media_type is None

    def test_hybrid_weights(self) -> None:
        """hybrid accepts weights and a media type."""
        args = build_parser().parse_args(
            ["hybrid", "beach", "--keyword-weight", "0.5", "--media-type", "video"]
        )
        assert args.keyword_weight == 0.5
        assert args.semantic_weight == 0.7
        assert args.media_type == MediaType.VIDEO

    def test_command_required(self) -> None:
        """A subcommand is mandatory."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestRun:
    """Tests for command execution."""

    @pytest.mark.asyncio
    async def test_stats(self, saved_store: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """stats reports the loaded entry count."""
        args = build_parser().parse_args(["--store", str(saved_store), "stats"])

        assert await run(args) == 0
        assert "Entries: 2" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_search_json(
        self, saved_store: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """search --json prints ranked results."""
        args = build_parser().parse_args(
            ["--store", str(saved_store), "search", "mountain", "--json"]
        )

        assert await run(args) == 0
        results = json.loads(capsys.readouterr().out)
        assert results[0]["id"] == "B"

    @pytest.mark.asyncio
    async def test_hybrid_with_filter(
        self, saved_store: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """hybrid honors --media-type."""
        args = build_parser().parse_args(
            ["--store", str(saved_store), "hybrid", "beach sunset", "--media-type", "video"]
        )

        assert await run(args) == 0
        assert "No results." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_rebuild(self, saved_store: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """rebuild recomputes every embedding."""
        args = build_parser().parse_args(["--store", str(saved_store), "rebuild"])

        assert await run(args) == 0
        assert "Rebuilt 2 of 2 embeddings" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_clear_requires_confirmation(self, saved_store: Path) -> None:
        """clear without --yes leaves the document in place."""
        args = build_parser().parse_args(["--store", str(saved_store), "clear"])

        assert await run(args) == 2
        assert saved_store.exists()

    @pytest.mark.asyncio
    async def test_clear(self, saved_store: Path) -> None:
        """clear --yes deletes the document."""
        args = build_parser().parse_args(["--store", str(saved_store), "clear", "--yes"])

        assert await run(args) == 0
        assert not saved_store.exists()
