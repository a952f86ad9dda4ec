#!/usr/bin/env python
"""Inspect and maintain a persisted vector store.

Usage:
    python -m scripts.store_cli stats
    python -m scripts.store_cli search "beach at sunset" --top-k 5
    python -m scripts.store_cli hybrid "beach sunset" --media-type photo
    python -m scripts.store_cli rebuild
    python -m scripts.store_cli clear --yes

The store location and embedding backend come from the usual
STORE_* and EMBEDDING_* environment variables unless overridden.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.config import get_settings
from src.logging_config import get_logger, setup_logging
from src.vectorstore.models import MediaType, SearchFilters, SearchResult
from src.vectorstore.service import VectorStore

logger = get_logger(__name__)


def _filters(args: argparse.Namespace) -> SearchFilters | None:
    if args.media_type is None and args.person is None:
        return None
    return SearchFilters(media_type=args.media_type, person=args.person)


def _print_results(results: list[SearchResult], as_json: bool) -> None:
    if as_json:
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
        return
    if not results:
        print("No results.")
        return
    for rank, result in enumerate(results, start=1):
        print(f"{rank:>3}. {result.score:.4f}  {result.id}  {result.metadata.description}")


async def run(args: argparse.Namespace) -> int:
    """Execute one command and return the process exit code."""
    setup_logging(level=args.log_level)

    settings = get_settings().store
    store = await VectorStore.open(settings=settings, path=args.store)

    if args.command == "stats":
        print(f"Store: {store.path}")
        print(f"Entries: {await store.count()}")
        return 0

    if args.command == "search":
        results = await store.search(
            args.query,
            top_k=args.top_k,
            threshold=args.threshold,
            filters=_filters(args),
        )
        _print_results(results, args.json)
        return 0

    if args.command == "hybrid":
        results = await store.hybrid_search(
            args.query,
            top_k=args.top_k,
            keyword_weight=args.keyword_weight,
            semantic_weight=args.semantic_weight,
            filters=_filters(args),
        )
        _print_results(results, args.json)
        return 0

    if args.command == "rebuild":
        updated = await store.rebuild_embeddings()
        print(f"Rebuilt {updated} of {await store.count()} embeddings")
        return 0

    if args.command == "clear":
        if not args.yes:
            print("Refusing to clear without --yes", file=sys.stderr)
            return 2
        await store.clear()
        print("Store cleared")
        return 0

    logger.error(f"Unknown command: {args.command}")
    return 2


def build_parser() -> argparse.ArgumentParser:
    """Command-line interface definition."""
    parser = argparse.ArgumentParser(
        description="Inspect and maintain a persisted vector store",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="Path to the store document (default from STORE_PATH)",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("stats", help="Show entry count")

    for name, help_text in (
        ("search", "Semantic search"),
        ("hybrid", "Keyword + semantic search"),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("query", help="Query text")
        sub.add_argument("--top-k", type=int, default=10, help="Maximum results")
        sub.add_argument(
            "--media-type",
            type=MediaType,
            choices=list(MediaType),
            default=None,
            help="Only this media type",
        )
        sub.add_argument("--person", default=None, help="Only items with this person")
        sub.add_argument("--json", action="store_true", help="Print JSON")
        if name == "search":
            sub.add_argument("--threshold", type=float, default=0.25, help="Minimum score")
        else:
            sub.add_argument("--keyword-weight", type=float, default=0.3)
            sub.add_argument("--semantic-weight", type=float, default=0.7)

    commands.add_parser("rebuild", help="Recompute all embeddings from metadata")

    clear = commands.add_parser("clear", help="Delete all entries and the document")
    clear.add_argument("--yes", action="store_true", help="Confirm deletion")

    return parser


def main() -> None:
    """Main entry point."""
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
