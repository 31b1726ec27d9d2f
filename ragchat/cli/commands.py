"""Argparse CLI for collection management and terminal chat.

Usage::

    python -m ragchat.cli collections
    python -m ragchat.cli create handbook
    python -m ragchat.cli ingest --collection handbook docs/*.md
    python -m ragchat.cli search --collection handbook "vacation policy" -k 3
    python -m ragchat.cli chat --collection handbook

Providers are selected exactly as the HTTP app does, so the CLI and the
server share one Chroma directory and one embedding model.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

from ragchat.config.loader import apply_overrides, load_config
from ragchat.config.settings import Settings
from ragchat.utils.errors import (
    CollectionExistsError,
    CollectionNotFoundError,
    RagChatError,
)

_EXIT_WORDS = frozenset({"exit", "quit", ":q"})


def _build_components(app_settings: Settings) -> dict[str, Any]:
    """Construct providers and services with the app's selection rules."""
    from ragchat.main import build_embedding_provider, build_llm_provider, build_services
    from ragchat.providers.vector_store.chromadb_provider import ChromaDBProvider

    vector_store = ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        host=app_settings.chromadb_host,
        port=app_settings.chromadb_port,
    )
    return build_services(
        app_settings,
        llm=build_llm_provider(app_settings),
        embedding=build_embedding_provider(app_settings),
        vector_store=vector_store,
    )


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_collections(args: argparse.Namespace, components: dict[str, Any]) -> int:
    collections = await components["collection_service"].list_collections()
    if not collections:
        print("No collections.")
        return 0

    print(f"{'Name':<32} {'Chunks':>8}")
    print("=" * 41)
    for info in collections:
        print(f"{info.name:<32} {info.count:>8}")
    return 0


async def _handle_create(args: argparse.Namespace, components: dict[str, Any]) -> int:
    try:
        info = await components["collection_service"].create_collection(args.name)
    except CollectionExistsError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f'Created collection "{info.name}"')
    return 0


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Read text files and add them to a collection, one document per file."""
    from ragchat.models.rag import DocumentInput

    documents: list[DocumentInput] = []
    for file_name in args.files:
        path = Path(file_name)
        if not path.is_file():
            print(f"Error: not a file: {path}", file=sys.stderr)
            return 1
        documents.append(
            DocumentInput(
                content=path.read_text(encoding="utf-8", errors="replace"),
                metadata={"source": path.name, "path": str(path)},
            )
        )

    print(f"Ingesting {len(documents)} file(s) into {args.collection!r}")
    try:
        result = await components["collection_service"].add_documents(
            args.collection,
            documents,
            chunk_size=args.chunk_size,
            chunk_overlap=args.chunk_overlap,
        )
    except CollectionNotFoundError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print("\nIngestion complete:")
    print(f"  Documents:      {result.documents}")
    print(f"  Chunks created: {result.chunks}")
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    try:
        chunks = await components["collection_service"].search(args.collection, args.query, args.k)
    except CollectionNotFoundError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    if not chunks:
        print("No results.")
        return 0

    for rank, chunk in enumerate(chunks, start=1):
        source = chunk.source or chunk.id
        print(f"[{rank}] score={chunk.relevance_score:.3f}  source={source}")
        print(f"    {chunk.text[:200].replace(chr(10), ' ')}")
    return 0


async def _handle_chat(
    args: argparse.Namespace,
    components: dict[str, Any],
    read_line: Callable[[str], str] = input,
) -> int:
    """Interactive loop: one message per line, ``exit`` or EOF to stop."""
    sessions = components["session_manager"]
    chat = components["chat_service"]

    try:
        session = await sessions.start_session(args.collection, args.system_prompt)
    except CollectionNotFoundError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(f"Session {session.session_id} on {session.collection_name!r}. Type 'exit' to quit.")
    while True:
        try:
            message = read_line("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break
        if not message:
            continue
        if message.lower() in _EXIT_WORDS:
            break

        try:
            answer = await chat.send_message(session.session_id, message, k=args.k)
        except RagChatError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            continue

        print(f"assistant> {answer.answer}")
        if answer.sources:
            print(f"  sources: {', '.join(answer.sources)}")

    if not args.keep:
        await sessions.delete_session(session.session_id)
    return 0


_HANDLERS = {
    "collections": _handle_collections,
    "create": _handle_create,
    "ingest": _handle_ingest,
    "search": _handle_search,
    "chat": _handle_chat,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ragchat CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m ragchat.cli",
        description="Manage ragchat collections and chat from the terminal.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("collections", help="List document collections")

    create_parser = subparsers.add_parser("create", help="Create a collection")
    create_parser.add_argument("name", help="Collection name ([a-zA-Z0-9_-])")

    ingest_parser = subparsers.add_parser("ingest", help="Add text files to a collection")
    ingest_parser.add_argument("--collection", required=True, help="Target collection")
    ingest_parser.add_argument("files", nargs="+", help="Text files to ingest")
    ingest_parser.add_argument("--chunk-size", type=int, default=None, dest="chunk_size")
    ingest_parser.add_argument("--chunk-overlap", type=int, default=None, dest="chunk_overlap")

    search_parser = subparsers.add_parser("search", help="Similarity search in a collection")
    search_parser.add_argument("--collection", required=True, help="Collection to search")
    search_parser.add_argument("query", help="Search text")
    search_parser.add_argument("-k", type=int, default=None, help="Number of results")

    chat_parser = subparsers.add_parser("chat", help="Interactive chat on a collection")
    chat_parser.add_argument("--collection", required=True, help="Collection to chat with")
    chat_parser.add_argument("--system-prompt", default=None, dest="system_prompt")
    chat_parser.add_argument("-k", type=int, default=None, help="Chunks retrieved per message")
    chat_parser.add_argument(
        "--keep",
        action="store_true",
        help="Keep the session and its history after exiting",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = apply_overrides(Settings(), load_config())
    components = _build_components(app_settings)

    handler = _HANDLERS[args.command]
    try:
        exit_code = asyncio.run(handler(args, components))
    except RagChatError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
