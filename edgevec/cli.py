#!/usr/bin/env python3
"""
edgevec CLI: provision, load and query a hybrid vector store.

    COMMAND         ALIASES         WHAT IT DOES
    -------         -------         ----------------------------------
    setup           init            Create the database and tables
    ingest          add, load       Embed and insert documents from JSONL
    search          query, find     Similarity, full-text or hybrid search
    info            config          Show the effective configuration
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from edgevec import __version__

logger = logging.getLogger(__name__)


def _setup_logging(cfg: dict, verbose: bool = False):
    log_cfg = cfg.get("logging", {})
    level_name = "DEBUG" if verbose else log_cfg.get("level", "INFO")
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    log_file = log_cfg.get("file")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=handlers,
    )


def _load(args) -> dict:
    from edgevec.config import load_config

    cfg = load_config(Path(args.config) if args.config else None)
    _setup_logging(cfg, args.verbose)
    return cfg


def _store(cfg: dict):
    from edgevec.vector_store import VectorStore
    return VectorStore.from_config(cfg)


def read_documents(path: str) -> list:
    """Read {"content": ..., "metadata": {...}} objects, one per line."""
    from edgevec.models import Document

    documents = []
    with open(path, encoding="utf-8") as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{lineno}: invalid JSON: {e}") from e
            if "content" not in obj:
                raise ValueError(f"{path}:{lineno}: missing 'content'")
            documents.append(Document(
                content=str(obj["content"]),
                metadata=obj.get("metadata") or {},
                id=obj.get("id"),
            ))
    return documents


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_setup(args):
    """Create the database and tables."""
    from edgevec.models import SetupOptions

    cfg = _load(args)
    store_cfg = cfg["store"]
    options = SetupOptions(
        columns=args.column or list(store_cfg.get("columns") or []),
        mode=args.mode or store_cfg.get("mode", "vector"),
    )
    store = _store(cfg)
    created = asyncio.run(store.setup_database(options))
    print(f"  Database: {store.db_name}")
    print(f"  Table:    {store.table_name} ({options.mode})")
    print("  Tables created." if created else "  Tables already present, nothing to do.")


def cmd_ingest(args):
    """Embed and insert documents from a JSONL file."""
    cfg = _load(args)
    documents = read_documents(args.file)
    if not documents:
        print("  No documents found.")
        return
    store = _store(cfg)
    count = asyncio.run(store.add_documents(documents))
    print(f"  Inserted {count} document(s) into {store.table_name}")


def cmd_search(args):
    """Run a similarity, full-text or hybrid search."""
    from edgevec.models import (
        Filter,
        FullTextSearchOptions,
        HybridSearchOptions,
        SimilaritySearchOptions,
    )

    cfg = _load(args)
    store = _store(cfg)
    query = " ".join(args.query)
    filters = [Filter.parse(f) for f in args.filter] if args.filter else None
    meta = args.meta or None

    if args.mode == "similarity":
        opts = SimilaritySearchOptions(kvector=args.kvector, filter=filters, metadata_items=meta)
        results = asyncio.run(store.similarity_search(query, opts))
    elif args.mode == "fts":
        opts = FullTextSearchOptions(kfts=args.kfts, filter=filters, metadata_items=meta)
        results = asyncio.run(store.full_text_search(query, opts))
    else:
        opts = HybridSearchOptions(kfts=args.kfts, kvector=args.kvector, filter=filters, metadata_items=meta)
        results = asyncio.run(store.hybrid_search(query, opts))

    if args.json:
        print(json.dumps([r.__dict__ for r in results], indent=2))
        return

    if not results:
        print("  No results.")
        return

    for i, hit in enumerate(results, 1):
        if hit.is_error:
            print(f"  [error] {hit.content}")
            sys.exit(1)
        content = hit.content
        if len(content) > 200:
            content = content[:200] + "..."
        print(f"\n  [{i}] {hit.search_type} | id: {hit.id} | score: {hit.score:.4f}")
        extra = {k: v for k, v in hit.metadata.items() if k != "searchtype"}
        if extra:
            print(f"      {json.dumps(extra)}")
        print(f"      {content}")


def cmd_info(args):
    """Show the effective configuration (token masked)."""
    cfg = _load(args)
    shown = json.loads(json.dumps(cfg))
    for section in ("database", "embedding"):
        for key in ("token", "api_key"):
            if shown.get(section, {}).get(key):
                shown[section][key] = "****"
    print(json.dumps(shown, indent=2))


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def _add_command(subparsers, names, help_text, func, setup_fn=None):
    """Register a command under its name and aliases."""
    p = subparsers.add_parser(names[0], help=help_text, aliases=names[1:])
    p.set_defaults(func=func)
    if setup_fn:
        setup_fn(p)
    return p


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edgevec",
        description="edgevec: hybrid vector and full-text search on edge SQL.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", "-V", action="version", version=f"edgevec {__version__}")
    parser.add_argument("--config", "-c", default=None, help="Path to config.yaml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def setup_setup(p):
        p.add_argument("--mode", choices=["vector", "hybrid"], default=None,
                       help="Search mode to provision (default: from config)")
        p.add_argument("--column", action="append", default=None,
                       help="Metadata column for expanded mode (repeatable)")

    _add_command(sub, ["setup", "init"], "Create the database and tables", cmd_setup, setup_setup)

    def setup_ingest(p):
        p.add_argument("file", help="JSONL file of {\"content\", \"metadata\"} objects")

    _add_command(sub, ["ingest", "add", "load"], "Embed and insert documents", cmd_ingest, setup_ingest)

    def setup_search(p):
        p.add_argument("query", nargs="+", help="Search query")
        p.add_argument("--mode", "-m", choices=["similarity", "fts", "hybrid"], default="hybrid")
        p.add_argument("--kvector", type=int, default=4, help="Similarity results")
        p.add_argument("--kfts", type=int, default=4, help="Full-text results")
        p.add_argument("--filter", "-f", action="append", default=None,
                       help="Filter as 'column OP value', e.g. \"topic = news\" (repeatable)")
        p.add_argument("--meta", action="append", default=None,
                       help="Metadata field to return (repeatable)")
        p.add_argument("--json", action="store_true", help="Raw JSON output")

    _add_command(sub, ["search", "query", "find"], "Search the store", cmd_search, setup_search)

    _add_command(sub, ["info", "config"], "Show effective configuration", cmd_info)
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
