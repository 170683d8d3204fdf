"""Command-line entry point for the Sipuraya story ingestion pipeline.

Usage::

    python -m src.cli.ingest pair --en "data/raw/Adar 02 English.docx" \\
        --he "data/raw/Adar 02 edit.docx"

    python -m src.cli.ingest directory --path data/raw/ --no-embed

    python -m src.cli.ingest audit --fix

    python -m src.cli.ingest stats

``--dry-run`` runs every stage except persistence and prints the report.
The process exits non-zero only when a document pair was aborted by an
unreadable document or when every persistence batch failed.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from src.config.settings import Settings
from src.utils.errors import ConfigurationError


def _build_store(config: dict[str, Any], app_settings: Settings):  # noqa: ANN202
    """Return the configured :class:`IStoryStore` (not yet initialised)."""
    store_cfg = config.get("store", {})
    backend = str(store_cfg.get("backend", app_settings.store_backend)).lower()

    if backend == "sqlite":
        from src.providers.story_store.sqlite_story_store import SQLiteStoryStore

        return SQLiteStoryStore(store_cfg.get("sqlite_db_path", app_settings.sqlite_db_path))
    if backend == "postgres":
        from src.providers.story_store.postgres_story_store import PostgresStoryStore

        return PostgresStoryStore(app_settings.database_url)

    raise ConfigurationError(
        message=f"Unknown store backend {backend!r} (expected 'sqlite' or 'postgres')",
        provider_name="cli",
    )


def _build_embedder(app_settings: Settings):  # noqa: ANN202
    """Return a StoryEmbedder, or None when no API key is configured."""
    if not app_settings.embeddings_enabled():
        return None

    from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from src.services.ingestion.story_embedder import StoryEmbedder

    provider = OpenAIEmbeddingProvider(app_settings)
    return StoryEmbedder.from_settings(provider, app_settings)


def _build_service(
    config: dict[str, Any],
    app_settings: Settings,
    *,
    store=None,  # noqa: ANN001
    embedder=None,  # noqa: ANN001
):  # noqa: ANN202
    from src.services.ingestion.ingestion_service import IngestionService
    from src.services.ingestion.markers import MarkerFormat

    return IngestionService(
        store=store,
        embedder=embedder,
        marker_format=MarkerFormat.from_config(config.get("markers")),
        min_hebrew_body_chars=config.get("merge", {}).get(
            "min_hebrew_body_chars", app_settings.min_hebrew_body_chars
        ),
        persist_batch_size=config.get("store", {}).get(
            "batch_size", app_settings.persist_batch_size
        ),
    )


# ---------------------------------------------------------------------------
# Report output
# ---------------------------------------------------------------------------


def _print_report(report) -> None:  # noqa: ANN001
    print(f"\n{report.source_en}  <->  {report.source_he}")
    if report.aborted:
        print(f"  ABORTED: {report.extraction_error}")
        return

    print(f"  Blocks (en / he):     {report.blocks_en} / {report.blocks_he}")
    print(f"  Records built:        {report.records_built}")
    print(f"  Records repaired:     {report.records_repaired}")
    print(f"  Embeddings generated: {report.embeddings_generated}")
    if report.dry_run:
        print("  Persisted:            (dry run)")
    else:
        print(
            f"  Persisted:            {report.records_persisted}"
            f" in {report.persistence_batches} batch(es)"
        )
    print(f"  Time:                 {report.duration_seconds:.2f}s")

    if report.issue_counts:
        print("  Issues:")
        for category, count in sorted(report.issue_counts.items(), key=lambda kv: kv[0].value):
            ids = report.ids(category)
            shown = ", ".join(ids[:10]) + (" ..." if len(ids) > 10 else "")
            print(f"    {category.value:<24} {count:>5}  {shown}")


def _exit_code(reports: list) -> int:
    return 1 if any(r.aborted or r.all_batches_failed for r in reports) else 0


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _open_store(args: argparse.Namespace, config: dict[str, Any], app_settings: Settings):  # noqa: ANN202
    if args.dry_run:
        return None
    store = _build_store(config, app_settings)
    await store.initialize()
    return store


async def _handle_pair(
    args: argparse.Namespace, config: dict[str, Any], app_settings: Settings
) -> int:
    store = await _open_store(args, config, app_settings)
    embedder = None if args.no_embed else _build_embedder(app_settings)
    service = _build_service(config, app_settings, store=store, embedder=embedder)

    report = await service.ingest_files(
        args.en, args.he, embed=not args.no_embed, persist=not args.dry_run
    )
    _print_report(report)
    return _exit_code([report])


async def _handle_directory(
    args: argparse.Namespace, config: dict[str, Any], app_settings: Settings
) -> int:
    path = args.path or config.get("app", {}).get("data_dir", app_settings.data_dir)
    print(f"Ingesting directory: {path}")

    store = await _open_store(args, config, app_settings)
    embedder = None if args.no_embed else _build_embedder(app_settings)
    service = _build_service(config, app_settings, store=store, embedder=embedder)

    reports = await service.ingest_directory(
        path, embed=not args.no_embed, persist=not args.dry_run
    )
    if not reports:
        print("No English/Hebrew document pairs found.")
        return 0

    for report in reports:
        _print_report(report)

    print("\nDirectory ingestion complete:")
    print(f"  Pairs processed:  {len(reports)}")
    print(f"  Records built:    {sum(r.records_built for r in reports)}")
    print(f"  Records stored:   {sum(r.records_persisted for r in reports)}")
    print(f"  Pairs aborted:    {sum(1 for r in reports if r.aborted)}")
    return _exit_code(reports)


async def _handle_audit(
    args: argparse.Namespace, config: dict[str, Any], app_settings: Settings
) -> int:
    from src.services.story_audit_service import StoryAuditService

    store = _build_store(config, app_settings)
    await store.initialize()
    report = await StoryAuditService(store).audit(fix=args.fix)

    print(f"Stories scanned:  {report.scanned}")
    print(f"Findings:         {len(report.findings)}")
    for finding in report.findings:
        print(f"  {finding.story_id:<10} {finding.field:<10} {finding.issue}")
    if report.dry_run:
        if report.findings:
            print("\nDry run; re-run with --fix to write the proposed values.")
    else:
        print(f"Stories updated:  {report.stories_updated}")
    return 0


async def _handle_stats(config: dict[str, Any], app_settings: Settings) -> int:
    store = _build_store(config, app_settings)
    await store.initialize()
    total = await store.count()

    print("Story Store Statistics")
    print("=" * 40)
    print(f"  Backend:        {store.get_provider_name()}")
    print(f"  Total stories:  {total}")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Ingest paired English/Hebrew story documents into the story store.",
    )
    parser.add_argument(
        "--config", default="config/config.yaml", help="Path to the YAML config file"
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (e.g. DEBUG)")

    subparsers = parser.add_subparsers(dest="command")

    pair_parser = subparsers.add_parser("pair", help="Ingest one English/Hebrew document pair")
    pair_parser.add_argument("--en", required=True, help="Path to the English document")
    pair_parser.add_argument("--he", required=True, help="Path to the Hebrew document")

    dir_parser = subparsers.add_parser(
        "directory", help="Ingest every document pair found in a directory"
    )
    dir_parser.add_argument("--path", default=None, help="Directory path (default: DATA_DIR)")

    for sub in (pair_parser, dir_parser):
        sub.add_argument(
            "--no-embed", action="store_true", help="Skip embedding generation"
        )
        sub.add_argument(
            "--dry-run", action="store_true", help="Run every stage except persistence"
        )

    audit_parser = subparsers.add_parser(
        "audit", help="Find stored Hebrew fields that need repair"
    )
    audit_parser.add_argument(
        "--fix", action="store_true", help="Write the repaired values back to the store"
    )

    subparsers.add_parser("stats", help="Show story store statistics")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse arguments, load configuration and dispatch to a handler."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    from src.config.loader import load_config
    from src.utils.logging import configure_logging

    app_settings = Settings()
    try:
        config = load_config(args.config, settings=app_settings)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(2)

    configure_logging(
        log_level=args.log_level or config.get("logging", {}).get("level", app_settings.log_level),
        json_output=app_settings.app_env == "production",
        app_env=app_settings.app_env,
    )

    try:
        if args.command == "pair":
            exit_code = asyncio.run(_handle_pair(args, config, app_settings))
        elif args.command == "directory":
            exit_code = asyncio.run(_handle_directory(args, config, app_settings))
        elif args.command == "audit":
            exit_code = asyncio.run(_handle_audit(args, config, app_settings))
        elif args.command == "stats":
            exit_code = asyncio.run(_handle_stats(config, app_settings))
        else:
            parser.print_help()
            exit_code = 1
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 2

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
