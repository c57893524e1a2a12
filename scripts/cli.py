"""CLI entry point for the Notion commit log maintenance tools."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable

from pydantic import ValidationError

from notion_maintainer.config.settings import NotionMaintainerSettings
from notion_maintainer.core.exceptions import ConfigurationError
from notion_maintainer.core.models import DedupProgress, MaintenanceResult
from notion_maintainer.pipeline.deduplicator import Deduplicator
from notion_maintainer.pipeline.maintenance import MaintenanceRunner
from notion_maintainer.storage.progress_store import ProgressStore


def setup_logging(level: str) -> None:
    """Configure logging with timestamp and module info."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def on_progress(progress: DedupProgress) -> None:
    """Print progress updates to stdout."""
    print(
        f"[{progress.current_stage}] "
        f"pages={progress.processed_pages}/{progress.total_pages} "
        f"duplicates={progress.duplicates_found} "
        f"removed={progress.duplicates_removed} "
        f"errors={progress.errors} "
        f"batch={progress.current_batch}/{progress.total_batches}",
        end="\r",
        flush=True,
    )


def _positive_int(value: str) -> int:
    """argparse type for strictly positive integers."""
    try:
        number = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from e
    if number <= 0:
        raise argparse.ArgumentTypeError(f"{value!r} must be positive")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Notion Maintainer - Deduplicate and bulk-maintain the commit log database"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # dedupe command
    dedupe_parser = subparsers.add_parser("dedupe", help="Archive duplicate commit entries")
    dedupe_parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        dest="batch_size",
        help="Batch size for archive operations (default: from settings)",
    )
    dedupe_parser.add_argument(
        "--concurrent",
        type=_positive_int,
        default=None,
        help="Max concurrent archive operations (default: from settings)",
    )
    dedupe_parser.add_argument(
        "--resume", action="store_true", help="Resume from a previous run's checkpoint"
    )
    dedupe_parser.add_argument(
        "--clean-progress",
        action="store_true",
        dest="clean_progress",
        help="Delete the checkpoint file and start fresh",
    )

    # normalize-projects command
    normalize_parser = subparsers.add_parser(
        "normalize-projects", help="Remove owner prefixes from project names"
    )
    normalize_parser.add_argument(
        "--execute", "-e", action="store_true", help="Apply changes (default is dry run)"
    )

    # clear command
    clear_parser = subparsers.add_parser("clear", help="Archive ALL entries in the database")
    clear_parser.add_argument(
        "--yes", "-y", action="store_true", help="Skip the confirmation prompt"
    )
    clear_parser.add_argument(
        "--max-pages",
        type=_positive_int,
        default=100,
        dest="max_pages",
        help="Safety limit on query pages processed (default: 100)",
    )

    # clear-recent command
    recent_parser = subparsers.add_parser(
        "clear-recent", help="Archive entries from the last N days"
    )
    recent_parser.add_argument(
        "--days", "-d", type=_positive_int, default=31, help="Number of days to clear (default: 31)"
    )
    recent_parser.add_argument(
        "--execute", "-e", action="store_true", help="Archive entries (default is dry run)"
    )

    # status command
    subparsers.add_parser("status", help="Show the saved dedupe checkpoint, if any")

    return parser


def apply_overrides(
    settings: NotionMaintainerSettings, args: argparse.Namespace
) -> NotionMaintainerSettings:
    """Return settings with --batch-size / --concurrent applied."""
    updates: dict[str, int] = {}
    if getattr(args, "batch_size", None) is not None:
        updates["batch_size"] = args.batch_size
    if getattr(args, "concurrent", None) is not None:
        updates["max_concurrent"] = args.concurrent
    return settings.model_copy(update=updates) if updates else settings


def confirm_clear(database_id: str) -> bool:
    """Ask the user to confirm archiving the whole database."""
    answer = input(
        "\nWARNING: This will archive ALL entries from your Notion database!\n"
        f"Database ID: {database_id}\n\n"
        "Are you sure you want to continue? (yes/no): "
    )
    return answer.strip().lower() in ("yes", "y")


def _run_maintenance(
    runner: MaintenanceRunner,
    operation: Callable[[MaintenanceRunner], Awaitable[MaintenanceResult]],
) -> MaintenanceResult:
    async def _run() -> MaintenanceResult:
        try:
            return await operation(runner)
        finally:
            await runner.close()

    return asyncio.run(_run())


def _print_maintenance_result(result: MaintenanceResult, noun: str) -> None:
    if result.dry_run:
        print(f"\nDRY RUN COMPLETE: {result.found} pages would be {noun}")
        print("Re-run with --execute to apply these changes")
    else:
        print(f"\nFound: {result.found}")
        print(f"Succeeded: {result.succeeded}")
        print(f"Failed: {result.failed}")


def run_dedupe(settings: NotionMaintainerSettings, args: argparse.Namespace) -> int:
    """Run the deduplication pipeline, returning the exit status."""
    store = ProgressStore(settings.progress_path)
    if args.clean_progress:
        store.clear()

    deduplicator = Deduplicator(settings=settings, store=store, on_progress=on_progress)
    try:
        summary = deduplicator.run_sync(resume=args.resume)
    except ConfigurationError:
        raise
    except Exception as e:
        print(f"\n\nDeduplication failed: {e}", file=sys.stderr)
        print(f"Progress saved to {store.path}; re-run with --resume to continue")
        for line in deduplicator.summary().lines():
            print(f"  {line}")
        return 1

    print("\n\nDeduplication completed successfully!")
    for line in summary.lines():
        print(f"  {line}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        settings = apply_overrides(NotionMaintainerSettings(), args)
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    setup_logging(settings.log_level)

    try:
        if args.command == "status":
            store = ProgressStore(settings.progress_path)
            if not store.exists:
                print("No checkpoint found")
                sys.exit(0)
            progress = store.load_existing()
            if progress is None:
                print(f"Checkpoint at {store.path} could not be read")
                sys.exit(1)
            print(f"\nCheckpoint at {store.path}:")
            for key, value in progress.to_dict().items():
                print(f"  {key}: {value}")
            sys.exit(0)

        settings.require_credentials()

        if args.command == "dedupe":
            sys.exit(run_dedupe(settings, args))

        runner = MaintenanceRunner(settings=settings)

        if args.command == "normalize-projects":
            result = _run_maintenance(
                runner, lambda r: r.normalize_project_names(execute=args.execute)
            )
            _print_maintenance_result(result, "renamed")

        elif args.command == "clear":
            if not args.yes and not confirm_clear(settings.database_id):
                print("Operation cancelled")
                sys.exit(0)
            result = _run_maintenance(runner, lambda r: r.clear_database(max_pages=args.max_pages))
            _print_maintenance_result(result, "archived")

        elif args.command == "clear-recent":
            result = _run_maintenance(
                runner, lambda r: r.clear_recent(days=args.days, execute=args.execute)
            )
            _print_maintenance_result(result, "archived")

    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
