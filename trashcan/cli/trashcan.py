# trashcan/cli/trashcan.py
"""
CLI commands for the trashcan cleaner.

Usage:
    python -m trashcan.cli.trashcan status
    python -m trashcan.cli.trashcan clean --dry-run
    python -m trashcan.cli.trashcan clean --confirm --max-items 500 --keep-period P30D
    python -m trashcan.cli.trashcan seed --count 100 --children 2
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()


def get_cleaner(args=None):
    """Build a cleaner from settings, applying command-line overrides."""
    from trashcan.services.job import build_cleaner

    cleaner = build_cleaner()

    overrides = {}
    if args is not None:
        if getattr(args, "max_items", None) is not None:
            overrides["max_items_per_cycle"] = args.max_items
        if getattr(args, "keep_period", None) is not None:
            overrides["keep_period"] = args.keep_period
        if getattr(args, "mode", None) is not None:
            overrides["selection_mode"] = args.mode

    return cleaner.replace(**overrides) if overrides else cleaner


def _print_result(result: dict) -> None:
    print(f"State: {result['state']}")
    print(f"In trashcan at start: {result['observed']}")
    print(f"Selected: {result['selected']}")
    if not result["dry_run"]:
        print(f"Deleted: {result['deleted']}")
        print(f"Already gone: {result['not_found']}")
        print(f"Chunks committed: {result['chunks']}")
    print(f"Remaining: {result['remaining'] if result['remaining'] is not None else 'unknown'}")
    print(f"Duration: {result['duration_seconds']:.2f}s")


def cmd_status(args):
    """Show trashcan size and cleaner configuration."""
    cleaner = get_cleaner()
    pending = cleaner.count_pending()

    print("\n=== Trashcan Status ===\n")
    print(f"Nodes in trashcan: {pending}")
    print("\nConfiguration:")
    for key, value in cleaner.describe().items():
        print(f"  {key}: {value}")
    print()


def cmd_clean(args):
    """Run one cleanup cycle."""
    from trashcan.errors import CycleFailedError, InvalidArgumentError
    from trashcan.services.job import run_cleaner_job

    if not args.dry_run and not args.confirm:
        print("Error: Clean requires --confirm flag for non-dry-run operations")
        print("Use --dry-run to preview what would be deleted")
        sys.exit(1)

    try:
        cleaner = get_cleaner(args)
    except InvalidArgumentError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"\n{'DRY RUN - ' if args.dry_run else ''}Cleaning trashcan...\n")

    if args.dry_run:
        result = cleaner.preview().to_dict()
        _print_result(result)
        if args.verbose and result["victims"]:
            print("\nWould delete:")
            for victim in result["victims"]:
                print(f"  - {victim}")
        return

    try:
        result = run_cleaner_job(cleaner)
    except CycleFailedError as e:
        _print_result(e.result.to_dict())
        print(f"\nError: {e}")
        sys.exit(1)

    _print_result(result)


def cmd_seed(args):
    """Put archived test nodes in the trashcan."""
    from trashcan.config import get_settings
    from trashcan.services.seeding import seed_trashcan
    from trashcan.store import get_node_store

    settings = get_settings()
    store = get_node_store(settings.TRASHCAN_STORE_PROVIDER)

    archived = seed_trashcan(
        store,
        count=args.count,
        children=args.children,
        archive_store_ref=settings.TRASHCAN_ARCHIVE_STORE,
    )
    print(f"Archived {len(archived)} nodes ({args.count} folders, {args.children} children each)")


def main(argv=None):
    from trashcan.config import get_settings
    from trashcan.logging_config import configure_logging

    parser = argparse.ArgumentParser(
        description="Trashcan Cleaner CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check current status
  python -m trashcan.cli.trashcan status

  # Preview what would be deleted
  python -m trashcan.cli.trashcan clean --dry-run

  # Delete up to 500 nodes archived more than 30 days ago
  python -m trashcan.cli.trashcan clean --confirm --max-items 500 --keep-period P30D

  # Fill the trashcan for a local test
  python -m trashcan.cli.trashcan seed --count 100 --children 2
        """,
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show trashcan status")
    status_parser.set_defaults(func=cmd_status)

    # clean command
    clean_parser = subparsers.add_parser("clean", help="Run one cleanup cycle")
    clean_parser.add_argument("--dry-run", action="store_true", help="Preview only, don't delete")
    clean_parser.add_argument("--confirm", action="store_true", help="Confirm deletion")
    clean_parser.add_argument("--max-items", type=int, default=None, help="Max nodes deleted this cycle")
    clean_parser.add_argument("--keep-period", default=None, help="ISO-8601 keep period, e.g. P30D")
    clean_parser.add_argument("--mode", choices=["full", "bounded"], default=None, help="Selection mode")
    clean_parser.add_argument("-v", "--verbose", action="store_true", help="List nodes in dry-run output")
    clean_parser.set_defaults(func=cmd_clean)

    # seed command
    seed_parser = subparsers.add_parser("seed", help="Archive test nodes into the trashcan")
    seed_parser.add_argument("--count", type=int, required=True, help="Folders to create and archive")
    seed_parser.add_argument("--children", type=int, default=0, help="Documents per folder (default: 0)")
    seed_parser.set_defaults(func=cmd_seed)

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    args.func(args)


if __name__ == "__main__":
    main()
