# nabolag/cli/lifecycle.py
"""
CLI commands for the post lifecycle jobs.

Meant for cron or a platform scheduler. Runs must not overlap.

Usage:
    python -m nabolag.cli.lifecycle status
    python -m nabolag.cli.lifecycle prune --dry-run
    python -m nabolag.cli.lifecycle prune
    python -m nabolag.cli.lifecycle drain
"""

import argparse
import sys

from dotenv import load_dotenv

load_dotenv()


def get_db_session():
    """Get a database session."""
    from nabolag.database import SessionLocal

    return SessionLocal()


def _configure_logging(args):
    from nabolag.config import get_settings
    from nabolag.logging_config import configure_logging

    settings = get_settings()
    configure_logging(json_format=args.json_logs, level=settings.LOG_LEVEL)


def cmd_status(args):
    """Show pending lifecycle work."""
    from nabolag.config import get_settings
    from nabolag.services.lifecycle import count_expired, queue_depth

    db = get_db_session()
    try:
        expired = count_expired(db)
        depth = queue_depth(db)

        print("\n=== Lifecycle Status ===\n")
        print(f"Delete mode: {get_settings().DELETE_MODE}")

        print("\nExpired posts awaiting prune:")
        print(f"  explicit expires_at: {expired['explicit']}")
        print(f"  implicit (created_at + TTL): {expired['implicit']}")
        print(f"  total: {expired['total']}")

        print("\nStorage deletion queue:")
        if not depth:
            print("  empty")
        for namespace, count in sorted(depth.items()):
            print(f"  {namespace}: {count}")
        print()
    finally:
        db.close()


def cmd_prune(args):
    """Delete expired posts and their images."""
    from nabolag.services.lifecycle import prune_expired_posts

    db = get_db_session()
    try:
        print(f"\n{'DRY RUN - ' if args.dry_run else ''}Pruning expired posts...\n")

        result = prune_expired_posts(
            db,
            dry_run=args.dry_run,
            rows_limit=args.rows_limit,
            max_loops=args.max_loops,
        )

        print(f"{'Would delete' if args.dry_run else 'Deleted'} posts: {result.deleted_count}")
        print(f"{'Would remove' if args.dry_run else 'Removed'} images: {result.removed_object_count}")
        print(f"Held back: {len(result.skipped_ids)}")
        print(f"Iterations: {result.iterations}")

        if args.verbose and result.ids:
            print("\nPost IDs:")
            for post_id in result.ids:
                print(f"  {post_id}")

        if result.errors:
            print("\nErrors:")
            for error in result.errors:
                print(f"  - {error}")

        if not result.success:
            sys.exit(1)
    finally:
        db.close()


def cmd_drain(args):
    """Empty the storage deletion queue."""
    from nabolag.services.lifecycle import drain_queue

    db = get_db_session()
    try:
        print("\nDraining storage deletion queue...\n")

        result = drain_queue(db, page_size=args.page_size)

        print(f"Removed objects: {result.removed_count}")
        print(f"Queue rows cleared: {result.queue_rows_deleted}")
        if result.failed_namespaces:
            print(f"Failed namespaces: {', '.join(result.failed_namespaces)}")

        if result.errors:
            print("\nErrors:")
            for error in result.errors:
                print(f"  - {error}")

        if not result.success:
            sys.exit(1)
    finally:
        db.close()


def build_parser() -> argparse.ArgumentParser:
    from nabolag.constants import LifecycleDefaults

    parser = argparse.ArgumentParser(
        description="Nabolag post lifecycle CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check pending work
  python -m nabolag.cli.lifecycle status

  # Preview what would be pruned
  python -m nabolag.cli.lifecycle prune --dry-run --verbose

  # Prune, then drain whatever got queued
  python -m nabolag.cli.lifecycle prune && python -m nabolag.cli.lifecycle drain
        """,
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # status command
    status_parser = subparsers.add_parser("status", help="Show pending lifecycle work")
    status_parser.set_defaults(func=cmd_status)

    # prune command
    prune_parser = subparsers.add_parser("prune", help="Delete expired posts")
    prune_parser.add_argument("--dry-run", action="store_true", help="Preview only")
    prune_parser.add_argument("--verbose", "-v", action="store_true", help="List affected post IDs")
    prune_parser.add_argument(
        "--rows-limit", type=int, default=LifecycleDefaults.PRUNE_ROWS_LIMIT, help="Candidates per query"
    )
    prune_parser.add_argument(
        "--max-loops", type=int, default=LifecycleDefaults.PRUNE_MAX_LOOPS, help="Iteration cap"
    )
    prune_parser.set_defaults(func=cmd_prune)

    # drain command
    drain_parser = subparsers.add_parser("drain", help="Empty the storage deletion queue")
    drain_parser.add_argument(
        "--page-size", type=int, default=LifecycleDefaults.DRAIN_PAGE_SIZE, help="Queue rows per page"
    )
    drain_parser.set_defaults(func=cmd_drain)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)
    args.func(args)


if __name__ == "__main__":
    main()
