#!/usr/bin/env python3
"""
Backfill Embeddings Script

Generates embeddings for notes that were created without one (content
added before embeddings existed, or an auto-embedding that failed).
Same logic as POST /api/v1/embeddings/batch-generate.

Usage:
    Requires the database to be reachable and OPENAI_API_KEY set:
    $ python scripts/backfill_embeddings.py --user-id <uid>
    $ python scripts/backfill_embeddings.py --all-users --delay 0.5
"""

import argparse
import asyncio
import logging
import sys

from brainer.core.database import dispose_engine, get_session_factory
from brainer.core.logging import setup_logging
from brainer.repositories import user_repository
from brainer.services import lifecycle

logger = logging.getLogger("brainer.scripts.backfill")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Backfill missing note embeddings")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--user-id", action="append", dest="user_ids", help="User uid (repeatable)")
    target.add_argument("--all-users", action="store_true", help="Process every user")
    parser.add_argument(
        "--delay",
        type=float,
        default=None,
        help="Seconds between notes (default: EMBEDDING_BACKFILL_DELAY_SECONDS)",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Returns the number of notes that failed (process exit code is 1 if any)."""
    args = parse_args(argv)
    factory = get_session_factory()
    failed = 0

    try:
        async with factory() as session:
            if args.all_users:
                # users are paged in id order; walk every page
                user_ids: list[str] = []
                offset = 0
                while page := await user_repository.page(session, offset=offset, limit=100):
                    user_ids.extend(u.id for u in page)
                    offset += len(page)
            else:
                user_ids = args.user_ids

            for user_id in user_ids:
                report = await lifecycle.backfill_embeddings(session, user_id, delay=args.delay)
                logger.info(
                    "%s: processed=%d succeeded=%d failed=%d skipped=%d",
                    user_id,
                    report.processed,
                    report.succeeded,
                    report.failed,
                    report.skipped,
                )
                failed += report.failed
    finally:
        await dispose_engine()

    return failed


if __name__ == "__main__":
    setup_logging()
    sys.exit(1 if asyncio.run(main()) else 0)
