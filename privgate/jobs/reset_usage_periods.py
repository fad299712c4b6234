"""Roll expired privilege usage periods.

Run from a scheduler once the database is reachable. Entries of ineligible
subscriptions are left alone until the subscription becomes eligible again.

Usage:
    python -m privgate.jobs.reset_usage_periods [--batch-size N]
"""

import argparse
import asyncio
from typing import Optional

from privgate.core.config import settings
from privgate.core.container import create_container
from privgate.core.context import system_context
from privgate.db.session import get_db_context


async def run(batch_size: Optional[int] = None) -> int:
    """Run one sweep. Returns how many ledger entries were rolled."""
    ctx = system_context()
    reset_service = create_container(settings).usage_period_reset_service

    ctx.logger.info("Starting usage period sweep")
    async with get_db_context() as db:
        rolled = await reset_service.reset_expired_periods(db, batch_size=batch_size)
    ctx.logger.info(f"Usage period sweep finished: {rolled} entries rolled")
    return rolled


def main(argv: Optional[list[str]] = None) -> int:
    """Parse arguments and run the sweep."""
    parser = argparse.ArgumentParser(description="Roll expired privilege usage periods.")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Ledger entries rolled per transaction (default: USAGE_PERIOD_RESET_BATCH_SIZE)",
    )
    args = parser.parse_args(argv)
    if args.batch_size is not None and args.batch_size <= 0:
        parser.error("--batch-size must be positive")
    return asyncio.run(run(args.batch_size))


if __name__ == "__main__":
    main()
