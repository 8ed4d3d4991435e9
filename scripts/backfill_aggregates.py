"""Backfill derived ID arrays (session_ids, snapshot_ids, character_ids) on every aggregate.

Usage:
    python -m scripts.backfill_aggregates
Requires FIREBASE_SERVICE_ACCOUNT_KEY or FIREBASE_SERVICE_ACCOUNT_PATH.
Safe to rerun: arrays are union-merged, never overwritten.
"""

import asyncio
import sys

from gearlog.core.config import get_settings
from gearlog.core.lifespan import create_services
from gearlog.shared.telemetry import setup_logging


async def main() -> None:
    """Scan all aggregates and union their derived ID arrays."""
    setup_logging()
    settings = get_settings()
    try:
        async with create_services(settings) as services:
            updated = await services.aggregates.update_all_aggregates()
    except ValueError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    print(f"Done. Aggregates updated: {updated}")


if __name__ == "__main__":
    asyncio.run(main())
