"""Merge one snapshot into another and repoint aggregate links.

Usage:
    python -m scripts.merge_snapshots <target_snapshot_id> <source_snapshot_id>
The source keeps its history and gets merged_into set; rerunning is a no-op.
"""

import asyncio
import sys

from gearlog.core.config import get_settings
from gearlog.core.lifespan import create_services
from gearlog.domain.exceptions import GearlogException
from gearlog.shared.telemetry import setup_logging


async def main() -> None:
    if len(sys.argv) != 3:
        print(__doc__, file=sys.stderr)
        sys.exit(2)
    target_id, source_id = sys.argv[1], sys.argv[2]
    setup_logging()
    try:
        async with create_services(get_settings()) as services:
            target = await services.snapshots.merge(target_id, source_id)
    except GearlogException as e:
        print(f"{e.error_code}: {e.message}", file=sys.stderr)
        sys.exit(1)
    print(f"Merged {source_id} into {target.id} ({target.name})")


if __name__ == "__main__":
    asyncio.run(main())
