#!/usr/bin/env python3
"""
One-shot safety check for a worker.

Fetches both upstream views once, then prints the derived status, stats
and geo-fence membership.

Usage:
    python scripts/check_subject.py <subject_id>
    python scripts/check_subject.py <subject_id> --watch 30
"""

import argparse
import asyncio
import os
import sys

# Add parent directory to path so we can import app modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.config import get_settings
from app.exceptions import TransportError
from app.services.safety_client import SafetyApiClient
from app.services.safety_monitor import fetch_family_view, fetch_map_view
from app.utils.logging import configure_logging
from app.utils.timezone import format_local_time

settings = get_settings()


def print_views(family, location_map) -> None:
    """Print both views in a readable form."""
    print(f"\n{'='*60}")
    print(f"SUBJECT: {family.subject_id}")
    print(f"{'='*60}")

    status = family.status
    print(f"  Family status:   {status.level.value.upper()} ({family.rule.value})")
    print(f"  Message:         {status.message}")
    if status.hours_since_check_in is not None:
        print(f"  Last check-in:   {status.hours_since_check_in:.1f} hours ago")
    if family.location:
        loc = family.location
        print(f"  Location:        {loc.latitude:.5f}, {loc.longitude:.5f} "
              f"({format_local_time(loc.timestamp, settings.display_timezone)})")
        if loc.address:
            print(f"                   {loc.address}, {loc.city or ''}")

    print()
    print(f"  Map status:      {location_map.status.level.value.upper()} ({location_map.rule.value})")
    fence = location_map.geofence
    if fence:
        where = "inside" if fence.is_inside else "OUTSIDE"
        print(f"  Geo-fence:       {where}, {fence.active_fence_count} active fences")
        if fence.nearest_fence:
            print(f"  Nearest fence:   {fence.nearest_fence.name} ({round(fence.nearest_fence.distance_m)}m)")

    stats = location_map.stats
    avg = f"{round(stats.avg_accuracy)}m" if stats.avg_accuracy is not None else "N/A"
    print(f"  Updates ({stats.period}): {stats.total_updates}, avg accuracy {avg}, "
          f"violations {stats.active_violations}")
    if stats.skipped_records:
        print(f"  Skipped records: {stats.skipped_records}")


async def check(subject_id: str, client: SafetyApiClient) -> bool:
    try:
        family = await fetch_family_view(client, subject_id)
        location_map = await fetch_map_view(client, subject_id)
    except TransportError as e:
        print(f"ERROR: {e}")
        return False
    print_views(family, location_map)
    return True


async def main() -> int:
    parser = argparse.ArgumentParser(description="Check a worker's safety status")
    parser.add_argument("subject_id", help="Worker id on the upstream platform")
    parser.add_argument("--watch", type=float, metavar="SECONDS", help="Repeat every N seconds")
    args = parser.parse_args()

    configure_logging("WARNING")

    async with SafetyApiClient() as client:
        if not args.watch:
            return 0 if await check(args.subject_id, client) else 1
        while True:
            await check(args.subject_id, client)
            await asyncio.sleep(args.watch)


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        pass
