#!/usr/bin/env python3
"""
Backfill monthly awards for past months.

Recomputes the category winners of each given month from the full match
history and upserts the award rows. Existing rows for the same
(player, category, month, year) are replaced.

Usage:
    python scripts/backfill_awards.py 2025-07 2025-08 [--dry-run]
"""

import argparse
import asyncio
import os
import sys

# Add apps to path (so ladder.* imports work)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
apps_path = os.path.join(project_root, "apps")
sys.path.insert(0, apps_path)

from ladder.database.db import AsyncSessionLocal
from ladder.services import award_service, data_service
from ladder.utils.datetime_utils import parse_year_month


async def backfill(months, dry_run: bool = False) -> int:
    """Save awards for each (year, month); returns the number of rows written."""
    written = 0
    async with AsyncSessionLocal() as session:
        players = await data_service.load_player_records(session)
        matches = await data_service.load_match_records(session)
        names = {p.id: p.name for p in players}
        print(f"✓ Loaded {len(players)} players and {len(matches)} matches\n")

        for year, month in months:
            results = award_service.compute_monthly_winners(players, matches, year, month)
            rows = award_service.build_award_rows(results, year, month)
            label = f"{year:04d}-{month:02d}"

            if not rows:
                print(f"⏭️  {label}: no matches, nothing to save")
                continue

            print(f"📅 {label}: {results.match_count} matches, {len(rows)} awards")
            for row in rows:
                print(f"   🏆 {row.category:<16} {names.get(row.player_id, row.player_id)}")

            if dry_run:
                continue
            try:
                await data_service.upsert_awards(session, rows)
                written += len(rows)
                print("   ✓ Saved")
            except Exception as e:
                await session.rollback()
                print(f"   ❌ Error saving {label}: {str(e)}")

    return written


async def main():
    parser = argparse.ArgumentParser(description="Backfill monthly awards for past months")
    parser.add_argument("months", nargs="+", help="Months to backfill as YYYY-MM")
    parser.add_argument("--dry-run", action="store_true", help="Show the winners without saving")
    args = parser.parse_args()

    try:
        months = [parse_year_month(m) for m in args.months]
    except ValueError as e:
        parser.error(str(e))

    print("=" * 60)
    print("🏓 Backfilling monthly awards" + (" (dry run)" if args.dry_run else ""))
    print("=" * 60)
    written = await backfill(months, dry_run=args.dry_run)
    print(f"\n✅ Done: {written} award rows written")


if __name__ == "__main__":
    asyncio.run(main())
