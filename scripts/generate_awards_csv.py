#!/usr/bin/env python3
"""
Export computed monthly awards to CSV.

Columns: player_id,category,month,year,month_name. The file can be loaded
back with import_awards_csv.py.

Usage:
    python scripts/generate_awards_csv.py 2025-07 2025-08 --output awards.csv
"""

import argparse
import asyncio
import csv
import os
import sys

# Add apps to path (so ladder.* imports work)
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
apps_path = os.path.join(project_root, "apps")
sys.path.insert(0, apps_path)

from ladder.database.db import AsyncSessionLocal
from ladder.services import award_service, data_service
from ladder.utils.datetime_utils import parse_year_month

CSV_COLUMNS = ["player_id", "category", "month", "year", "month_name"]


async def generate_rows(months):
    async with AsyncSessionLocal() as session:
        players = await data_service.load_player_records(session)
        matches = await data_service.load_match_records(session)

    rows = []
    for year, month in months:
        results = award_service.compute_monthly_winners(players, matches, year, month)
        month_rows = award_service.build_award_rows(results, year, month)
        print(f"📅 {year:04d}-{month:02d}: {len(month_rows)} awards")
        rows.extend(month_rows)
    return rows


def write_csv(rows, path: str) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for row in rows:
            writer.writerow(row.to_dict())


async def main():
    parser = argparse.ArgumentParser(description="Export computed monthly awards to CSV")
    parser.add_argument("months", nargs="+", help="Months to export as YYYY-MM")
    parser.add_argument("--output", "-o", default="monthly-awards.csv", help="CSV file to write")
    args = parser.parse_args()

    try:
        months = [parse_year_month(m) for m in args.months]
    except ValueError as e:
        parser.error(str(e))

    rows = await generate_rows(months)
    write_csv(rows, args.output)
    print(f"\n✅ Wrote {len(rows)} awards to {args.output}")


if __name__ == "__main__":
    asyncio.run(main())
