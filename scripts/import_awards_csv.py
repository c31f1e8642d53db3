#!/usr/bin/env python3
"""
Import monthly awards from CSV through the API.
CSV format: player_id,category,month,year,month_name

Usage:
    python scripts/import_awards_csv.py <csv_file> [--url <api_url>]

Example:
    python scripts/import_awards_csv.py monthly-awards.csv --url http://localhost:8000
"""

import argparse
import asyncio
import csv
import os
import sys
from collections import defaultdict

import httpx

# API base URL
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


def read_awards(csv_path: str) -> list:
    """Parse award rows from CSV; ids, months and years become ints."""
    awards = []
    with open(csv_path, newline="", encoding="utf-8") as f:
        for line_number, row in enumerate(csv.DictReader(f), start=2):
            try:
                awards.append({
                    "player_id": int(row["player_id"]),
                    "category": row["category"].strip(),
                    "month": int(row["month"]),
                    "year": int(row["year"]),
                    "month_name": row["month_name"].strip(),
                })
            except (KeyError, ValueError) as e:
                raise ValueError(f"Line {line_number}: invalid award row ({e})")
    return awards


async def save_awards(client: httpx.AsyncClient, base_url: str, awards: list) -> list:
    response = await client.post(f"{base_url}/api/monthly-awards", json={"awards": awards})
    if response.status_code != 200:
        raise RuntimeError(f"Failed to save awards: {response.status_code} - {response.text}")
    return response.json()


async def main():
    """Main function to import awards from CSV."""
    parser = argparse.ArgumentParser(description="Import monthly awards from CSV")
    parser.add_argument("csv_file", help="Path to CSV file with award rows")
    parser.add_argument("--url", help="API base URL (default: http://localhost:8000 or API_BASE_URL env var)")
    args = parser.parse_args()

    base_url = (args.url or API_BASE_URL).rstrip("/")

    try:
        print("📥 Reading CSV file...")
        awards = read_awards(args.csv_file)
        print(f"   Found {len(awards)} awards to import\n")

        by_month = defaultdict(list)
        for award in awards:
            by_month[f"{award['month_name']} {award['year']}"].append(award)
        for month, month_awards in by_month.items():
            print(f"📅 {month}: {len(month_awards)} awards")

        if not awards:
            print("\nNothing to import")
            return

        print("\n💾 Saving awards...")
        async with httpx.AsyncClient(timeout=30.0) as client:
            saved = await save_awards(client, base_url, awards)
        print(f"✅ Imported {len(saved)} awards")
    except (OSError, ValueError, RuntimeError, httpx.HTTPError) as e:
        print(f"❌ Error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
