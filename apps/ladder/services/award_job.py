"""
Automatic monthly award snapshot.

On the first day of a month the previous month's winners are written to
monthly_awards. A marker in the settings table ("YYYY-MM" of the month the
save happened in) keeps the save to once per month.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from ladder.services import award_service, data_service
from ladder.utils.constants import AWARDS_MARKER_KEY
from ladder.utils.datetime_utils import (
    as_utc,
    format_year_month,
    get_app_timezone,
    previous_month,
    utcnow,
)

logger = logging.getLogger(__name__)


def should_save_awards(now: datetime, marker: Optional[str], tz=None) -> Optional[Tuple[int, int]]:
    """
    Decide whether the previous month's awards are due.

    Args:
        now: Current time (aware, or naive UTC)
        marker: Stored "YYYY-MM" of the last save, or None
        tz: Timezone that defines the calendar day (defaults to APP_TIMEZONE)

    Returns:
        (year, month) to save, or None when nothing is due
    """
    tz = tz or get_app_timezone()
    local_now = as_utc(now).astimezone(tz)
    if local_now.day != 1:
        return None
    if marker == format_year_month(local_now.year, local_now.month):
        return None
    return previous_month(local_now.year, local_now.month)


async def run_award_snapshot(session: AsyncSession, now: Optional[datetime] = None, tz=None) -> List[Dict]:
    """
    Save the previous month's award rows when due.

    Award rows and the marker are written in one transaction: if the save
    fails nothing is marked and the next call retries.

    Returns:
        The stored award rows; empty when nothing was due or the month had
        no matches
    """
    now = now or utcnow()
    tz = tz or get_app_timezone()
    marker = await data_service.get_setting(session, AWARDS_MARKER_KEY)
    due = should_save_awards(now, marker, tz)
    if due is None:
        return []

    year, month = due
    players = await data_service.load_player_records(session)
    matches = await data_service.load_match_records(session)
    results = award_service.compute_monthly_winners(players, matches, year, month, tz)
    rows = award_service.build_award_rows(results, year, month)

    saved = await data_service.upsert_awards(session, rows, commit=False)
    local_now = as_utc(now).astimezone(tz)
    await data_service.set_setting(
        session, AWARDS_MARKER_KEY, format_year_month(local_now.year, local_now.month), commit=False
    )
    await session.commit()

    if rows:
        logger.info(f"Saved {len(saved)} award rows for {format_year_month(year, month)}")
    else:
        logger.info(f"No matches in {format_year_month(year, month)}, no awards to save")
    return saved


async def run_award_snapshot_safely(session: AsyncSession, now: Optional[datetime] = None, tz=None) -> List[Dict]:
    """run_award_snapshot for request and startup paths: failures are logged, not raised."""
    try:
        return await run_award_snapshot(session, now, tz)
    except Exception as e:
        logger.error(f"Error saving monthly awards: {e}", exc_info=True)
        await session.rollback()
        return []
