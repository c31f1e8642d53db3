"""Monthly award and monthly winner route handlers."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ladder.database.db import get_db_session
from ladder.models.records import AwardRow
from ladder.models.schemas import SaveAwardsRequest
from ladder.services import award_service, data_service
from ladder.services.award_job import run_award_snapshot_safely
from ladder.services.snapshot_cache import get_snapshot_cache, load_snapshot
from ladder.utils.datetime_utils import format_year_month, local_year_month, month_name, utcnow

logger = logging.getLogger(__name__)
router = APIRouter()

# month_bounds needs the following January and a UTC offset on either side
MIN_YEAR = 1900
MAX_YEAR = 9998


@router.get("/api/monthly-awards")
async def list_monthly_awards(session: AsyncSession = Depends(get_db_session)):
    """
    Stored awards, most recent month first.

    Saves last month's awards first when it is the first of the month and
    that has not happened yet.
    """
    try:
        saved = await run_award_snapshot_safely(session)
        if saved:
            get_snapshot_cache().invalidate()
        return await data_service.list_awards(session)
    except Exception as e:
        logger.error(f"Error loading monthly awards: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading monthly awards: {str(e)}")


@router.post("/api/monthly-awards")
async def save_monthly_awards(payload: SaveAwardsRequest, session: AsyncSession = Depends(get_db_session)):
    """Upsert award rows; an existing (player, category, month, year) row is replaced."""
    if not payload.awards:
        raise HTTPException(status_code=400, detail="awards list is required")
    try:
        rows = [AwardRow(**award.model_dump()) for award in payload.awards]
        saved = await data_service.upsert_awards(session, rows)
        get_snapshot_cache().invalidate()
        logger.info(f"Saved {len(saved)} award rows")
        return saved
    except data_service.PlayerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except data_service.AwardValidationError as e:
        logger.warning(f"Rejected awards: {str(e)}")
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error saving monthly awards: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error saving monthly awards: {str(e)}")


@router.get("/api/monthly-winners")
async def get_monthly_winners(
    year: Optional[int] = None,
    month: Optional[int] = None,
    limit: int = Query(5, ge=1),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Category rankings for one calendar month (defaults to the current one).

    Returns has_data false when nobody played that month.
    """
    if (year is None) != (month is None):
        raise HTTPException(status_code=400, detail="year and month must be given together")
    if year is None:
        year, month = local_year_month(utcnow())
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise HTTPException(status_code=400, detail=f"Year must be between {MIN_YEAR} and {MAX_YEAR}, got {year}")
    if not 1 <= month <= 12:
        raise HTTPException(status_code=400, detail=f"Month must be between 1 and 12, got {month}")

    try:
        snapshot = await load_snapshot(session)
        results = award_service.compute_monthly_winners(snapshot.players, snapshot.matches, year, month)
    except Exception as e:
        logger.error(f"Error calculating monthly winners: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error calculating monthly winners: {str(e)}")

    response = {
        "year": year,
        "month": month,
        "month_name": month_name(month),
        "period": format_year_month(year, month),
        "has_data": results is not None,
    }
    if results is None:
        return response

    response.update(results.to_dict(limit=limit))
    response["winners"] = {
        category: stats.to_dict() for category, stats in results.winners().items()
    }
    top = results.top_rivalry
    response["top_rivalry"] = top.to_dict() if top else None
    return response


@router.get("/api/monthly-winners/months")
async def list_months_with_matches(session: AsyncSession = Depends(get_db_session)):
    """Months that have at least one match, newest first."""
    try:
        snapshot = await load_snapshot(session)
        return [
            {
                "year": year,
                "month": month,
                "month_name": month_name(month),
                "label": f"{month_name(month)} {year}",
            }
            for year, month in award_service.available_months(snapshot.matches)
        ]
    except Exception as e:
        logger.error(f"Error listing months: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error listing months: {str(e)}")
