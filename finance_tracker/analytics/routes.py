"""
Analytics HTTP routes.

  GET /api/analytics/combined?period=P&profileIds=a,b

period is one of 30days, 3months, 1year, 3years, 5years, 10years (default 1year,
also when empty); anything else is 400. The portfolio covers the caller's
accessible profiles (linked ones; every profile for admins), optionally
narrowed by profileIds. Ids the caller cannot access are ignored.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.access.dependencies import get_principal
from finance_tracker.access.policy import Principal
from finance_tracker.analytics.portfolio import combined_portfolio
from finance_tracker.analytics.schemas import DEFAULT_PERIOD, CombinedPortfolio, TimePeriod
from finance_tracker.database import get_db
from finance_tracker.errors import ValidationError

router = APIRouter(prefix="/api/analytics", tags=["analytics"])
logger = logging.getLogger(__name__)


def today() -> date:
    """Reference date for period windows (UTC)."""
    return datetime.now(timezone.utc).date()


def _period_param(value: Optional[str]) -> TimePeriod:
    if value is None or value == "":
        return DEFAULT_PERIOD
    try:
        return TimePeriod(value)
    except ValueError as exc:
        raise ValidationError.for_field("period", "Invalid time period") from exc


async def _accessible_profile_ids(db: AsyncSession, principal: Principal) -> list[str]:
    if principal.is_admin:
        return [profile.id for profile in await store.list_profiles(db)]
    return [profile.id for profile in await store.list_linked_profiles(db, principal.id)]


@router.get("/combined")
async def combined(
    period: Optional[str] = Query(default=None),
    profile_ids: Optional[str] = Query(default=None, alias="profileIds"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    reference_date: date = Depends(today),
) -> JSONResponse:
    selected_period = _period_param(period)
    accessible = await _accessible_profile_ids(db, principal)
    if not accessible:
        result = CombinedPortfolio(
            period=selected_period, message="No profiles linked to your account"
        )
        return JSONResponse(status_code=200, content=result.model_dump(mode="json"))

    if profile_ids:
        requested = [pid.strip() for pid in profile_ids.split(",") if pid.strip()]
        allowed = set(accessible)
        selected = [pid for pid in requested if pid in allowed]
    else:
        selected = accessible

    entries = await store.list_entries_for_profiles(db, selected)
    result = combined_portfolio(entries, selected_period, reference_date)
    logger.info(
        "Combined analytics user_id=%s period=%s profiles=%d",
        principal.id,
        selected_period.value,
        result.profile_count,
    )
    return JSONResponse(status_code=200, content=result.model_dump(mode="json"))
