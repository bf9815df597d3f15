"""
DateResolver — which stored entry is the "effective" entry for a requested date.

    resolve(db, profile_id, target) -> DateResolution

Three ordered steps, short-circuiting on success:
  1. exact:    entry with entry_date == target            → exact_entry
  2. fallback: entry with max(entry_date) < target        → fallback_entry, fallback_date
  3. none:     both absent                                → all null ("start blank")

entry_date is unique per profile, so no tie-break is ever needed. The fallback
search only ever looks backwards (most recent first).

find_exact and find_before are the individual steps behind the by-date and
before-date endpoints; the entry form client sequences them itself. resolve()
runs the whole algorithm server-side in one call.

Read-only: nothing here writes entries.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.entries.schemas import DateResolution, FinancialEntry

logger = logging.getLogger(__name__)


async def find_exact(db: AsyncSession, profile_id: str, target: date) -> Optional[FinancialEntry]:
    """Step 1 — the entry stored on exactly `target`."""
    return await store.get_entry_by_date(db, profile_id, target)


async def find_before(db: AsyncSession, profile_id: str, target: date) -> Optional[FinancialEntry]:
    """Step 2 — the nearest entry strictly before `target`."""
    return await store.get_entry_before_date(db, profile_id, target)


async def resolve(db: AsyncSession, profile_id: str, target: date) -> DateResolution:
    exact = await find_exact(db, profile_id, target)
    if exact is not None:
        logger.debug("Resolved exact profile_id=%s date=%s", profile_id, target.isoformat())
        return DateResolution(exact_entry=exact)

    fallback = await find_before(db, profile_id, target)
    if fallback is not None:
        logger.debug(
            "Resolved fallback profile_id=%s date=%s fallback_date=%s",
            profile_id,
            target.isoformat(),
            fallback.entry_date.isoformat(),
        )
        return DateResolution(fallback_entry=fallback, fallback_date=fallback.entry_date)

    logger.debug("Resolved none profile_id=%s date=%s", profile_id, target.isoformat())
    return DateResolution()


async def list_entry_dates(db: AsyncSession, profile_id: str) -> list[date]:
    """Flat set of dates that have an entry (calendar highlights), most recent first."""
    return await store.list_entry_dates(db, profile_id)
