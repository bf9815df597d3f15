"""
Entry HTTP routes — profile-scoped reads/creates and id-addressed update/delete.

  GET    /api/profiles/{profile_id}/entries                     read
  POST   /api/profiles/{profile_id}/entries                     edit
  GET    /api/profiles/{profile_id}/entries/latest              read
  GET    /api/profiles/{profile_id}/entries/dates               read
  GET    /api/profiles/{profile_id}/entries/by-date?date=D      read  (exact step only)
  GET    /api/profiles/{profile_id}/entries/before-date?date=D  read  (fallback step only)
  GET    /api/profiles/{profile_id}/entries/resolve?date=D      read  (full resolution)
  PUT    /api/entries/{entry_id}                                edit on the entry's profile
  DELETE /api/entries/{entry_id}                                edit on the entry's profile

A missing row is 200 with null. Missing or insufficient authorization is 401/403.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.access.dependencies import check_profile_access, get_principal
from finance_tracker.access.policy import Permission, Principal
from finance_tracker.database import get_db
from finance_tracker.entries import resolver
from finance_tracker.entries.schemas import (
    EntryCreate,
    EntryUpdate,
    FinancialEntry,
    parse_wire_date,
)
from finance_tracker.errors import NotFoundError, ValidationError

router = APIRouter(prefix="/api", tags=["entries"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _date_param(value: Optional[str]) -> date:
    """Validate the ?date= query parameter (required, YYYY-MM-DD)."""
    if value is None or not value.strip():
        raise ValidationError.for_field("date", "Date parameter is required")
    try:
        return parse_wire_date(value)
    except ValueError as exc:
        raise ValidationError.for_field("date", str(exc)) from exc


def _entry_payload(entry: Optional[FinancialEntry]) -> Optional[dict]:
    return entry.model_dump(mode="json") if entry is not None else None


# ---------------------------------------------------------------------------
# Profile-scoped endpoints
# ---------------------------------------------------------------------------

@router.get("/profiles/{profile_id}/entries")
async def list_entries(
    profile_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.read)
    entries = await store.list_entries(db, profile_id)
    return JSONResponse(
        status_code=200,
        content={"entries": [entry.model_dump(mode="json") for entry in entries]},
    )


@router.post("/profiles/{profile_id}/entries")
async def create_entry(
    profile_id: str,
    body: EntryCreate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Create a snapshot. Requires edit.

    Returns:
        201: {"entry": {...}}
        400: entry_date missing/malformed or a negative value
        403: no link, or read-only link ("edit permission is required")
        409: the profile already has an entry on that date
    """
    await check_profile_access(db, principal, profile_id, Permission.edit)
    if await store.get_profile(db, profile_id) is None:
        raise NotFoundError(f"Profile '{profile_id}' not found")

    entry = await store.create_entry(
        db,
        profile_id=profile_id,
        entry_date=body.entry_date,
        values=body.money_values(),
        created_by=principal.id,
    )
    return JSONResponse(status_code=201, content={"entry": _entry_payload(entry)})


@router.get("/profiles/{profile_id}/entries/latest")
async def latest_entry(
    profile_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.read)
    entry = await store.get_latest_entry(db, profile_id)
    return JSONResponse(status_code=200, content={"entry": _entry_payload(entry)})


@router.get("/profiles/{profile_id}/entries/dates")
async def entry_dates(
    profile_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.read)
    dates = await resolver.list_entry_dates(db, profile_id)
    return JSONResponse(status_code=200, content={"dates": [d.isoformat() for d in dates]})


@router.get("/profiles/{profile_id}/entries/by-date")
async def entry_by_date(
    profile_id: str,
    date_value: Optional[str] = Query(default=None, alias="date"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Exact-date lookup only. {"entry": null} when nothing is stored on that day."""
    await check_profile_access(db, principal, profile_id, Permission.read)
    target = _date_param(date_value)
    entry = await resolver.find_exact(db, profile_id, target)
    return JSONResponse(status_code=200, content={"entry": _entry_payload(entry)})


@router.get("/profiles/{profile_id}/entries/before-date")
async def entry_before_date(
    profile_id: str,
    date_value: Optional[str] = Query(default=None, alias="date"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Most recent entry strictly before the date. {"entry": null} when none exists."""
    await check_profile_access(db, principal, profile_id, Permission.read)
    target = _date_param(date_value)
    entry = await resolver.find_before(db, profile_id, target)
    return JSONResponse(status_code=200, content={"entry": _entry_payload(entry)})


@router.get("/profiles/{profile_id}/entries/resolve")
async def resolve_entry(
    profile_id: str,
    date_value: Optional[str] = Query(default=None, alias="date"),
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.read)
    target = _date_param(date_value)
    resolution = await resolver.resolve(db, profile_id, target)
    return JSONResponse(status_code=200, content=resolution.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Entry-addressed endpoints
# ---------------------------------------------------------------------------

async def _load_entry_for_edit(
    db: AsyncSession, principal: Principal, entry_id: str
) -> FinancialEntry:
    entry = await store.get_entry(db, entry_id)
    if entry is None:
        raise NotFoundError(f"Entry '{entry_id}' not found")
    await check_profile_access(db, principal, entry.profile_id, Permission.edit)
    return entry


@router.put("/entries/{entry_id}")
async def update_entry(
    entry_id: str,
    body: EntryUpdate,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Partial update: only the supplied fields change."""
    await _load_entry_for_edit(db, principal, entry_id)
    entry = await store.update_entry(
        db,
        entry_id,
        values=body.money_values(),
        entry_date=body.entry_date,
    )
    return JSONResponse(status_code=200, content={"entry": _entry_payload(entry)})


@router.delete("/entries/{entry_id}")
async def delete_entry(
    entry_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await _load_entry_for_edit(db, principal, entry_id)
    await store.delete_entry(db, entry_id)
    return JSONResponse(status_code=200, content={"success": True})
