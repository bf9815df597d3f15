"""
Profile HTTP routes.

  GET    /api/profiles        profiles visible to the caller
  POST   /api/profiles        approved/admin only; creator gets an edit link
  GET    /api/profiles/{id}   read
  PUT    /api/profiles/{id}   edit (rename)
  DELETE /api/profiles/{id}   edit; removes the profile's entries and links
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.access.dependencies import check_profile_access, get_principal
from finance_tracker.access.policy import Permission, Principal, require_approved
from finance_tracker.database import get_db
from finance_tracker.errors import NotFoundError
from finance_tracker.profiles.schemas import ProfileName, ProfileWithPermission

router = APIRouter(prefix="/api/profiles", tags=["profiles"])
logger = logging.getLogger(__name__)


@router.get("")
async def list_profiles(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """Admins see every profile (with edit); everyone else sees their linked profiles."""
    if principal.is_admin:
        profiles = [
            ProfileWithPermission(**profile.model_dump(), permission=Permission.edit)
            for profile in await store.list_profiles(db)
        ]
    else:
        profiles = await store.list_linked_profiles(db, principal.id)
    return JSONResponse(
        status_code=200,
        content={"profiles": [p.model_dump(mode="json") for p in profiles]},
    )


@router.post("")
async def create_profile(
    body: ProfileName,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    require_approved(principal).enforce()
    profile = await store.create_profile(db, name=body.name, owner_id=principal.id)
    return JSONResponse(status_code=201, content={"profile": profile.model_dump(mode="json")})


@router.get("/{profile_id}")
async def get_profile(
    profile_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.read)
    profile = await store.get_profile(db, profile_id)
    if profile is None:
        raise NotFoundError(f"Profile '{profile_id}' not found")
    return JSONResponse(status_code=200, content={"profile": profile.model_dump(mode="json")})


@router.put("/{profile_id}")
async def rename_profile(
    profile_id: str,
    body: ProfileName,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.edit)
    profile = await store.rename_profile(db, profile_id, body.name)
    return JSONResponse(status_code=200, content={"profile": profile.model_dump(mode="json")})


@router.delete("/{profile_id}")
async def delete_profile(
    profile_id: str,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await check_profile_access(db, principal, profile_id, Permission.edit)
    await store.delete_profile(db, profile_id)
    return JSONResponse(status_code=200, content={"success": True})
