"""
Admin HTTP routes: user approval and the profile picker used while approving.

Every route depends on get_admin, so non-admins get 403 before any data access.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.access.dependencies import get_admin
from finance_tracker.access.policy import Principal, Role
from finance_tracker.admin.schemas import ApproveRequest
from finance_tracker.database import get_db
from finance_tracker.errors import NotFoundError, ValidationError

router = APIRouter(prefix="/api/admin", tags=["admin"])
logger = logging.getLogger(__name__)


@router.get("/users/pending")
async def pending_users(
    admin: Principal = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    users = await store.list_pending_users(db)
    return JSONResponse(
        status_code=200,
        content={"users": [user.model_dump(mode="json") for user in users]},
    )


@router.get("/profiles")
async def all_profiles(
    admin: Principal = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    profiles = await store.list_profiles(db)
    return JSONResponse(
        status_code=200,
        content={
            "profiles": [
                profile.model_dump(mode="json", include={"id", "name", "created_at"})
                for profile in profiles
            ]
        },
    )


@router.post("/users/{user_id}/approve")
async def approve_user(
    user_id: str,
    body: ApproveRequest,
    admin: Principal = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Approve a user as 'approved' or 'admin' and grant the requested profile links.

    All profile ids are checked before anything is written, so an unknown
    profile leaves the user untouched.
    """
    if await store.get_user_account(db, user_id) is None:
        raise NotFoundError(f"User '{user_id}' not found")

    for index, grant in enumerate(body.profile_links):
        if await store.get_profile(db, grant.profile_id) is None:
            raise ValidationError.for_field(
                f"profileLinks.{index}.profileId",
                f"Profile '{grant.profile_id}' not found",
            )

    await store.set_user_role(db, user_id, Role(body.role), decided_by=admin.id)
    created = 0
    for grant in body.profile_links:
        if await store.add_link(db, user_id, grant.profile_id, grant.permission):
            created += 1

    logger.info(
        "User approved user_id=%s role=%s links_created=%d by=%s",
        user_id,
        body.role,
        created,
        admin.id,
    )
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "User approved successfully"},
    )


@router.post("/users/{user_id}/reject")
async def reject_user(
    user_id: str,
    admin: Principal = Depends(get_admin),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    await store.set_user_role(db, user_id, Role.rejected, decided_by=admin.id)
    return JSONResponse(
        status_code=200,
        content={"success": True, "message": "User rejected successfully"},
    )
