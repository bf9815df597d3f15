"""
Auth HTTP routes. Token issuance belongs to the identity provider; these routes
only mirror the verified identity into a local account row.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.access.dependencies import get_principal, get_token_claims
from finance_tracker.access.policy import Principal
from finance_tracker.access.tokens import TokenClaims
from finance_tracker.auth.schemas import UserAccount
from finance_tracker.database import get_db

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/create-profile")
async def create_account(
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Create the caller's account row if it does not exist yet.

    Idempotent: a second call returns the existing row unchanged.
    """
    account = await store.get_user_account(db, claims.sub)
    if account is None:
        account = await store.create_user_account(
            db, user_id=claims.sub, email=claims.email, name=claims.name
        )
    return JSONResponse(status_code=200, content={"user": account.model_dump(mode="json")})


@router.get("/me")
async def me(
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    account = await store.get_user_account(db, principal.id)
    if account is None:
        account = UserAccount(
            id=principal.id,
            email=principal.email,
            name=principal.name,
            role=principal.role,
        )
    return JSONResponse(status_code=200, content={"user": account.model_dump(mode="json")})
