"""
FastAPI dependencies for authentication and authorization.

Order per request:
  1. parse and verify the bearer token          → 401 before any data access
  2. load the caller's account row (role)        → pending when no row exists yet
  3. load the link row and run AccessPolicy      → 403 with an explanatory message

Steps 2 and 3 are separate round-trips without a spanning lock; a link revoked
between the check and the data query is an accepted window.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker import store
from finance_tracker.access.policy import (
    Permission,
    Principal,
    Role,
    authorize,
    require_admin,
)
from finance_tracker.access.tokens import TokenClaims, decode_access_token, parse_bearer
from finance_tracker.database import get_db

logger = logging.getLogger(__name__)


async def get_token_claims(
    authorization: Optional[str] = Header(default=None),
) -> TokenClaims:
    return decode_access_token(parse_bearer(authorization))


async def get_principal(
    claims: TokenClaims = Depends(get_token_claims),
    db: AsyncSession = Depends(get_db),
) -> Principal:
    account = await store.get_user_account(db, claims.sub)
    if account is None:
        return Principal(id=claims.sub, email=claims.email, name=claims.name)
    return Principal(id=account.id, email=account.email, role=account.role, name=account.name)


async def get_admin(principal: Principal = Depends(get_principal)) -> Principal:
    decision = require_admin(principal)
    if not decision.allowed:
        logger.info("Admin access denied user_id=%s", principal.id)
    decision.enforce()
    return principal


async def check_profile_access(
    db: AsyncSession,
    principal: Principal,
    profile_id: str,
    required: Permission,
) -> None:
    """
    Raise ForbiddenError unless principal may access profile_id at `required`.

    Admins skip the link lookup entirely.
    """
    link_permission = None
    if principal.role is not Role.admin:
        link_permission = await store.get_link_permission(db, principal.id, profile_id)
    decision = authorize(principal, profile_id, required, link_permission)
    if not decision.allowed:
        logger.info(
            "Profile access denied user_id=%s profile_id=%s required=%s reason=%s",
            principal.id,
            profile_id,
            required.value,
            decision.reason,
        )
    decision.enforce()
