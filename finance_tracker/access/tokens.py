"""
Bearer token handling — HS256 JWTs signed with settings.secret_key.

Claims:
  sub    user id (matches user_profiles.id)
  email  user email
  name   optional display name
  exp    expiry (set by create_access_token)

Token issuance belongs to the identity provider in production; create_access_token
exists for local development, scripts and tests.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from finance_tracker.config import settings
from finance_tracker.errors import UnauthorizedError


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    name: Optional[str] = None


def create_access_token(
    user_id: str,
    email: str,
    name: Optional[str] = None,
    expires_in: Optional[timedelta] = None,
) -> str:
    expires_at = datetime.now(timezone.utc) + (
        expires_in or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": user_id, "email": email, "exp": expires_at}
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify signature and expiry and return the claims.

    Raises:
        UnauthorizedError: for any invalid, expired or incomplete token.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token has expired") from exc
    except jwt.PyJWTError as exc:
        raise UnauthorizedError("Invalid token") from exc

    sub = payload.get("sub")
    if not sub:
        raise UnauthorizedError("Invalid token")
    return TokenClaims(sub=str(sub), email=str(payload.get("email") or ""), name=payload.get("name"))


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an 'Authorization: Bearer <token>' header value."""
    if not authorization:
        raise UnauthorizedError("Missing authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthorizedError("Authorization header must use the Bearer scheme")
    return token.strip()
