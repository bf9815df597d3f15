"""
AccessPolicy — decides whether a principal may read or write a profile's data.

A single capability check replaces per-handler role branching:

    authorize(principal, profile_id, required, link_permission) -> AccessDecision

Rules:
  1. role == admin                       → allowed, whatever the link says
  2. no link for (principal, profile)    → denied "no access to profile"
  3. link == read and edit is required   → denied "read-only access; edit required"
  4. otherwise                           → allowed (edit implies read)

The function is pure. Callers own the link lookup I/O (see access/dependencies.py).
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from finance_tracker.errors import ForbiddenError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Role(str, Enum):
    pending = "pending"
    approved = "approved"
    admin = "admin"
    rejected = "rejected"


class Permission(str, Enum):
    read = "read"
    edit = "edit"

    @property
    def rank(self) -> int:
        return _PERMISSION_RANK[self]

    def satisfies(self, required: "Permission") -> bool:
        """edit satisfies read; read satisfies only read."""
        return self.rank >= required.rank


_PERMISSION_RANK = {Permission.read: 1, Permission.edit: 2}


# ---------------------------------------------------------------------------
# Subject and decision
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Principal:
    """Authenticated caller. role falls back to pending when no account row exists yet."""

    id: str
    email: str
    role: Role = Role.pending
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin

    @property
    def is_approved(self) -> bool:
        return self.role in (Role.admin, Role.approved)


NO_ACCESS = "no access to profile"
READ_ONLY = "read-only access; edit required"
ADMIN_REQUIRED = "admin access required"
NOT_APPROVED = "account not approved"

_MESSAGES = {
    NO_ACCESS: (
        "You do not have permission to access this profile. "
        "Please contact an administrator if you believe this is an error."
    ),
    READ_ONLY: (
        "You have read-only access to this profile. Edit permission is required; "
        "please contact an administrator to request edit permissions."
    ),
    ADMIN_REQUIRED: "Forbidden: admin access required.",
    NOT_APPROVED: "Your account has not been approved by an administrator yet.",
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)

    @property
    def message(self) -> Optional[str]:
        """Human-readable explanation for a denial, suitable for a 403 body."""
        if self.allowed:
            return None
        return _MESSAGES.get(self.reason or "", self.reason)

    def enforce(self) -> None:
        """Raise ForbiddenError for a denial; no-op when allowed."""
        if not self.allowed:
            raise ForbiddenError(self.message or "Forbidden")


# ---------------------------------------------------------------------------
# Decision functions
# ---------------------------------------------------------------------------

def authorize(
    principal: Principal,
    profile_id: str,
    required: Permission,
    link_permission: Union[Permission, str, None],
) -> AccessDecision:
    """
    Decide access for principal to profile_id at the required level.

    link_permission is the permission of the (principal.id, profile_id) link row,
    or None when no row exists. It is ignored for admins.
    """
    if principal.is_admin:
        return AccessDecision.allow()
    if link_permission is None:
        return AccessDecision.deny(NO_ACCESS)
    if not Permission(link_permission).satisfies(required):
        return AccessDecision.deny(READ_ONLY)
    return AccessDecision.allow()


def require_admin(principal: Principal) -> AccessDecision:
    if principal.is_admin:
        return AccessDecision.allow()
    return AccessDecision.deny(ADMIN_REQUIRED)


def require_approved(principal: Principal) -> AccessDecision:
    """Account-level gate for operations that need no profile link (creating a profile)."""
    if principal.is_approved:
        return AccessDecision.allow()
    return AccessDecision.deny(NOT_APPROVED)


__all__ = [
    "Role",
    "Permission",
    "Principal",
    "AccessDecision",
    "authorize",
    "require_admin",
    "require_approved",
    "NO_ACCESS",
    "READ_ONLY",
    "ADMIN_REQUIRED",
    "NOT_APPROVED",
]
