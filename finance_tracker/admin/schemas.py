"""
schemas.py — request bodies for the admin approval routes.

The approval body keeps the camelCase keys the admin panel sends:
    {"role": "approved", "profileLinks": [{"profileId": "...", "permission": "read"}]}
"""
from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.access.policy import Permission


class ProfileLinkGrant(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    profile_id: str = Field(alias="profileId")
    permission: Permission


class ApproveRequest(BaseModel):
    """
    role: only 'admin' or 'approved' may be granted through approval.
    profile_links: may be empty — the approved user then starts without profile
    access and creates their own profile.
    """
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    role: Literal["admin", "approved"]
    profile_links: List[ProfileLinkGrant] = Field(default_factory=list, alias="profileLinks")
