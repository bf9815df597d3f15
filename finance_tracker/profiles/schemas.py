"""
schemas.py — Pydantic v2 contracts for profiles.

Profile names are trimmed before storage and must be 1..PROFILE_NAME_MAX_LENGTH
characters after trimming.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from finance_tracker.access.policy import Permission
from finance_tracker.config import settings


class ProfileName(BaseModel):
    """Body of POST /api/profiles and PUT /api/profiles/{id}."""
    model_config = ConfigDict(extra="ignore")

    name: str

    @field_validator("name", mode="before")
    @classmethod
    def _trimmed_name(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Profile name is required")
        name = value.strip()
        if len(name) > settings.profile_name_max_length:
            raise ValueError(
                f"Profile name must be at most {settings.profile_name_max_length} characters"
            )
        return name


class Profile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime
    updated_at: datetime


class ProfileWithPermission(Profile):
    """A profile as seen by one user: admins see every profile with edit."""
    permission: Permission
