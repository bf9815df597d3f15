"""
models/user_profile.py — SQLAlchemy ORM model for application users (principals).

Table: user_profiles
One row per identity-provider user. The row id IS the token subject.
role is the single source of truth for admin bypass.
"""
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from finance_tracker.database import Base


class UserProfileORM(Base):
    """
    ORM model for a user's account state.

    role: 'pending' until an admin approves ('approved' / 'admin') or rejects.
    approved_by: id of the admin that approved or rejected this user.
    """
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Identity provider user id — matches the bearer token 'sub' claim",
    )
    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
    )
    name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        default="pending",
        index=True,
        comment="'pending', 'approved', 'admin' or 'rejected' — mirrors Role enum",
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    approved_by: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
