"""
models/profile_link.py — SQLAlchemy ORM model for user → profile access grants.

Table: user_profile_links
One row per (user_id, profile_id) pair (unique constraint).
Absence of a row means a non-admin user has no access to the profile at all.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finance_tracker.database import Base


class ProfileLinkORM(Base):
    """
    ORM model for a single access grant.

    permission: 'read' or 'edit' — edit implies read.
    Never escalated automatically; only an admin approval or profile creation writes rows.
    """
    __tablename__ = "user_profile_links"
    __table_args__ = (
        UniqueConstraint("user_id", "profile_id", name="uq_user_profile_links_user_profile"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("user_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    permission: Mapped[str] = mapped_column(
        String(4),
        nullable=False,
        comment="'read' or 'edit' — mirrors Permission enum",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
