"""
models/profile.py — SQLAlchemy ORM model for financial profiles.

Table: profiles
A profile is a named container of financial entries (e.g. "Personal", "Family").
Entries and user links reference it with ON DELETE CASCADE.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from finance_tracker.database import Base


class ProfileORM(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="UUID primary key",
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        comment="Display name, stored trimmed",
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
