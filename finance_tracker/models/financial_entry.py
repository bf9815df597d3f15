"""
models/financial_entry.py — SQLAlchemy ORM model for dated asset snapshots.

Table: financial_entries
One row per (profile_id, entry_date) — unique constraint, at most one entry per day.
The composite index on (profile_id, entry_date) serves both the exact-date lookup
and the "latest before date" ordered search.

All 18 monetary columns are NUMERIC(15, 2). Values are rounded half-up to 0.01
before they reach the ORM (see entries/money.py); totals are derived, not stored.
"""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from finance_tracker.database import Base

HIGH_MEDIUM_RISK_FIELDS: tuple[str, ...] = (
    "direct_equity",
    "esops",
    "equity_pms",
    "ulip",
    "real_estate",
    "real_estate_funds",
    "private_equity",
    "equity_mutual_funds",
    "structured_products_equity",
)

LOW_RISK_FIELDS: tuple[str, ...] = (
    "bank_balance",
    "debt_mutual_funds",
    "endowment_plans",
    "fixed_deposits",
    "nps",
    "epf",
    "ppf",
    "structured_products_debt",
    "gold_etfs_funds",
)

MONEY_FIELDS: tuple[str, ...] = HIGH_MEDIUM_RISK_FIELDS + LOW_RISK_FIELDS


def _money_column() -> Mapped[Decimal]:
    return mapped_column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))


class FinancialEntryORM(Base):
    """
    ORM model for one financial snapshot of a profile.

    created_by: user id of the editor who created the row.
    Identity (id, profile_id) never changes after insert; values change only via
    the edit-permission gated update route.
    """
    __tablename__ = "financial_entries"
    __table_args__ = (
        UniqueConstraint("profile_id", "entry_date", name="uq_financial_entries_profile_date"),
        Index("ix_financial_entries_profile_date", "profile_id", "entry_date"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    profile_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Calendar day of the snapshot — wire format YYYY-MM-DD",
    )

    # --- High / medium risk assets ---
    direct_equity: Mapped[Decimal] = _money_column()
    esops: Mapped[Decimal] = _money_column()
    equity_pms: Mapped[Decimal] = _money_column()
    ulip: Mapped[Decimal] = _money_column()
    real_estate: Mapped[Decimal] = _money_column()
    real_estate_funds: Mapped[Decimal] = _money_column()
    private_equity: Mapped[Decimal] = _money_column()
    equity_mutual_funds: Mapped[Decimal] = _money_column()
    structured_products_equity: Mapped[Decimal] = _money_column()

    # --- Low risk assets ---
    bank_balance: Mapped[Decimal] = _money_column()
    debt_mutual_funds: Mapped[Decimal] = _money_column()
    endowment_plans: Mapped[Decimal] = _money_column()
    fixed_deposits: Mapped[Decimal] = _money_column()
    nps: Mapped[Decimal] = _money_column()
    epf: Mapped[Decimal] = _money_column()
    ppf: Mapped[Decimal] = _money_column()
    structured_products_debt: Mapped[Decimal] = _money_column()
    gold_etfs_funds: Mapped[Decimal] = _money_column()

    created_by: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        comment="User id of the creator",
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
