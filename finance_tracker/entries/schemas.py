"""
schemas.py — Pydantic v2 contracts for financial entries.

Defines:
  - HighMediumRiskAssets, LowRiskAssets   (request groups, every field defaults to 0)
  - EntryCreate, EntryUpdate               (POST / PUT bodies)
  - FinancialEntry                         (response shape, flat like the table row + totals)
  - DateResolution                         (output of the date resolver)

Wire conventions:
  - entry_date is "YYYY-MM-DD" and nothing else (no timestamps, no day-first)
  - monetary values are JSON numbers; they are rounded half up to 0.01 on input
    and serialized back as numbers, never strings
"""
from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    computed_field,
    field_validator,
)

from finance_tracker.entries.money import ZERO, round_money, sum_money
from finance_tracker.models.financial_entry import (
    HIGH_MEDIUM_RISK_FIELDS,
    LOW_RISK_FIELDS,
    MONEY_FIELDS,
)

_WIRE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Decimal internally, JSON number on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


def parse_wire_date(value: Any) -> date:
    """
    Parse a YYYY-MM-DD wire date.

    Raises:
        ValueError: if value is not a string in that exact format or is not a real day.
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not _WIRE_DATE.match(value.strip()):
        raise ValueError("date must be in YYYY-MM-DD format")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValueError(f"'{value}' is not a valid calendar date") from exc


# ---------------------------------------------------------------------------
# Request groups
# ---------------------------------------------------------------------------

class _MoneyGroup(BaseModel):
    """Absent or null fields become 0; values are rounded to the cent."""
    model_config = ConfigDict(extra="forbid")

    @field_validator("*", mode="before")
    @classmethod
    def _round(cls, value: Any) -> Decimal:
        return round_money(value)


class HighMediumRiskAssets(_MoneyGroup):
    direct_equity: Decimal = ZERO
    esops: Decimal = ZERO
    equity_pms: Decimal = ZERO
    ulip: Decimal = ZERO
    real_estate: Decimal = ZERO
    real_estate_funds: Decimal = ZERO
    private_equity: Decimal = ZERO
    equity_mutual_funds: Decimal = ZERO
    structured_products_equity: Decimal = ZERO


class LowRiskAssets(_MoneyGroup):
    bank_balance: Decimal = ZERO
    debt_mutual_funds: Decimal = ZERO
    endowment_plans: Decimal = ZERO
    fixed_deposits: Decimal = ZERO
    nps: Decimal = ZERO
    epf: Decimal = ZERO
    ppf: Decimal = ZERO
    structured_products_debt: Decimal = ZERO
    gold_etfs_funds: Decimal = ZERO


class EntryCreate(BaseModel):
    """
    POST /api/profiles/{id}/entries body.

    entry_date is the only required field. Missing groups, missing fields and
    null values all store 0.
    """
    model_config = ConfigDict(extra="forbid")

    entry_date: date
    high_medium_risk: HighMediumRiskAssets = Field(default_factory=HighMediumRiskAssets)
    low_risk: LowRiskAssets = Field(default_factory=LowRiskAssets)

    @field_validator("entry_date", mode="before")
    @classmethod
    def _wire_date(cls, value: Any) -> date:
        return parse_wire_date(value)

    @field_validator("high_medium_risk", "low_risk", mode="before")
    @classmethod
    def _null_group(cls, value: Any) -> Any:
        return {} if value is None else value

    def money_values(self) -> dict[str, Decimal]:
        return {**self.high_medium_risk.model_dump(), **self.low_risk.model_dump()}


class EntryUpdate(BaseModel):
    """
    PUT /api/entries/{entry_id} body — partial update.

    Only fields present in the body change. An explicit null stores 0.
    """
    model_config = ConfigDict(extra="forbid")

    entry_date: Optional[date] = None
    high_medium_risk: Optional[dict[str, Any]] = None
    low_risk: Optional[dict[str, Any]] = None

    @field_validator("entry_date", mode="before")
    @classmethod
    def _wire_date(cls, value: Any) -> Optional[date]:
        return None if value is None else parse_wire_date(value)

    @field_validator("high_medium_risk")
    @classmethod
    def _high_medium_fields(cls, value: Optional[dict[str, Any]]) -> Optional[dict[str, Decimal]]:
        return _round_partial(value, HIGH_MEDIUM_RISK_FIELDS)

    @field_validator("low_risk")
    @classmethod
    def _low_fields(cls, value: Optional[dict[str, Any]]) -> Optional[dict[str, Decimal]]:
        return _round_partial(value, LOW_RISK_FIELDS)

    def money_values(self) -> dict[str, Decimal]:
        return {**(self.high_medium_risk or {}), **(self.low_risk or {})}


def _round_partial(
    value: Optional[dict[str, Any]], allowed: tuple[str, ...]
) -> Optional[dict[str, Decimal]]:
    if value is None:
        return None
    unknown = sorted(set(value) - set(allowed))
    if unknown:
        raise ValueError(f"unknown fields: {', '.join(unknown)}")
    rounded: dict[str, Decimal] = {}
    for name, raw in value.items():
        try:
            rounded[name] = round_money(raw)
        except ValueError as exc:
            raise ValueError(f"{name} {exc}") from exc
    return rounded


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class FinancialEntry(BaseModel):
    """One stored snapshot, serialized flat (one key per column) plus derived totals."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    profile_id: str
    entry_date: date

    direct_equity: Money = ZERO
    esops: Money = ZERO
    equity_pms: Money = ZERO
    ulip: Money = ZERO
    real_estate: Money = ZERO
    real_estate_funds: Money = ZERO
    private_equity: Money = ZERO
    equity_mutual_funds: Money = ZERO
    structured_products_equity: Money = ZERO

    bank_balance: Money = ZERO
    debt_mutual_funds: Money = ZERO
    endowment_plans: Money = ZERO
    fixed_deposits: Money = ZERO
    nps: Money = ZERO
    epf: Money = ZERO
    ppf: Money = ZERO
    structured_products_debt: Money = ZERO
    gold_etfs_funds: Money = ZERO

    created_by: str
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_high_medium_risk(self) -> Money:
        return sum_money(getattr(self, name) for name in HIGH_MEDIUM_RISK_FIELDS)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_low_risk(self) -> Money:
        return sum_money(getattr(self, name) for name in LOW_RISK_FIELDS)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_assets(self) -> Money:
        return sum_money(getattr(self, name) for name in MONEY_FIELDS)

    def money_values(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in MONEY_FIELDS}


class DateResolution(BaseModel):
    """
    Effective entry for a requested date.

    exact_entry     entry stored on exactly the requested date
    fallback_entry  most recent entry strictly before it (only when no exact match)
    fallback_date   fallback_entry.entry_date
    All three null means "no prior data; start blank".
    """
    exact_entry: Optional[FinancialEntry] = None
    fallback_entry: Optional[FinancialEntry] = None
    fallback_date: Optional[date] = None

    @property
    def effective_entry(self) -> Optional[FinancialEntry]:
        return self.exact_entry or self.fallback_entry


__all__ = [
    "Money",
    "parse_wire_date",
    "HighMediumRiskAssets",
    "LowRiskAssets",
    "EntryCreate",
    "EntryUpdate",
    "FinancialEntry",
    "DateResolution",
]
