"""
schemas.py — Pydantic v2 contracts for the combined portfolio view.

Defines:
  - TimePeriod          (accepted values of ?period=, case-sensitive)
  - ChartPoint          (per-date sums across the selected profiles)
  - RiskSlice           (one share of the risk distribution)
  - CombinedPortfolio   (GET /api/analytics/combined response)
"""
from __future__ import annotations

import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from finance_tracker.entries.money import ZERO
from finance_tracker.entries.schemas import Money


class TimePeriod(str, Enum):
    days_30 = "30days"
    months_3 = "3months"
    year_1 = "1year"
    years_3 = "3years"
    years_5 = "5years"
    years_10 = "10years"


DEFAULT_PERIOD = TimePeriod.year_1


class ChartPoint(BaseModel):
    """Sum over every selected profile that has an entry on `date`."""

    date: datetime.date
    total_assets: Money = ZERO
    high_medium_risk: Money = ZERO
    low_risk: Money = ZERO

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


class RiskSlice(BaseModel):
    name: str           # "High/Medium Risk" or "Low Risk"
    value: Money
    percentage: float   # share of total_assets, 0..100, two decimals


class CombinedPortfolio(BaseModel):
    """
    Combined view of the caller's profiles for one period.

    total_assets and risk_distribution come from each profile's latest entry in
    the period; chart_data covers every entry in the period, oldest first.
    message is set only when there is nothing to show.
    """
    period: TimePeriod
    profile_count: int = 0
    total_assets: Money = ZERO
    chart_data: List[ChartPoint] = Field(default_factory=list)
    risk_distribution: List[RiskSlice] = Field(default_factory=list)
    message: Optional[str] = None


__all__ = [
    "TimePeriod",
    "DEFAULT_PERIOD",
    "ChartPoint",
    "RiskSlice",
    "CombinedPortfolio",
]
