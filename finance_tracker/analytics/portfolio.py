"""
portfolio.py — combined portfolio aggregation across profiles.

Pure functions over FinancialEntry lists: no I/O, no clock. The route passes
`today` in, so the same entries and date always give the same result.

  period_start       first day included in a period (inclusive)
  filter_by_period   drop entries before the start; drop profiles left empty
  combine            latest-entry totals, risk split and per-date chart points
"""
from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from finance_tracker.analytics.schemas import (
    ChartPoint,
    CombinedPortfolio,
    RiskSlice,
    TimePeriod,
)
from finance_tracker.entries.money import CENT, ZERO, sum_money
from finance_tracker.entries.schemas import FinancialEntry
from finance_tracker.models.financial_entry import MONEY_FIELDS

ProfileEntries = dict[str, list[FinancialEntry]]

# Below this the split is meaningless
MIN_TOTAL_FOR_DISTRIBUTION = CENT

_MONTHS_BACK = {TimePeriod.months_3: 3}
_YEARS_BACK = {
    TimePeriod.year_1: 1,
    TimePeriod.years_3: 3,
    TimePeriod.years_5: 5,
    TimePeriod.years_10: 10,
}


def _months_before(day: date, months: int) -> date:
    """Same day-of-month `months` earlier, clamped to the month's last day (31 May → 28/29 Feb)."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def period_start(period: TimePeriod, today: date) -> date:
    if period is TimePeriod.days_30:
        return today - timedelta(days=30)
    if period in _MONTHS_BACK:
        return _months_before(today, _MONTHS_BACK[period])
    return _months_before(today, 12 * _YEARS_BACK[period])


def group_by_profile(entries: Iterable[FinancialEntry]) -> ProfileEntries:
    grouped: ProfileEntries = defaultdict(list)
    for entry in entries:
        grouped[entry.profile_id].append(entry)
    return dict(grouped)


def filter_by_period(by_profile: ProfileEntries, start: date) -> ProfileEntries:
    filtered: ProfileEntries = {}
    for profile_id, entries in by_profile.items():
        kept = [entry for entry in entries if entry.entry_date >= start]
        if kept:
            filtered[profile_id] = kept
    return filtered


def _percentage(part: Decimal, total: Decimal) -> float:
    return float((part * 100 / total).quantize(CENT, rounding=ROUND_HALF_UP))


def risk_distribution(high_medium: Decimal, low: Decimal) -> list[RiskSlice]:
    total = high_medium + low
    if total < MIN_TOTAL_FOR_DISTRIBUTION:
        return []
    return [
        RiskSlice(name="High/Medium Risk", value=high_medium, percentage=_percentage(high_medium, total)),
        RiskSlice(name="Low Risk", value=low, percentage=_percentage(low, total)),
    ]


def chart_points(by_profile: ProfileEntries) -> list[ChartPoint]:
    """Per-date field sums across profiles, oldest first."""
    sums: dict[date, dict[str, Decimal]] = defaultdict(lambda: {name: ZERO for name in MONEY_FIELDS})
    by_day: dict[date, list[FinancialEntry]] = defaultdict(list)
    for entries in by_profile.values():
        for entry in entries:
            day_sums = sums[entry.entry_date]
            for name in MONEY_FIELDS:
                day_sums[name] += getattr(entry, name)
            by_day[entry.entry_date].append(entry)

    return [
        ChartPoint(
            date=day,
            total_assets=sum_money(entry.total_assets for entry in by_day[day]),
            high_medium_risk=sum_money(entry.total_high_medium_risk for entry in by_day[day]),
            low_risk=sum_money(entry.total_low_risk for entry in by_day[day]),
            **sums[day],
        )
        for day in sorted(sums)
    ]


def combine(by_profile: ProfileEntries, period: TimePeriod) -> CombinedPortfolio:
    """Aggregate already-filtered entries. Profiles with no entries do not count."""
    latest = [
        max(entries, key=lambda entry: entry.entry_date)
        for entries in by_profile.values()
        if entries
    ]
    high_medium = sum_money(entry.total_high_medium_risk for entry in latest)
    low = sum_money(entry.total_low_risk for entry in latest)
    return CombinedPortfolio(
        period=period,
        profile_count=len(latest),
        total_assets=sum_money(entry.total_assets for entry in latest),
        chart_data=chart_points(by_profile),
        risk_distribution=risk_distribution(high_medium, low),
    )


def combined_portfolio(
    entries: Iterable[FinancialEntry],
    period: TimePeriod,
    today: date,
) -> CombinedPortfolio:
    """Group, filter to the period and aggregate, with an explanatory message when empty."""
    by_profile = group_by_profile(entries)
    if not by_profile:
        return CombinedPortfolio(
            period=period, message="No financial data available for your profiles"
        )
    in_period = filter_by_period(by_profile, period_start(period, today))
    if not in_period:
        return CombinedPortfolio(
            period=period,
            message=f"No financial data available for the selected time period ({period.value})",
        )
    return combine(in_period, period)
