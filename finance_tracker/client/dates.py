"""
dates.py — conversions between the form's display dates and wire dates.

  display  DD/MM/YYYY   what the user types and what notifications show
  wire     YYYY-MM-DD   what the API accepts and returns
"""
from __future__ import annotations

import re
from datetime import date
from typing import Optional

DISPLAY_DATE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")


def parse_display_date(text: Optional[str]) -> Optional[date]:
    """
    Parse complete DD/MM/YYYY text into a date.

    Partial or malformed text (including impossible days like 31/02/2024)
    returns None instead of raising; the form treats it as "not yet a date".
    """
    if not text:
        return None
    match = DISPLAY_DATE.match(text.strip())
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def to_display(value: date) -> str:
    return value.strftime("%d/%m/%Y")


def to_wire(value: date) -> str:
    return value.isoformat()


def from_wire(value: str) -> date:
    return date.fromisoformat(value)
