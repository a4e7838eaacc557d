# BizDesk - Finance, Warehouse & Inventory reporting for small businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for BizDesk.

This module defines a Period value object and helpers to derive the
reporting periods offered by the report screen (day, month, quarter, year,
custom range) as well as the current / previous calendar months used by
the dashboard.
"""

from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


@dataclass(frozen=True)
class Period:
    """Represents a reporting period (inclusive dates) with a human-readable label."""

    start: date
    end: date
    label: str

    def start_datetime(self) -> datetime:
        """First instant of the period."""
        return datetime.combine(self.start, time.min)

    def end_exclusive(self) -> datetime:
        """First instant after the period."""
        return datetime.combine(self.end + timedelta(days=1), time.min)


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def resolve_today(today: Optional[date] = None) -> date:
    """Return ``today`` when given, else the current date."""
    return today or _today()


def period_day(day: date) -> Period:
    return Period(start=day, end=day, label=day.strftime("%d %B %Y"))


def period_month(year: int, month: int) -> Period:
    """Full calendar month."""
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month: {month!r}")
    last_day = monthrange(year, month)[1]
    return Period(
        start=date(year, month, 1),
        end=date(year, month, last_day),
        label=f"{MONTH_NAMES[month - 1]} {year}",
    )


def period_quarter(year: int, quarter: int) -> Period:
    """Calendar quarter (1-4)."""
    if not 1 <= quarter <= 4:
        raise ValueError(f"Invalid quarter: {quarter!r}")
    first_month = (quarter - 1) * 3 + 1
    last_month = first_month + 2
    return Period(
        start=date(year, first_month, 1),
        end=date(year, last_month, monthrange(year, last_month)[1]),
        label=f"Q{quarter} {year}",
    )


def period_year(year: int) -> Period:
    return Period(start=date(year, 1, 1), end=date(year, 12, 31), label=str(year))


def period_custom(start: date, end: date, label: Optional[str] = None) -> Period:
    if end < start:
        raise ValueError("Custom period end date cannot be before start date.")
    return Period(start=start, end=end, label=label or f"{start} → {end}")


def current_month(today: Optional[date] = None) -> Period:
    """Calendar month containing ``today``."""
    today = today or _today()
    return period_month(today.year, today.month)


def previous_month(today: Optional[date] = None) -> Period:
    """Full calendar month before the one containing ``today``."""
    today = today or _today()
    if today.month == 1:
        return period_month(today.year - 1, 12)
    return period_month(today.year, today.month - 1)
