from datetime import date, datetime

import pytest

import bizdesk.periods as periods


def test_period_month_bounds_and_label() -> None:
    p = periods.period_month(2024, 2)

    assert p.start == date(2024, 2, 1)
    assert p.end == date(2024, 2, 29)
    assert p.label == "February 2024"
    assert p.start_datetime() == datetime(2024, 2, 1)
    assert p.end_exclusive() == datetime(2024, 3, 1)


def test_period_quarter_and_year() -> None:
    q4 = periods.period_quarter(2026, 4)
    year = periods.period_year(2026)

    assert (q4.start, q4.end, q4.label) == (date(2026, 10, 1), date(2026, 12, 31), "Q4 2026")
    assert (year.start, year.end, year.label) == (date(2026, 1, 1), date(2026, 12, 31), "2026")


def test_period_day() -> None:
    p = periods.period_day(date(2026, 10, 17))

    assert p.start == p.end == date(2026, 10, 17)
    assert p.end_exclusive() == datetime(2026, 10, 18)


def test_invalid_periods_are_rejected() -> None:
    with pytest.raises(ValueError):
        periods.period_month(2026, 13)
    with pytest.raises(ValueError):
        periods.period_quarter(2026, 0)
    with pytest.raises(ValueError):
        periods.period_custom(date(2026, 2, 1), date(2026, 1, 1))


def test_period_custom_default_label() -> None:
    p = periods.period_custom(date(2026, 1, 1), date(2026, 1, 15))

    assert p.label == "2026-01-01 → 2026-01-15"
    assert periods.period_custom(p.start, p.end, "Early January").label == "Early January"


def test_previous_month_wraps_to_december() -> None:
    p = periods.previous_month(date(2026, 1, 10))

    assert (p.start, p.end) == (date(2025, 12, 1), date(2025, 12, 31))


def test_current_month_uses_patched_today(monkeypatch) -> None:
    """current_month should rely on periods._today when no date is given."""
    monkeypatch.setattr(periods, "_today", lambda: date(2026, 10, 17))

    assert periods.current_month().label == "October 2026"
    assert periods.previous_month().label == "September 2026"
    assert periods.resolve_today() == date(2026, 10, 17)
    assert periods.resolve_today(date(2020, 1, 1)) == date(2020, 1, 1)
