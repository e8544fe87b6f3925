"""Tests for the NYSE session calendar."""

from datetime import date

from swingtrader.utils.trading_calendar import (
    closure_reason,
    is_trading_day,
    last_completed_session,
    previous_trading_day,
)


def test_regular_weekday_is_trading_day():
    assert is_trading_day(date(2025, 6, 2))  # Monday
    assert closure_reason(date(2025, 6, 2)) is None


def test_weekend_is_closed():
    assert not is_trading_day(date(2025, 6, 7))
    assert closure_reason(date(2025, 6, 8)) == "Weekend"


def test_holiday_is_closed():
    assert closure_reason(date(2025, 12, 25)) == "Christmas Day"
    assert not is_trading_day(date(2026, 11, 26))


def test_previous_trading_day_skips_weekend_and_holiday():
    # Tuesday after Memorial Day 2025 -> previous Friday
    assert previous_trading_day(date(2025, 5, 27)) == date(2025, 5, 23)


def test_last_completed_session():
    assert last_completed_session(date(2025, 6, 2)) == date(2025, 6, 2)
    assert last_completed_session(date(2025, 6, 8)) == date(2025, 6, 6)
