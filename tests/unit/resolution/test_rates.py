"""Tests for active-rate selection."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from planlink.models.records import OptionRate
from planlink.resolution.rates import is_rate_active, latest_first, resolve_active_rate


def _rate(rate_id: str, start: date | None = None, end: date | None = None) -> OptionRate:
    return OptionRate(id=rate_id, option_id="opt", rate=Decimal("100"), start_date=start, end_date=end)


class TestIsRateActive:
    def test_open_ended(self):
        assert is_rate_active(_rate("a"), date(1999, 1, 1))

    def test_window_is_inclusive(self):
        rate = _rate("a", date(2025, 1, 1), date(2025, 1, 31))
        assert is_rate_active(rate, date(2025, 1, 1))
        assert is_rate_active(rate, date(2025, 1, 31))
        assert not is_rate_active(rate, date(2025, 2, 1))
        assert not is_rate_active(rate, date(2024, 12, 31))


class TestResolveActiveRate:
    def test_latest_active_start_wins(self):
        older = _rate("older", date(2024, 1, 1))
        newer = _rate("newer", date(2025, 1, 1))
        result = resolve_active_rate([older, newer], date(2025, 3, 1))
        assert result.rate.id == "newer"
        assert result.fallback is False

    def test_future_rate_is_not_active(self):
        older = _rate("older", date(2024, 1, 1))
        newer = _rate("newer", date(2025, 1, 1))
        assert resolve_active_rate([older, newer], date(2024, 6, 1)).rate.id == "older"

    def test_falls_back_to_latest_when_none_active(self):
        first = _rate("first", date(2023, 1, 1), date(2023, 5, 31))
        second = _rate("second", date(2023, 6, 1), date(2023, 12, 31))
        result = resolve_active_rate([first, second], date(2025, 1, 1))
        assert result.rate.id == "second"
        assert result.fallback is True

    def test_no_candidates(self):
        assert resolve_active_rate([], date(2025, 1, 1)) is None

    def test_undated_rate_sorts_last(self):
        undated = _rate("undated")
        dated = _rate("dated", date(2025, 1, 1))
        assert [r.id for r in latest_first([undated, dated])] == ["dated", "undated"]
        assert resolve_active_rate([undated, dated], date(2025, 2, 1)).rate.id == "dated"
        assert resolve_active_rate([undated, dated], date(2024, 1, 1)).rate.id == "undated"
