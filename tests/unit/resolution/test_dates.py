"""Tests for date normalization, age and default effective date."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from planlink.resolution.dates import (
    calculate_age,
    default_effective_date,
    expand_year,
    normalize,
    normalize_date,
)


class TestNormalizeDate:
    @pytest.mark.parametrize("raw, expected", [
        ("03/15/1960", date(1960, 3, 15)),
        ("3/5/1960", date(1960, 3, 5)),
        ("15/03/1960", date(1960, 3, 15)),
        ("1960-03-15", date(1960, 3, 15)),
        ("1960-03-15 00:00:00", date(1960, 3, 15)),
        ("1960-03-15T08:30:00", date(1960, 3, 15)),
        ("March 15, 1960", date(1960, 3, 15)),
    ])
    def test_accepted_shapes(self, raw, expected):
        assert normalize_date(raw) == expected

    def test_two_digit_years_use_pivot(self):
        assert normalize_date("3/15/60") == date(1960, 3, 15)
        assert normalize_date("3/15/24") == date(2024, 3, 15)
        assert normalize_date("3/15/24", pivot=20) == date(1924, 3, 15)

    def test_date_and_datetime_objects(self):
        assert normalize_date(date(2020, 1, 2)) == date(2020, 1, 2)
        assert normalize_date(datetime(2020, 1, 2, 13, 45)) == date(2020, 1, 2)

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing_is_none(self, raw):
        assert normalize_date(raw) is None

    @pytest.mark.parametrize("raw", ["13/45/2020", "02/30/2020", "2024-02-30", "1/2", "not a date"])
    def test_unparseable_is_none(self, raw):
        assert normalize_date(raw) is None

    def test_normalize_returns_iso_text(self):
        assert normalize("7/4/1976") == "1976-07-04"
        assert normalize("garbage/in/here") is None


class TestExpandYear:
    def test_boundaries(self):
        assert expand_year(0) == 2000
        assert expand_year(49) == 2049
        assert expand_year(50) == 1950
        assert expand_year(1987) == 1987


class TestCalculateAge:
    def test_birthday_not_yet_reached(self):
        assert calculate_age(date(1960, 3, 15), date(2025, 3, 14)) == 64

    def test_on_birthday(self):
        assert calculate_age(date(1960, 3, 15), date(2025, 3, 15)) == 65

    def test_leap_day_birthday(self):
        assert calculate_age(date(2000, 2, 29), date(2025, 2, 28)) == 24
        assert calculate_age(date(2000, 2, 29), date(2025, 3, 1)) == 25


class TestDefaultEffectiveDate:
    def test_past_plan_date_uses_next_first(self):
        assert default_effective_date(date(2025, 1, 1), date(2025, 3, 10)) == date(2025, 4, 1)

    def test_plan_date_before_next_first(self):
        assert default_effective_date(date(2025, 3, 20), date(2025, 3, 10)) == date(2025, 3, 20)

    def test_plan_date_after_next_first(self):
        assert default_effective_date(date(2025, 6, 1), date(2025, 3, 10)) == date(2025, 4, 1)

    def test_december_rolls_year(self):
        assert default_effective_date(None, date(2025, 12, 15)) == date(2026, 1, 1)

    def test_first_of_month_is_today(self):
        assert default_effective_date(None, date(2025, 3, 1)) == date(2025, 3, 1)
