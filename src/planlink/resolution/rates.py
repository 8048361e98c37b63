"""Active-rate selection over an option's historical rate ledger."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from planlink.models.records import OptionRate


@dataclass(frozen=True)
class RateResolution:
    """Selected rate; ``fallback`` is set when it was not active on the target date."""

    rate: OptionRate
    fallback: bool = False


def is_rate_active(rate: OptionRate, as_of: date) -> bool:
    """Missing start means open to the past, missing end open to the future."""
    if rate.start_date is not None and as_of < rate.start_date:
        return False
    if rate.end_date is not None and as_of > rate.end_date:
        return False
    return True


def latest_first(rates: Iterable[OptionRate]) -> list[OptionRate]:
    """Order by start date descending; undated rates last, ties keep input order."""
    return sorted(
        rates,
        key=lambda r: (r.start_date is not None, r.start_date or date.min),
        reverse=True,
    )


def resolve_active_rate(candidates: Iterable[OptionRate], as_of: date) -> RateResolution | None:
    """Pick the rate that applies on ``as_of``.

    Among rates whose window contains ``as_of`` the latest start wins. When
    none is active the latest rate overall is returned flagged as a fallback;
    the caller decides whether that is acceptable. No candidates at all gives
    None.
    """
    ordered = latest_first(candidates)
    if not ordered:
        return None

    for rate in ordered:
        if is_rate_active(rate, as_of):
            return RateResolution(rate)

    return RateResolution(ordered[0], fallback=True)
