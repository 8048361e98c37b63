"""Age-band matching for Age Banded plan options."""

from __future__ import annotations

from typing import Sequence

from planlink.models.records import PlanOption


def match_age_option(age: int, options: Sequence[PlanOption]) -> PlanOption | None:
    """Select the option band for a person of ``age``.

    Exact label match first, then the highest band at or below ``age``, then
    the lowest band for people younger than every band. Options whose label
    is not an integer are ignored; None only when no label is numeric.
    """
    banded = [(opt.age, opt) for opt in options if opt.age is not None]
    if not banded:
        return None

    for band, opt in banded:
        if band == age:
            return opt

    banded.sort(key=lambda item: item[0], reverse=True)
    for band, opt in banded:
        if band <= age:
            return opt

    return banded[-1][1]
