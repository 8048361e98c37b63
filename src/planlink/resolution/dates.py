"""Date normalization for upload fields and form input.

Upload files carry dates in whatever shape the spreadsheet produced:
``03/15/1960``, ``15/03/1960``, ``3/15/60``, ``1960-03-15``, Excel
timestamps (``1960-03-15 00:00:00``) or free text (``March 15, 1960``).
Everything is reduced to a calendar ``date``; the store keeps ISO strings.
"""

from __future__ import annotations

import re
import warnings
from datetime import date, datetime

import pandas as pd

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_ISO_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ]\d{2}:\d{2}")

DEFAULT_YEAR_PIVOT = 50


def expand_year(year: int, pivot: int = DEFAULT_YEAR_PIVOT) -> int:
    """Expand a 2-digit year: below the pivot is 20xx, otherwise 19xx."""
    if year >= 100:
        return year
    return 2000 + year if year < pivot else 1900 + year


def _parse_slashed(text: str, pivot: int) -> date | None:
    parts = [p.strip() for p in text.split("/")]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    first, second, year = (int(p) for p in parts)
    # First part above 12 cannot be a month: DD/MM/YYYY, else MM/DD/YYYY.
    if first > 12:
        day, month = first, second
    else:
        month, day = first, second
    try:
        return date(expand_year(year, pivot), month, day)
    except ValueError:
        return None


def _parse_generic(text: str) -> date | None:
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if pd.isna(parsed):
        return None
    return date(parsed.year, parsed.month, parsed.day)


def normalize_date(raw: object, *, pivot: int = DEFAULT_YEAR_PIVOT) -> date | None:
    """Parse ``raw`` into a calendar date, or None when missing or unparseable."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw

    text = str(raw).strip()
    if not text:
        return None

    if "/" in text:
        return _parse_slashed(text, pivot)

    if _ISO_DATE.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None

    match = _ISO_DATETIME.match(text)
    if match:
        try:
            return date.fromisoformat(match.group(1))
        except ValueError:
            return None

    return _parse_generic(text)


def normalize(raw: object, *, pivot: int = DEFAULT_YEAR_PIVOT) -> str | None:
    """Canonical ``YYYY-MM-DD`` form of ``raw``, or None."""
    parsed = normalize_date(raw, pivot=pivot)
    return parsed.isoformat() if parsed else None


def calculate_age(dob: date, as_of: date) -> int:
    """Whole years elapsed between ``dob`` and ``as_of``."""
    age = as_of.year - dob.year
    if (as_of.month, as_of.day) < (dob.month, dob.day):
        age -= 1
    return age


def default_effective_date(plan_effective: date | None, today: date) -> date:
    """Earlier of the plan's effective date and the next first of the month.

    Dates already in the past are not candidates; today counts when it is the 1st.
    """
    if today.day == 1:
        next_first = today
    elif today.month == 12:
        next_first = date(today.year + 1, 1, 1)
    else:
        next_first = date(today.year, today.month + 1, 1)

    candidates = [next_first]
    if plan_effective is not None and plan_effective >= today:
        candidates.append(plan_effective)
    return min(candidates)
