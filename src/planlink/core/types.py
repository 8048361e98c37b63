"""Type aliases used across PlanLink."""

from __future__ import annotations

from typing import Any

# A stored record as the record store sees it: ISO date strings, Decimal numbers.
Row = dict[str, Any]
