"""Table layout shared by every record store backend."""

from __future__ import annotations

from typing import Any

from planlink.core.types import Row
from planlink.models.records import DEPENDENTS, GROUPS, PARTICIPANTS, PLAN_TABLES, PROVIDERS, PlanKind

# One enrollment per participant, plan and covered person.
UNIQUE_KEYS: dict[str, tuple[str, ...]] = {
    PLAN_TABLES[PlanKind.GROUP].enrollments: ("participant_id", "plan_id", "dependent_id"),
    PLAN_TABLES[PlanKind.MEDICARE].enrollments: ("participant_id", "plan_id", "dependent_id"),
}

# Small, read-mostly tables served through the cache.
REFERENCE_TABLES: frozenset[str] = frozenset(
    [GROUPS, PROVIDERS]
    + [name for tables in PLAN_TABLES.values() for name in (tables.plans, tables.options, tables.rates)]
)


def all_tables() -> list[str]:
    names = [PARTICIPANTS, DEPENDENTS, GROUPS, PROVIDERS]
    for tables in PLAN_TABLES.values():
        names += [tables.plans, tables.options, tables.rates, tables.enrollments]
        if tables.linkages:
            names.append(tables.linkages)
    return names


def unique_key(table: str, row: Row) -> tuple[Any, ...] | None:
    columns = UNIQUE_KEYS.get(table)
    if columns is None:
        return None
    return tuple(row.get(c) for c in columns)


def matches(row: Row, filters: dict[str, Any]) -> bool:
    """Equality match; a None filter matches a null or missing column."""
    for column, wanted in filters.items():
        value = row.get(column)
        if wanted is None:
            if value is not None:
                return False
        elif value != wanted:
            return False
    return True
