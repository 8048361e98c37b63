"""Shared unit fixtures: a memory store seeded with a small plan catalog."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from planlink.enrollment.upserter import EnrollmentUpserter
from planlink.models.records import DEPENDENTS, GROUPS, PARTICIPANTS, PLAN_TABLES, PROVIDERS, PlanKind
from tests.fakes import MemoryRecordStore

TODAY = date(2025, 3, 10)

GROUP = PLAN_TABLES[PlanKind.GROUP]
MEDICARE = PLAN_TABLES[PlanKind.MEDICARE]


def seed_catalog(store: MemoryRecordStore) -> MemoryRecordStore:
    """One group with Age Banded, Composite and Dental plans; one Medigap plan."""
    store.insert(GROUPS, {"id": "grp-1", "name": "Demo Manufacturing"})
    store.insert(PROVIDERS, {"id": "prov-1", "name": "Acme Health"})

    store.insert(GROUP.plans, {
        "id": "plan-ab", "plan_name": "AB Plan", "group_id": "grp-1", "provider_id": "prov-1",
        "plan_type": "Age Banded", "effective_date": "2025-01-01",
        "employer_contribution_type": "Percentage",
        "employer_contribution_value": Decimal("50"),
        "employer_spouse_contribution_value": Decimal("25"),
        "employer_child_contribution_value": Decimal("25"),
    })
    for age, rate in (("0", "200.00"), ("30", "300.00"), ("40", "400.00"), ("50", "500.00")):
        store.insert(GROUP.options, {"id": f"opt-ab-{age}", "plan_id": "plan-ab", "option": age})
        store.insert(GROUP.rates, {
            "id": f"rate-ab-{age}", "option_id": f"opt-ab-{age}",
            "rate": Decimal(rate), "start_date": "2025-01-01",
        })

    store.insert(GROUP.plans, {
        "id": "plan-comp", "plan_name": "PPO", "group_id": "grp-1", "provider_id": "prov-1",
        "plan_type": "Composite", "effective_date": "2025-01-01",
        "employer_contribution_type": "Dollar Amount",
        "employer_contribution_value": Decimal("400"),
        "class_2_contribution_amount": Decimal("450"),
    })
    store.insert(GROUP.options, {"id": "opt-comp-ee", "plan_id": "plan-comp", "option": "Employee Only"})
    store.insert(GROUP.rates, {
        "id": "rate-comp-old", "option_id": "opt-comp-ee", "rate": Decimal("500.00"),
        "start_date": "2024-01-01", "end_date": "2024-12-31",
    })
    store.insert(GROUP.rates, {
        "id": "rate-comp-new", "option_id": "opt-comp-ee", "rate": Decimal("520.00"),
        "start_date": "2025-01-01",
    })

    store.insert(GROUP.plans, {
        "id": "plan-dental", "plan_name": "Dental", "group_id": "grp-1", "provider_id": "prov-1",
    })
    store.insert(GROUP.options, {"id": "opt-dental", "plan_id": "plan-dental", "option": "Basic"})
    store.insert(GROUP.rates, {
        "id": "rate-dental", "option_id": "opt-dental", "rate": Decimal("40.00"),
        "start_date": "2026-01-01",
    })

    store.insert(MEDICARE.plans, {"id": "med-g", "plan_name": "Plan G", "provider_id": "prov-1"})
    store.insert(MEDICARE.options, {"id": "med-g-std", "plan_id": "med-g", "option": "Standard"})
    store.insert(MEDICARE.rates, {
        "id": "med-old", "option_id": "med-g-std", "rate": Decimal("135.00"),
        "start_date": "2024-01-01", "end_date": "2024-12-31",
    })
    store.insert(MEDICARE.rates, {
        "id": "med-new", "option_id": "med-g-std", "rate": Decimal("142.50"),
        "start_date": "2025-01-01",
    })
    return store


def seed_family(store: MemoryRecordStore) -> None:
    """John Smith (class 2) with a spouse and a child on file."""
    store.insert(PARTICIPANTS, {
        "id": "p-1", "client_name": "John Smith", "dob": "1984-06-01",
        "group_id": "grp-1", "class_number": 2,
    })
    store.insert(DEPENDENTS, {
        "id": "d-spouse", "participant_id": "p-1", "name": "Jane Smith",
        "relationship": "Spouse", "dob": "1986-02-01",
    })
    store.insert(DEPENDENTS, {
        "id": "d-child", "participant_id": "p-1", "name": "Kid Smith",
        "relationship": "Child", "dob": "2015-09-01",
    })


@pytest.fixture
def store() -> MemoryRecordStore:
    return seed_catalog(MemoryRecordStore())


@pytest.fixture
def family(store) -> MemoryRecordStore:
    seed_family(store)
    return store


@pytest.fixture
def upserter(store) -> EnrollmentUpserter:
    return EnrollmentUpserter(store, today=lambda: TODAY)
