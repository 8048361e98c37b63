"""Stored records: participants, dependents, plans, options, rates, enrollments.

Rows travel to and from the record store as plain dicts; dates are ISO
strings there and ``date`` objects here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum, StrEnum
from typing import Any, Optional

from pydantic import BaseModel


class PlanKind(StrEnum):
    GROUP = "group"
    MEDICARE = "medicare"


class PlanType(StrEnum):
    AGE_BANDED = "Age Banded"
    COMPOSITE = "Composite"


class ContributionType(StrEnum):
    PERCENTAGE = "Percentage"
    DOLLAR_AMOUNT = "Dollar Amount"


class Relationship(StrEnum):
    SPOUSE = "Spouse"
    CHILD = "Child"


@dataclass(frozen=True)
class PlanTables:
    """Table names for one plan kind."""

    plans: str
    options: str
    rates: str
    enrollments: str
    linkages: str | None = None


PARTICIPANTS = "participants"
DEPENDENTS = "dependents"
PROVIDERS = "providers"
GROUPS = "groups"

PLAN_TABLES: dict[PlanKind, PlanTables] = {
    PlanKind.GROUP: PlanTables(
        plans="group_plans",
        options="group_plan_options",
        rates="group_option_rates",
        enrollments="participant_group_plans",
        linkages="participant_group_plan_rates",
    ),
    PlanKind.MEDICARE: PlanTables(
        plans="medicare_plans",
        options="medicare_plan_options",
        rates="medicare_option_rates",
        enrollments="participant_medicare_plans",
    ),
}


def to_row(values: dict[str, Any]) -> dict[str, Any]:
    """Drop None values and render dates/enums the way the store keeps them."""
    row: dict[str, Any] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        row[key] = value
    return row


class Record(BaseModel):
    """Base for stored rows."""

    id: str = ""

    model_config = {"str_strip_whitespace": True}

    def as_row(self) -> dict[str, Any]:
        return to_row(self.model_dump())


class Group(Record):
    name: str


class Provider(Record):
    name: str


class Participant(Record):
    client_name: str
    dob: Optional[date] = None
    phone_number: Optional[str] = None
    email_address: Optional[str] = None
    address: Optional[str] = None
    id_number: Optional[str] = None
    hire_date: Optional[date] = None
    termination_date: Optional[date] = None
    class_number: Optional[int] = None
    group_id: Optional[str] = None


class Dependent(Record):
    participant_id: str
    name: str
    relationship: Relationship
    dob: Optional[date] = None


class Plan(Record):
    """A group plan or a Medicare plan."""

    plan_name: str
    group_id: Optional[str] = None
    provider_id: Optional[str] = None
    plan_type: str = ""
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None

    # --- Employer contribution policy ---
    employer_contribution_type: Optional[ContributionType] = None
    employer_contribution_value: Optional[Decimal] = None
    employer_spouse_contribution_value: Optional[Decimal] = None
    employer_child_contribution_value: Optional[Decimal] = None
    class_1_contribution_amount: Optional[Decimal] = None
    class_2_contribution_amount: Optional[Decimal] = None
    class_3_contribution_amount: Optional[Decimal] = None

    @property
    def is_age_banded(self) -> bool:
        return self.plan_type == PlanType.AGE_BANDED

    @property
    def is_composite(self) -> bool:
        return self.plan_type == PlanType.COMPOSITE


class PlanOption(Record):
    plan_id: str
    option: str

    @property
    def age(self) -> int | None:
        """Age threshold encoded in the label, for Age Banded plans."""
        try:
            return int(self.option.strip())
        except ValueError:
            return None


class OptionRate(Record):
    option_id: str
    rate: Decimal
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class Enrollment(Record):
    """Participant (or one of their dependents) assigned to a plan, option and rate."""

    participant_id: str
    plan_id: str
    option_id: Optional[str] = None
    rate_id: Optional[str] = None
    dependent_id: Optional[str] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None


class ContributionLinkage(Record):
    """Employer contribution that applied when the enrollment was created."""

    enrollment_id: str
    rate_id: Optional[str] = None
    employer_contribution_type: Optional[ContributionType] = None
    employer_contribution_amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
