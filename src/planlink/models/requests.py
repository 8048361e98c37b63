"""Inbound enrollment requests: upload rows and interactive add-plan forms."""

from __future__ import annotations

from datetime import date
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from planlink.models.records import PlanKind


class InclusionType(StrEnum):
    """Who an Age Banded enrollment covers besides the employee."""

    EMPLOYEE = "Employee"
    EMPLOYEE_AND_SPOUSE = "Employee and Spouse"
    EMPLOYEE_AND_CHILDREN = "Employee and Children"
    FAMILY = "Employee, Spouse, and Children"

    @property
    def includes_spouse(self) -> bool:
        return self in (InclusionType.EMPLOYEE_AND_SPOUSE, InclusionType.FAMILY)

    @property
    def includes_children(self) -> bool:
        return self in (InclusionType.EMPLOYEE_AND_CHILDREN, InclusionType.FAMILY)

    @classmethod
    def from_flags(cls, spouse: bool, children: bool) -> InclusionType:
        if spouse and children:
            return cls.FAMILY
        if spouse:
            return cls.EMPLOYEE_AND_SPOUSE
        if children:
            return cls.EMPLOYEE_AND_CHILDREN
        return cls.EMPLOYEE


class EnrollmentRequest(BaseModel):
    """One upload row, string-typed as it came out of the file.

    ``effective_date`` is the batch plan start date for group uploads and the
    row's own Plan Start Date for Medicare uploads.
    """

    participant: str = ""
    date_of_birth: str = ""
    phone_number: str = ""
    email_address: str = ""
    address: str = ""
    id_number: str = ""
    hire_date: str = ""
    termination_date: str = ""
    class_number: str = ""
    group_id: str = ""
    provider: str = ""
    plan_name: str = ""
    option: str = ""
    rate: str = ""
    effective_date: str = ""

    model_config = {"str_strip_whitespace": True}


class PlanAssignmentRequest(BaseModel):
    """Interactive "add plan" form for an existing participant."""

    participant_id: str
    plan_id: str
    plan_kind: PlanKind = PlanKind.GROUP
    option_id: Optional[str] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None
    inclusion: Optional[InclusionType] = None


class DependentRequest(BaseModel):
    """New dependent for an existing participant."""

    participant_id: str
    name: str
    relationship: str
    dob: str = ""

    model_config = {"str_strip_whitespace": True}
