"""Employer contribution snapshot taken when an enrollment is created."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from planlink.models.records import ContributionLinkage, Plan, Relationship


def contribution_amount(
    plan: Plan,
    *,
    relationship: Optional[Relationship] = None,
    class_number: Optional[int] = None,
) -> Decimal | None:
    """Employer contribution that applies to one covered person.

    ``relationship`` is None for the employee. Age Banded plans carry a value
    per role; Composite plans carry one per participant class, falling back to
    the employee value.
    """
    if plan.employer_contribution_type is None:
        return None

    if plan.is_age_banded:
        if relationship is None:
            return plan.employer_contribution_value
        if relationship == Relationship.SPOUSE:
            return plan.employer_spouse_contribution_value
        return plan.employer_child_contribution_value

    if plan.is_composite and class_number in (1, 2, 3):
        by_class = getattr(plan, f"class_{class_number}_contribution_amount")
        if by_class is not None:
            return by_class

    return plan.employer_contribution_value


def build_linkage(
    plan: Plan,
    *,
    enrollment_id: str,
    rate_id: Optional[str],
    start_date: Optional[date],
    relationship: Optional[Relationship] = None,
    class_number: Optional[int] = None,
) -> ContributionLinkage:
    return ContributionLinkage(
        enrollment_id=enrollment_id,
        rate_id=rate_id,
        employer_contribution_type=plan.employer_contribution_type,
        employer_contribution_amount=contribution_amount(
            plan, relationship=relationship, class_number=class_number,
        ),
        start_date=start_date,
    )
