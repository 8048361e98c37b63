"""Tests for employer contribution selection."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from planlink.enrollment.contributions import build_linkage, contribution_amount
from planlink.models.records import ContributionType, Plan, Relationship


def _age_banded() -> Plan:
    return Plan(
        id="plan-ab", plan_name="AB Plan", plan_type="Age Banded",
        employer_contribution_type=ContributionType.PERCENTAGE,
        employer_contribution_value=Decimal("50"),
        employer_spouse_contribution_value=Decimal("25"),
        employer_child_contribution_value=Decimal("10"),
    )


def _composite() -> Plan:
    return Plan(
        id="plan-comp", plan_name="PPO", plan_type="Composite",
        employer_contribution_type=ContributionType.DOLLAR_AMOUNT,
        employer_contribution_value=Decimal("400"),
        class_2_contribution_amount=Decimal("450"),
    )


class TestContributionAmount:
    def test_age_banded_by_role(self):
        plan = _age_banded()
        assert contribution_amount(plan) == Decimal("50")
        assert contribution_amount(plan, relationship=Relationship.SPOUSE) == Decimal("25")
        assert contribution_amount(plan, relationship=Relationship.CHILD) == Decimal("10")

    def test_composite_by_class(self):
        plan = _composite()
        assert contribution_amount(plan, class_number=2) == Decimal("450")

    def test_composite_falls_back_to_employee_value(self):
        plan = _composite()
        assert contribution_amount(plan, class_number=3) == Decimal("400")
        assert contribution_amount(plan) == Decimal("400")

    def test_no_policy(self):
        assert contribution_amount(Plan(plan_name="Dental")) is None


class TestBuildLinkage:
    def test_snapshot_fields(self):
        linkage = build_linkage(
            _age_banded(), enrollment_id="enr-1", rate_id="rate-1",
            start_date=date(2025, 4, 1), relationship=Relationship.SPOUSE,
        )
        row = linkage.as_row()
        assert row["enrollment_id"] == "enr-1"
        assert row["rate_id"] == "rate-1"
        assert row["employer_contribution_type"] == "Percentage"
        assert row["employer_contribution_amount"] == Decimal("25")
        assert row["start_date"] == "2025-04-01"
        assert "end_date" not in row
