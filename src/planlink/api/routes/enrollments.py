"""Interactive add-plan and add-dependent endpoints."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from planlink.api.deps import get_upserter
from planlink.enrollment.upserter import EnrollmentUpserter
from planlink.models.records import PlanKind
from planlink.models.requests import DependentRequest, InclusionType, PlanAssignmentRequest
from planlink.models.results import EnrollmentResult, OutcomeKind

router = APIRouter(prefix="/participants", tags=["enrollments"])

_STATUS_BY_KIND = {
    OutcomeKind.VALIDATION_ERROR: 422,
    OutcomeKind.NOT_FOUND: 404,
    OutcomeKind.DUPLICATE: 409,
    OutcomeKind.STORE_ERROR: 500,
}


class PlanAssignmentBody(BaseModel):
    plan_id: str
    plan_kind: PlanKind = PlanKind.GROUP
    option_id: Optional[str] = None
    effective_date: Optional[date] = None
    termination_date: Optional[date] = None
    inclusion: Optional[InclusionType] = None


class DependentBody(BaseModel):
    name: str
    relationship: str
    dob: str = ""


def _respond(result: EnrollmentResult) -> JSONResponse:
    status = 200
    if not result.ok:
        errors = result.errors
        status = _STATUS_BY_KIND.get(errors[-1].kind, 400) if errors else 400
    return JSONResponse(
        status_code=status,
        content={
            "ok": result.ok,
            "participant_id": result.participant_id,
            "message": result.message,
            "details": [o.format() for o in result.outcomes],
            "enrollments": [e.model_dump(mode="json") for e in result.enrollments],
        },
    )


@router.post("/{participant_id}/plans")
def add_plan(
    participant_id: str,
    body: PlanAssignmentBody,
    upserter: EnrollmentUpserter = Depends(get_upserter),
) -> JSONResponse:
    request = PlanAssignmentRequest(participant_id=participant_id, **body.model_dump())
    return _respond(upserter.assign_plan(request))


@router.post("/{participant_id}/dependents")
def add_dependent(
    participant_id: str,
    body: DependentBody,
    upserter: EnrollmentUpserter = Depends(get_upserter),
) -> JSONResponse:
    request = DependentRequest(participant_id=participant_id, **body.model_dump())
    return _respond(upserter.add_dependent(request))
