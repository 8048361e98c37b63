"""Per-row outcomes, enrollment results and the bulk import report."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from planlink.models.records import Enrollment


class OutcomeKind(StrEnum):
    INFO = "info"
    PROCESSED = "processed"
    WARNING = "warning"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    STORE_ERROR = "store_error"

    @property
    def is_error(self) -> bool:
        return self in _ERROR_KINDS


_ERROR_KINDS = frozenset({
    OutcomeKind.VALIDATION_ERROR,
    OutcomeKind.NOT_FOUND,
    OutcomeKind.DUPLICATE,
    OutcomeKind.STORE_ERROR,
})


class Outcome(BaseModel):
    """One line of the result log."""

    kind: OutcomeKind
    message: str
    row_number: Optional[int] = None

    def format(self) -> str:
        if self.row_number is None:
            return self.message
        return f"Row {self.row_number}: {self.message}"


class EnrollmentResult(BaseModel):
    ok: bool = False
    participant_id: Optional[str] = None
    outcomes: list[Outcome] = Field(default_factory=list)
    enrollments: list[Enrollment] = Field(default_factory=list)

    @property
    def message(self) -> str:
        """Last reported line: the success or the reason the request stopped."""
        return self.outcomes[-1].message if self.outcomes else ""

    @property
    def errors(self) -> list[Outcome]:
        return [o for o in self.outcomes if o.kind.is_error]

    @property
    def warnings(self) -> list[Outcome]:
        return [o for o in self.outcomes if o.kind == OutcomeKind.WARNING]


class ImportReport(BaseModel):
    """Counts plus the ordered log of a bulk upload."""

    processed: int = 0
    errors: int = 0
    outcomes: list[Outcome] = Field(default_factory=list)

    def add(self, result: EnrollmentResult) -> None:
        self.outcomes.extend(result.outcomes)
        if result.ok:
            self.processed += 1
        else:
            self.errors += 1

    @property
    def details(self) -> list[str]:
        return [o.format() for o in self.outcomes]

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "processed": self.processed,
            "errors": self.errors,
            "details": self.details,
        }
