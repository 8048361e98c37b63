"""Bulk import driver for group and Medicare enrollment uploads."""

from __future__ import annotations

import logging
from typing import Optional

from planlink.core.exceptions import ImportFileError
from planlink.enrollment.upserter import EnrollmentUpserter
from planlink.ingest.tabular import (
    COL_DEPENDENT_DOB,
    COL_DEPENDENT_NAME,
    COL_DOB,
    COL_PARTICIPANT,
    COL_PLAN_START,
    COL_RELATIONSHIP,
    read_table,
)
from planlink.models.records import PlanKind
from planlink.models.requests import DependentRequest, EnrollmentRequest, InclusionType
from planlink.models.results import EnrollmentResult, ImportReport, Outcome, OutcomeKind
from planlink.resolution.dates import DEFAULT_YEAR_PIVOT, normalize_date

logger = logging.getLogger(__name__)

# Row 1 is the header.
FIRST_DATA_ROW = 2


class BulkImporter:
    """Runs every row of an upload through the EnrollmentUpserter.

    Problems with the file as a whole raise ``ImportFileError`` before any row
    is attempted. Problems with a row are recorded in the ``ImportReport`` and
    the batch continues.
    """

    def __init__(
        self,
        upserter: EnrollmentUpserter,
        *,
        max_rows: int = 5000,
        year_pivot: int = DEFAULT_YEAR_PIVOT,
    ) -> None:
        self._upserter = upserter
        self._max_rows = max_rows
        self._pivot = year_pivot

    def import_group_file(
        self, data: bytes, filename: str, group_id: str, plan_start_date: str,
    ) -> ImportReport:
        if not group_id or not plan_start_date:
            raise ImportFileError("Missing groupId or planStartDate")
        start = normalize_date(plan_start_date, pivot=self._pivot)
        if start is None:
            raise ImportFileError(f"Invalid plan start date: {plan_start_date}")

        rows = self._read(data, filename, PlanKind.GROUP)
        logger.info("Importing %d group rows from %s for group %s", len(rows), filename, group_id)
        return self.run(rows, PlanKind.GROUP, group_id=group_id, plan_start_date=start.isoformat())

    def import_medicare_file(self, data: bytes, filename: str) -> ImportReport:
        rows = self._read(data, filename, PlanKind.MEDICARE)
        logger.info("Importing %d Medicare rows from %s", len(rows), filename)
        return self.run(rows, PlanKind.MEDICARE)

    def _read(self, data: bytes, filename: str, kind: PlanKind) -> list[dict[str, str]]:
        if not data:
            raise ImportFileError("No file uploaded")
        rows = read_table(data, filename, kind)
        if not rows:
            raise ImportFileError("No data found in file")
        if len(rows) > self._max_rows:
            raise ImportFileError(
                f"File has {len(rows)} rows; at most {self._max_rows} can be imported at once"
            )
        return rows

    def run(
        self,
        rows: list[dict[str, str]],
        kind: PlanKind,
        *,
        group_id: str = "",
        plan_start_date: str = "",
    ) -> ImportReport:
        report = ImportReport()
        principal_id: Optional[str] = None

        for offset, row in enumerate(rows):
            row_number = offset + FIRST_DATA_ROW
            try:
                if row.get(COL_DEPENDENT_NAME):
                    result = self._import_dependent(row, row_number, principal_id)
                else:
                    request = _to_request(row, kind, group_id, plan_start_date)
                    result = self._upserter.enroll(request, kind, row_number)
                    if result.participant_id:
                        principal_id = result.participant_id
            except Exception as exc:
                logger.exception("Row %d failed unexpectedly", row_number)
                result = EnrollmentResult(outcomes=[
                    Outcome(kind=OutcomeKind.STORE_ERROR, message=f"Error - {exc}", row_number=row_number),
                ])
            report.add(result)

        logger.info(
            "Import finished: %d processed, %d with errors", report.processed, report.errors,
        )
        return report

    def _import_dependent(
        self, row: dict[str, str], row_number: int, principal_id: Optional[str],
    ) -> EnrollmentResult:
        name = row[COL_DEPENDENT_NAME]
        participant = row.get(COL_PARTICIPANT, "")
        if participant:
            dob = normalize_date(row.get(COL_DOB, ""), pivot=self._pivot)
            found = self._upserter.find_participant(participant, dob) if dob else None
            if found is None:
                return _not_found(
                    row_number, f'Participant "{participant}" not found for dependent "{name}"',
                )
            principal_id = found.id
        elif principal_id is None:
            return _not_found(row_number, f'No participant row precedes dependent "{name}"')

        request = DependentRequest(
            participant_id=principal_id,
            name=name,
            relationship=row.get(COL_RELATIONSHIP, ""),
            dob=row.get(COL_DEPENDENT_DOB, ""),
        )
        return self._upserter.add_dependent(
            request, default_inclusion=InclusionType.FAMILY, row_number=row_number,
        )


def _to_request(
    row: dict[str, str], kind: PlanKind, group_id: str, plan_start_date: str,
) -> EnrollmentRequest:
    fields = {k: v for k, v in row.items() if k in EnrollmentRequest.model_fields}
    if kind == PlanKind.GROUP:
        fields["group_id"] = group_id
        fields[COL_PLAN_START] = plan_start_date
    return EnrollmentRequest(**fields)


def _not_found(row_number: int, message: str) -> EnrollmentResult:
    logger.warning("Row %d rejected: %s", row_number, message)
    return EnrollmentResult(
        outcomes=[Outcome(kind=OutcomeKind.NOT_FOUND, message=message, row_number=row_number)],
    )
