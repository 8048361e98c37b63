"""EnrollmentUpserter: participant, plan, option and rate resolution into enrollments.

One implementation serves both the bulk upload routes and the interactive
"add plan" / "add dependent" forms. Every public method returns an
``EnrollmentResult``; problems with a single request are reported as
outcomes rather than raised.

Writes are not transactional: a participant created for a row stays created
even when its plan, option or rate cannot be resolved afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Callable, Optional

from planlink.core.exceptions import StoreError, UniqueViolationError
from planlink.core.protocols import IRecordStore
from planlink.enrollment.contributions import build_linkage
from planlink.models.records import (
    DEPENDENTS,
    PARTICIPANTS,
    PLAN_TABLES,
    PROVIDERS,
    Dependent,
    Enrollment,
    OptionRate,
    Participant,
    Plan,
    PlanKind,
    PlanOption,
    Provider,
    Relationship,
    to_row,
)
from planlink.models.requests import (
    DependentRequest,
    EnrollmentRequest,
    InclusionType,
    PlanAssignmentRequest,
)
from planlink.models.results import EnrollmentResult, Outcome, OutcomeKind
from planlink.resolution.age_bands import match_age_option
from planlink.resolution.dates import (
    DEFAULT_YEAR_PIVOT,
    calculate_age,
    default_effective_date,
    normalize_date,
)
from planlink.resolution.rates import resolve_active_rate

logger = logging.getLogger(__name__)

_REQUIRED_ROW_FIELDS: dict[PlanKind, list[tuple[str, str]]] = {
    PlanKind.GROUP: [
        ("group_id", "Group"),
        ("participant", "Participant"),
        ("date_of_birth", "Date of Birth"),
        ("plan_name", "Plan Name"),
        ("option", "Option"),
        ("rate", "Rate"),
        ("effective_date", "Plan Start Date"),
    ],
    PlanKind.MEDICARE: [
        ("participant", "Participant"),
        ("date_of_birth", "Date of Birth"),
        ("effective_date", "Plan Start Date"),
        ("plan_name", "Plan Name"),
        ("rate", "Rate"),
    ],
}


class _Rejected(Exception):
    """Stops processing of the current request with a reported outcome."""

    def __init__(self, kind: OutcomeKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)


class _Log:
    """Appends outcomes for one request, stamped with its row number."""

    def __init__(self, result: EnrollmentResult, row_number: Optional[int] = None) -> None:
        self.result = result
        self.row_number = row_number

    def __call__(self, kind: OutcomeKind, message: str) -> None:
        self.result.outcomes.append(
            Outcome(kind=kind, message=message, row_number=self.row_number)
        )


@dataclass
class _RowValues:
    dob: date
    effective_date: date
    rate: Decimal
    hire_date: Optional[date]
    termination_date: Optional[date]
    class_number: Optional[int]


def parse_rate(raw: str) -> Decimal | None:
    """Parse a money amount such as ``125``, ``125.00`` or ``$1,250.00``."""
    text = raw.strip().replace("$", "").replace(",", "")
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_class_number(raw: str) -> int | None:
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value > 0 else None


def parse_relationship(raw: str) -> Relationship | None:
    try:
        return Relationship(raw.strip().title())
    except ValueError:
        return None


class EnrollmentUpserter:
    """Creates participants, dependents and plan enrollments against a record store."""

    def __init__(
        self,
        store: IRecordStore,
        *,
        today: Callable[[], date] = date.today,
        year_pivot: int = DEFAULT_YEAR_PIVOT,
    ) -> None:
        self._store = store
        self._today = today
        self._pivot = year_pivot

    # ---- lookups ----

    def _first(self, table: str, **filters: object) -> dict | None:
        rows = self._store.select(table, **filters)
        return rows[0] if rows else None

    def get_participant(self, participant_id: str) -> Participant | None:
        row = self._first(PARTICIPANTS, id=participant_id)
        return Participant.model_validate(row) if row else None

    def find_participant(self, name: str, dob: date) -> Participant | None:
        row = self._first(PARTICIPANTS, client_name=name, dob=dob.isoformat())
        return Participant.model_validate(row) if row else None

    def find_provider(self, name: str) -> Provider | None:
        row = self._first(PROVIDERS, name=name)
        return Provider.model_validate(row) if row else None

    def get_plan(self, kind: PlanKind, plan_id: str) -> Plan | None:
        row = self._first(PLAN_TABLES[kind].plans, id=plan_id)
        return Plan.model_validate(row) if row else None

    def find_plan(self, kind: PlanKind, plan_name: str, **scope: str) -> Plan | None:
        row = self._first(PLAN_TABLES[kind].plans, plan_name=plan_name, **scope)
        return Plan.model_validate(row) if row else None

    def plan_options(self, kind: PlanKind, plan_id: str, **filters: object) -> list[PlanOption]:
        rows = self._store.select(PLAN_TABLES[kind].options, plan_id=plan_id, **filters)
        return [PlanOption.model_validate(r) for r in rows]

    def option_rates(self, kind: PlanKind, option_id: str, **filters: object) -> list[OptionRate]:
        rows = self._store.select(PLAN_TABLES[kind].rates, option_id=option_id, **filters)
        return [OptionRate.model_validate(r) for r in rows]

    def dependents_of(self, participant_id: str) -> list[Dependent]:
        rows = self._store.select(DEPENDENTS, participant_id=participant_id)
        return [Dependent.model_validate(r) for r in rows]

    def enrollments_of(self, kind: PlanKind, participant_id: str, **filters: object) -> list[Enrollment]:
        rows = self._store.select(
            PLAN_TABLES[kind].enrollments, participant_id=participant_id, **filters
        )
        return [Enrollment.model_validate(r) for r in rows]

    # ---- upload rows ----

    def enroll(
        self,
        request: EnrollmentRequest,
        kind: PlanKind = PlanKind.GROUP,
        row_number: Optional[int] = None,
    ) -> EnrollmentResult:
        """Enroll the participant named on one upload row.

        The rate on the row must match an option rate by value; among those the
        one active on the effective date wins, otherwise the most recent is
        used and a warning is reported.
        """
        result = EnrollmentResult()
        log = _Log(result, row_number)
        try:
            values = self._validate_row(request, kind, log)
            participant = self._find_or_create_participant(request, kind, values, log)
            result.participant_id = participant.id

            plan = self._resolve_row_plan(request, kind)
            options = self._resolve_row_options(request, kind, plan)
            rate = self._resolve_row_rate(request, kind, plan, options, values, log)

            enrollment = self._insert_enrollment(
                kind,
                Enrollment(
                    participant_id=participant.id,
                    plan_id=plan.id,
                    option_id=rate.option_id,
                    rate_id=rate.id,
                    effective_date=values.effective_date,
                    termination_date=values.termination_date,
                ),
            )
            result.enrollments.append(enrollment)
            self._link_contribution(
                kind, plan, enrollment, class_number=participant.class_number,
            )
        except _Rejected as rejected:
            logger.warning("Row %s rejected: %s", row_number, rejected.message)
            log(rejected.kind, rejected.message)
            return result
        except StoreError as exc:
            logger.exception("Row %s failed with a store error", row_number)
            log(OutcomeKind.STORE_ERROR, f"Error - {exc}")
            return result

        result.ok = True
        if kind == PlanKind.MEDICARE:
            log(OutcomeKind.PROCESSED,
                f'Successfully created Medicare plan assignment for "{request.participant}"')
        else:
            log(OutcomeKind.PROCESSED,
                f'Successfully created participant group plan for "{request.participant}"')
        return result

    def _validate_row(self, request: EnrollmentRequest, kind: PlanKind, log: _Log) -> _RowValues:
        missing = [label for field, label in _REQUIRED_ROW_FIELDS[kind] if not getattr(request, field)]
        if missing:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR, f"Missing required fields: {', '.join(missing)}"
            )

        dob = normalize_date(request.date_of_birth, pivot=self._pivot)
        if dob is None:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR,
                f"Invalid Date of Birth format: {request.date_of_birth}",
            )

        effective_date = normalize_date(request.effective_date, pivot=self._pivot)
        if effective_date is None:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR,
                f"Invalid Plan Start Date format: {request.effective_date}",
            )

        rate = parse_rate(request.rate)
        if rate is None:
            raise _Rejected(OutcomeKind.VALIDATION_ERROR, f"Invalid rate value: {request.rate}")

        class_number = None
        if request.class_number:
            class_number = parse_class_number(request.class_number)
            if class_number is None:
                log(OutcomeKind.WARNING, f"Invalid class number: {request.class_number}")

        return _RowValues(
            dob=dob,
            effective_date=effective_date,
            rate=rate,
            hire_date=normalize_date(request.hire_date, pivot=self._pivot),
            termination_date=normalize_date(request.termination_date, pivot=self._pivot),
            class_number=class_number,
        )

    def _find_or_create_participant(
        self, request: EnrollmentRequest, kind: PlanKind, values: _RowValues, log: _Log,
    ) -> Participant:
        supplied = to_row({
            "phone_number": request.phone_number or None,
            "email_address": request.email_address or None,
            "address": request.address or None,
            "id_number": request.id_number or None,
            "hire_date": values.hire_date,
            "termination_date": values.termination_date,
            "class_number": values.class_number,
        })

        existing = self.find_participant(request.participant, values.dob)
        if existing is not None:
            changes = dict(supplied)
            if kind == PlanKind.GROUP and existing.group_id != request.group_id:
                changes["group_id"] = request.group_id
            if changes:
                row = self._store.update(PARTICIPANTS, existing.id, changes)
                existing = Participant.model_validate(row)
            log(OutcomeKind.INFO, f'Using existing participant "{request.participant}"')
            return existing

        new = Participant(
            client_name=request.participant,
            dob=values.dob,
            # Medicare participants don't belong to a group
            group_id=request.group_id if kind == PlanKind.GROUP else None,
        )
        row = self._store.insert(PARTICIPANTS, {**new.as_row(), **supplied})
        logger.info("Created participant %s (%s)", row["id"], request.participant)
        log(OutcomeKind.INFO, f'Created new participant "{request.participant}"')
        return Participant.model_validate(row)

    def _resolve_row_plan(self, request: EnrollmentRequest, kind: PlanKind) -> Plan:
        if kind == PlanKind.GROUP:
            plan = self.find_plan(kind, request.plan_name, group_id=request.group_id)
            if plan is None:
                raise _Rejected(
                    OutcomeKind.NOT_FOUND, f'Plan "{request.plan_name}" not found for this group'
                )
            return plan

        scope: dict[str, str] = {}
        if request.provider:
            provider = self.find_provider(request.provider)
            if provider is None:
                raise _Rejected(OutcomeKind.NOT_FOUND, f'Provider "{request.provider}" not found')
            scope["provider_id"] = provider.id
        plan = self.find_plan(kind, request.plan_name, **scope)
        if plan is None:
            raise _Rejected(OutcomeKind.NOT_FOUND, f'Medicare plan "{request.plan_name}" not found')
        return plan

    def _resolve_row_options(
        self, request: EnrollmentRequest, kind: PlanKind, plan: Plan,
    ) -> list[PlanOption]:
        if not request.option:
            return self.plan_options(kind, plan.id)
        options = self.plan_options(kind, plan.id, option=request.option)
        if not options:
            raise _Rejected(
                OutcomeKind.NOT_FOUND,
                f'Option "{request.option}" not found for plan "{request.plan_name}"',
            )
        return options[:1]

    def _resolve_row_rate(
        self,
        request: EnrollmentRequest,
        kind: PlanKind,
        plan: Plan,
        options: list[PlanOption],
        values: _RowValues,
        log: _Log,
    ) -> OptionRate:
        candidates: list[OptionRate] = []
        for option in options:
            candidates.extend(self.option_rates(kind, option.id, rate=values.rate))

        resolution = resolve_active_rate(candidates, values.effective_date)
        if resolution is None:
            if request.option:
                target = f'option "{request.option}"'
            else:
                target = f'Medicare plan "{plan.plan_name}"'
            raise _Rejected(OutcomeKind.NOT_FOUND, f"Rate {request.rate} not found for {target}")

        if resolution.fallback:
            log(OutcomeKind.WARNING,
                f"Using rate {request.rate} (not active for plan start date, using most recent)")
        return resolution.rate

    # ---- interactive add plan ----

    def assign_plan(self, request: PlanAssignmentRequest) -> EnrollmentResult:
        """Add a plan to an existing participant from the interactive form.

        Age Banded group plans fan out to one enrollment per covered person,
        each age-matched separately; a person who cannot be matched to an
        option with an active rate is skipped and reported.
        """
        result = EnrollmentResult(participant_id=request.participant_id)
        log = _Log(result)
        kind = request.plan_kind
        try:
            participant = self.get_participant(request.participant_id)
            if participant is None:
                raise _Rejected(
                    OutcomeKind.NOT_FOUND, f"Participant {request.participant_id} not found"
                )
            plan = self.get_plan(kind, request.plan_id)
            if plan is None:
                raise _Rejected(OutcomeKind.NOT_FOUND, f"Plan {request.plan_id} not found")

            effective = request.effective_date or default_effective_date(
                plan.effective_date, self._today()
            )
            if kind == PlanKind.GROUP and plan.is_age_banded:
                self._assign_age_banded(participant, plan, request, effective, log)
            else:
                self._assign_single(participant, plan, request, effective, log)
        except _Rejected as rejected:
            logger.warning("Plan assignment rejected: %s", rejected.message)
            log(rejected.kind, rejected.message)
            return result
        except StoreError as exc:
            logger.exception("Plan assignment failed with a store error")
            log(OutcomeKind.STORE_ERROR, f"Error - {exc}")
            return result

        if not result.enrollments:
            log(OutcomeKind.NOT_FOUND,
                f'No enrollments created for plan "{plan.plan_name}"')
            return result

        result.ok = True
        log(OutcomeKind.PROCESSED,
            f'Added plan "{plan.plan_name}" effective {effective.isoformat()} '
            f"({len(result.enrollments)} enrollment(s))")
        return result

    def _assign_age_banded(
        self,
        participant: Participant,
        plan: Plan,
        request: PlanAssignmentRequest,
        effective: date,
        log: _Log,
    ) -> None:
        inclusion = request.inclusion
        if inclusion is None:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR,
                "Please select an inclusion type (Employee, Employee and Spouse, "
                "Employee and Children, or Employee, Spouse, and Children)",
            )
        if participant.dob is None:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR,
                "Participant must have a date of birth for Age Banded plans",
            )

        dependents = self.dependents_of(participant.id)
        covered: list[Dependent] = []
        for relationship, wanted, label in (
            (Relationship.SPOUSE, inclusion.includes_spouse, "spouse"),
            (Relationship.CHILD, inclusion.includes_children, "child"),
        ):
            if not wanted:
                continue
            matching = [d for d in dependents if d.relationship == relationship]
            if not matching:
                raise _Rejected(
                    OutcomeKind.VALIDATION_ERROR,
                    f"Please add a {label} dependent before selecting an option that includes {label}",
                )
            covered.extend(matching)

        options = self.plan_options(PlanKind.GROUP, plan.id)
        if not any(opt.age is not None for opt in options):
            raise _Rejected(
                OutcomeKind.NOT_FOUND, f'No age options configured for plan "{plan.plan_name}"'
            )

        self._enroll_age_banded_person(
            participant, None, plan, options, effective, request.termination_date, log,
        )
        for dependent in covered:
            self._enroll_age_banded_person(
                participant, dependent, plan, options, effective, request.termination_date, log,
            )

    def _enroll_age_banded_person(
        self,
        participant: Participant,
        dependent: Optional[Dependent],
        plan: Plan,
        options: list[PlanOption],
        effective: date,
        termination: Optional[date],
        log: _Log,
    ) -> Enrollment | None:
        if dependent is None:
            label, dob = f'employee "{participant.client_name}"', participant.dob
        else:
            label, dob = f'{dependent.relationship.value.lower()} "{dependent.name}"', dependent.dob

        if dob is None:
            log(OutcomeKind.VALIDATION_ERROR,
                f'Skipped {label}: a date of birth is required for Age Banded plan "{plan.plan_name}"')
            return None

        age = calculate_age(dob, effective)
        option = match_age_option(age, options)
        if option is None:
            log(OutcomeKind.NOT_FOUND, f"Skipped {label}: no age option matches age {age}")
            return None

        resolution = resolve_active_rate(self.option_rates(PlanKind.GROUP, option.id), effective)
        if resolution is None or resolution.fallback:
            log(OutcomeKind.NOT_FOUND,
                f'Skipped {label}: no active rate found for age option "{option.option}" '
                f"on effective date {effective.isoformat()}")
            return None

        enrollment = self._try_insert_enrollment(
            PlanKind.GROUP,
            Enrollment(
                participant_id=participant.id,
                plan_id=plan.id,
                option_id=option.id,
                rate_id=resolution.rate.id,
                dependent_id=dependent.id if dependent else None,
                effective_date=effective,
                termination_date=termination,
            ),
            log,
            label,
        )
        if enrollment is None:
            return None

        log.result.enrollments.append(enrollment)
        self._link_contribution(
            PlanKind.GROUP,
            plan,
            enrollment,
            relationship=dependent.relationship if dependent else None,
        )
        log(OutcomeKind.INFO,
            f'Enrolled {label} at age {age} (option "{option.option}", rate {resolution.rate.rate})')
        return enrollment

    def _assign_single(
        self,
        participant: Participant,
        plan: Plan,
        request: PlanAssignmentRequest,
        effective: date,
        log: _Log,
    ) -> None:
        kind = request.plan_kind
        if plan.is_composite and kind == PlanKind.GROUP and not request.option_id:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR, "Plan option is required for Composite plans"
            )

        option: PlanOption | None = None
        rate_id: str | None = None
        if request.option_id:
            found = self.plan_options(kind, plan.id, id=request.option_id)
            if not found:
                raise _Rejected(
                    OutcomeKind.NOT_FOUND,
                    f'Option {request.option_id} not found for plan "{plan.plan_name}"',
                )
            option = found[0]
            resolution = resolve_active_rate(self.option_rates(kind, option.id), effective)
            if resolution is not None and not resolution.fallback:
                rate_id = resolution.rate.id
            elif plan.is_composite:
                raise _Rejected(
                    OutcomeKind.NOT_FOUND,
                    f'No active rate found for plan option "{option.option}" '
                    f"on effective date {effective.isoformat()}",
                )
            else:
                log(OutcomeKind.WARNING,
                    f'No active rate for option "{option.option}" on {effective.isoformat()}; '
                    "enrollment created without a rate")

        enrollment = self._insert_enrollment(
            kind,
            Enrollment(
                participant_id=participant.id,
                plan_id=plan.id,
                option_id=option.id if option else None,
                rate_id=rate_id,
                effective_date=effective,
                termination_date=request.termination_date,
            ),
        )
        log.result.enrollments.append(enrollment)
        if rate_id is not None:
            self._link_contribution(kind, plan, enrollment, class_number=participant.class_number)

    # ---- dependents ----

    def add_dependent(
        self,
        request: DependentRequest,
        default_inclusion: InclusionType = InclusionType.EMPLOYEE,
        row_number: Optional[int] = None,
    ) -> EnrollmentResult:
        """Create a dependent, then link them into the principal's existing plans.

        ``default_inclusion`` applies to Age Banded plans on which the principal
        has no dependent enrollments yet to infer coverage from.
        """
        result = EnrollmentResult(participant_id=request.participant_id)
        log = _Log(result, row_number)
        try:
            participant = self.get_participant(request.participant_id)
            if participant is None:
                raise _Rejected(
                    OutcomeKind.NOT_FOUND, f"Participant {request.participant_id} not found"
                )
            dependent = self._create_dependent(participant, request)
            log(OutcomeKind.INFO,
                f'Added dependent "{dependent.name}" ({dependent.relationship.value}) '
                f'for "{participant.client_name}"')
            linked = self.fan_out_dependent(participant, dependent, default_inclusion, log)
        except _Rejected as rejected:
            logger.warning("Dependent rejected: %s", rejected.message)
            log(rejected.kind, rejected.message)
            return result
        except StoreError as exc:
            logger.exception("Adding dependent failed with a store error")
            log(OutcomeKind.STORE_ERROR, f"Error - {exc}")
            return result

        result.ok = True
        log(OutcomeKind.PROCESSED,
            f'Dependent "{dependent.name}" linked to {len(linked)} existing plan(s)')
        return result

    def _create_dependent(self, participant: Participant, request: DependentRequest) -> Dependent:
        if not request.name:
            raise _Rejected(OutcomeKind.VALIDATION_ERROR, "Dependent name is required")
        relationship = parse_relationship(request.relationship)
        if relationship is None:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR,
                f"Invalid relationship: {request.relationship} (expected Spouse or Child)",
            )
        dob = normalize_date(request.dob, pivot=self._pivot)
        if request.dob and dob is None:
            raise _Rejected(
                OutcomeKind.VALIDATION_ERROR,
                f"Invalid dependent Date of Birth format: {request.dob}",
            )

        existing = self._store.select(
            DEPENDENTS,
            participant_id=participant.id,
            name=request.name,
            dob=dob.isoformat() if dob else None,
        )
        if existing:
            raise _Rejected(
                OutcomeKind.DUPLICATE,
                f'Dependent "{request.name}" already exists for "{participant.client_name}"',
            )

        new = Dependent(
            participant_id=participant.id, name=request.name, relationship=relationship, dob=dob,
        )
        row = self._store.insert(DEPENDENTS, new.as_row())
        logger.info("Created dependent %s for participant %s", row["id"], participant.id)
        return Dependent.model_validate(row)

    def fan_out_dependent(
        self,
        participant: Participant,
        dependent: Dependent,
        default_inclusion: InclusionType = InclusionType.EMPLOYEE,
        log: Optional[_Log] = None,
    ) -> list[Enrollment]:
        """Enroll a new dependent in the principal's Age Banded and Composite plans.

        Skips are reported as warnings: the dependent itself already exists.
        """
        if log is None:
            log = _Log(EnrollmentResult(participant_id=participant.id))
        relationships = {d.id: d.relationship for d in self.dependents_of(participant.id)}
        linked: list[Enrollment] = []

        for principal in self.enrollments_of(PlanKind.GROUP, participant.id, dependent_id=None):
            plan = self.get_plan(PlanKind.GROUP, principal.plan_id)
            if plan is None or not (plan.is_age_banded or plan.is_composite):
                continue
            on_plan = [
                e for e in self.enrollments_of(PlanKind.GROUP, participant.id, plan_id=plan.id)
                if e.dependent_id
            ]
            if any(e.dependent_id == dependent.id for e in on_plan):
                continue

            effective = plan.effective_date or principal.effective_date or self._today()
            try:
                if plan.is_age_banded:
                    enrollment = self._fan_out_age_banded(
                        participant, dependent, plan, principal, on_plan, relationships,
                        default_inclusion, effective, log,
                    )
                else:
                    enrollment = self._fan_out_composite(
                        participant, dependent, plan, principal, effective, log,
                    )
            except StoreError as exc:
                logger.exception("Linking dependent %s to plan %s failed", dependent.id, plan.id)
                log(OutcomeKind.WARNING,
                    f'Could not link dependent "{dependent.name}" to plan "{plan.plan_name}": {exc}')
                continue
            if enrollment is not None:
                linked.append(enrollment)
        return linked

    def _fan_out_age_banded(
        self,
        participant: Participant,
        dependent: Dependent,
        plan: Plan,
        principal: Enrollment,
        on_plan: list[Enrollment],
        relationships: dict[str, Relationship],
        default_inclusion: InclusionType,
        effective: date,
        log: _Log,
    ) -> Enrollment | None:
        if on_plan:
            covered = {relationships.get(e.dependent_id) for e in on_plan}
            inclusion = InclusionType.from_flags(
                Relationship.SPOUSE in covered, Relationship.CHILD in covered,
            )
        else:
            inclusion = default_inclusion

        wanted = (
            inclusion.includes_spouse
            if dependent.relationship == Relationship.SPOUSE
            else inclusion.includes_children
        )
        if not wanted:
            log(OutcomeKind.INFO,
                f'Plan "{plan.plan_name}" covers {inclusion.value}; '
                f'dependent "{dependent.name}" not added')
            return None

        if dependent.dob is None:
            log(OutcomeKind.WARNING,
                f'Dependent "{dependent.name}" has no date of birth; '
                f'cannot enroll in Age Banded plan "{plan.plan_name}"')
            return None

        options = self.plan_options(PlanKind.GROUP, plan.id)
        age = calculate_age(dependent.dob, effective)
        option = match_age_option(age, options)
        if option is None:
            log(OutcomeKind.WARNING,
                f'No age option matches dependent "{dependent.name}" on plan "{plan.plan_name}"')
            return None

        resolution = resolve_active_rate(self.option_rates(PlanKind.GROUP, option.id), effective)
        if resolution is None or resolution.fallback:
            log(OutcomeKind.WARNING,
                f'No active rate for age option "{option.option}" on plan "{plan.plan_name}" '
                f"at {effective.isoformat()}; dependent \"{dependent.name}\" not added")
            return None

        return self._insert_fanned_out(
            participant, dependent, plan, option.id, resolution.rate.id,
            effective, principal.termination_date, log,
        )

    def _fan_out_composite(
        self,
        participant: Participant,
        dependent: Dependent,
        plan: Plan,
        principal: Enrollment,
        effective: date,
        log: _Log,
    ) -> Enrollment | None:
        if not principal.option_id:
            log(OutcomeKind.WARNING,
                f'Principal has no option on Composite plan "{plan.plan_name}"; '
                f'dependent "{dependent.name}" not added')
            return None

        rate_id = principal.rate_id
        if rate_id is None:
            resolution = resolve_active_rate(
                self.option_rates(PlanKind.GROUP, principal.option_id), effective,
            )
            if resolution is None or resolution.fallback:
                log(OutcomeKind.WARNING,
                    f'No active rate on Composite plan "{plan.plan_name}"; '
                    f'dependent "{dependent.name}" not added')
                return None
            rate_id = resolution.rate.id

        return self._insert_fanned_out(
            participant, dependent, plan, principal.option_id, rate_id,
            effective, principal.termination_date, log,
        )

    def _insert_fanned_out(
        self,
        participant: Participant,
        dependent: Dependent,
        plan: Plan,
        option_id: str,
        rate_id: str,
        effective: date,
        termination: Optional[date],
        log: _Log,
    ) -> Enrollment | None:
        enrollment = self._try_insert_enrollment(
            PlanKind.GROUP,
            Enrollment(
                participant_id=participant.id,
                plan_id=plan.id,
                option_id=option_id,
                rate_id=rate_id,
                dependent_id=dependent.id,
                effective_date=effective,
                termination_date=termination,
            ),
            log,
            f'dependent "{dependent.name}"',
        )
        if enrollment is None:
            return None
        log.result.enrollments.append(enrollment)
        self._link_contribution(
            PlanKind.GROUP, plan, enrollment, relationship=dependent.relationship,
        )
        log(OutcomeKind.INFO, f'Linked dependent "{dependent.name}" to plan "{plan.plan_name}"')
        return enrollment

    # ---- writes ----

    def _insert_enrollment(self, kind: PlanKind, enrollment: Enrollment) -> Enrollment:
        try:
            row = self._store.insert(PLAN_TABLES[kind].enrollments, enrollment.as_row())
        except UniqueViolationError as exc:
            if kind == PlanKind.MEDICARE:
                message = "Participant already has this Medicare plan assignment"
            else:
                message = "Participant already has this plan assignment"
            raise _Rejected(OutcomeKind.DUPLICATE, message) from exc
        return Enrollment.model_validate(row)

    def _try_insert_enrollment(
        self, kind: PlanKind, enrollment: Enrollment, log: _Log, label: str,
    ) -> Enrollment | None:
        try:
            return self._insert_enrollment(kind, enrollment)
        except _Rejected as rejected:
            log(rejected.kind, f"Skipped {label}: {rejected.message}")
            return None

    def _link_contribution(
        self,
        kind: PlanKind,
        plan: Plan,
        enrollment: Enrollment,
        *,
        relationship: Optional[Relationship] = None,
        class_number: Optional[int] = None,
    ) -> None:
        table = PLAN_TABLES[kind].linkages
        if table is None:
            return
        linkage = build_linkage(
            plan,
            enrollment_id=enrollment.id,
            rate_id=enrollment.rate_id,
            start_date=enrollment.effective_date,
            relationship=relationship,
            class_number=class_number,
        )
        try:
            self._store.insert(table, linkage.as_row())
        except StoreError:
            # The enrollment stands without its contribution snapshot.
            logger.error("Contribution linkage failed for enrollment %s", enrollment.id, exc_info=True)
