# core/release.py

"""
Batch release and unrelease of a form's marks.

A selection is either every student matched by a named filter ("full select") or an explicit
list of student IDs. Each selected student's per-student record is found or created and its
release flag set. Only records whose flag actually changes are counted.

The batch is not atomic. A student whose write fails is reported in the error list
and the remaining students are still processed.
"""

from __future__ import annotations

import logging
from enum import Enum

import core.formatters as formatters
from core.audit import AuditLogger
from core.errors import PersistenceError, UnknownFilterError
from core.filter_sort import DEFAULT_REGISTRY, FilterSortRegistry, QueryContext
from core.response import ErrorCode, Response
from models.form_store import FormStore
from models.grade_entry_form import GradeEntryForm
from models.roster import Roster
from models.student import Student

logger = logging.getLogger(__name__)

EXPECTED_FILTER = "A filter is required when selecting all students."
MUST_SELECT_A_STUDENT = "You must select at least one student."
MUST_SELECT_AN_ACTION = "You must choose to either release or unrelease marks."


class SelectionMode(str, Enum):
    FULL = "full"
    EXPLICIT = "explicit"


class ReleaseSelection:

    def __init__(
        self,
        mode: SelectionMode,
        filter_name: str | None = None,
        student_ids: list[str] | str | None = None,
    ):
        self.mode = mode
        self.filter_name = filter_name
        # a single selected checkbox can arrive as a bare ID
        if isinstance(student_ids, str):
            student_ids = [student_ids]
        self.student_ids = list(student_ids or [])

    @classmethod
    def full(cls, filter_name: str | None) -> ReleaseSelection:
        return cls(SelectionMode.FULL, filter_name=filter_name)

    @classmethod
    def explicit(cls, student_ids: list[str] | str | None) -> ReleaseSelection:
        return cls(SelectionMode.EXPLICIT, student_ids=student_ids)

    def __repr__(self) -> str:
        return f"ReleaseSelection({self.mode.value}, {self.filter_name}, {self.student_ids})"


class ReleaseBatchService:

    def __init__(
        self,
        roster: Roster,
        form_store: FormStore,
        audit_logger: AuditLogger,
        registry: FilterSortRegistry = DEFAULT_REGISTRY,
    ):
        self._roster = roster
        self._form_store = form_store
        self._audit_logger = audit_logger
        self._registry = registry

    def set_release(
        self,
        form: GradeEntryForm,
        selection: ReleaseSelection,
        released: bool | None,
    ) -> Response:
        """
        Sets the release flag for every selected student on a form.

        Args:
            form (GradeEntryForm): The form whose marks are released or unreleased.
            selection (ReleaseSelection): A full-select filter name or an explicit list of student IDs.
            released (bool | None): True to release, False to unrelease; None is rejected.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if every selected student was processed without error.
                    - False if the request was invalid or any student could not be processed.
                - detail (str | None): A summary of the outcome.
                - error (ErrorCode | str | None):
                    - `ErrorCode.NO_ACTION_SPECIFIED` if `released` is None.
                    - `ErrorCode.MISSING_FILTER` if full select has a blank filter name.
                    - `ErrorCode.UNKNOWN_FILTER` if full select names an unregistered filter.
                    - `ErrorCode.NO_STUDENT_SELECTED` if an explicit selection is empty.
                    - `ErrorCode.NOT_FOUND` if an explicit ID is not on the roster.
                    - `ErrorCode.PERSISTENCE_FAILURE` if a student's write failed.
                    - The first error encountered is reported when there are several.
                - status_code (int | None):
                    - 200 on success
                    - 400 on failure
                - data (dict | None): Payload with the following keys (always present):
                    - "changed_count" (int): Records whose flag actually changed.
                    - "errors" (list[str]): Human-readable messages for every error.

        Notes:
            - Request-level errors (missing action, filter, or selection; unknown filter) are
              detected before any record is created or written.
            - One audit line is written when `changed_count` is greater than zero.
        """
        errors: list[str] = []
        error_codes: list[ErrorCode] = []

        def record_error(code: ErrorCode, message: str) -> None:
            error_codes.append(code)
            errors.append(message)

        if released is None:
            record_error(ErrorCode.NO_ACTION_SPECIFIED, MUST_SELECT_AN_ACTION)

        students: list[Student] = []

        if selection.mode is SelectionMode.FULL:
            if not (selection.filter_name or "").strip():
                record_error(ErrorCode.MISSING_FILTER, EXPECTED_FILTER)
            else:
                try:
                    filter_spec = self._registry.resolve_filter(selection.filter_name)
                except UnknownFilterError as e:
                    return Response.fail(
                        detail=str(e),
                        error=ErrorCode.UNKNOWN_FILTER,
                        data={"changed_count": 0, "errors": errors + [str(e)]},
                    )
                students = filter_spec(
                    QueryContext(self._roster, self._form_store, form)
                )

        elif not selection.student_ids:
            record_error(ErrorCode.NO_STUDENT_SELECTED, MUST_SELECT_A_STUDENT)

        else:
            for student_id in selection.student_ids:
                student_response = self._roster.find_student_by_uuid(student_id)
                if student_response.success:
                    students.append(student_response.data["record"])
                else:
                    record_error(ErrorCode.NOT_FOUND, student_response.detail)

        if released is None or (not students and error_codes):
            return Response.fail(
                detail=formatters.format_list_with_and(errors),
                error=error_codes[0],
                data={"changed_count": 0, "errors": errors},
            )

        changed_count = 0

        for student in students:
            try:
                record = self._form_store.upsert_grade_entry_student(form, student.id)
                if self._form_store.set_released(record, released):
                    changed_count += 1

            except PersistenceError as e:
                logger.error(
                    "Failed to set release for student %s on form %s: %s",
                    student.id,
                    form.id,
                    e,
                )
                record_error(
                    ErrorCode.PERSISTENCE_FAILURE,
                    f"Could not update {student.user_name}: {e}",
                )

        if changed_count > 0:
            self._audit_logger.log(
                formatters.format_release_log_message(
                    form.short_identifier, form.id, changed_count, released
                )
            )

        data = {"changed_count": changed_count, "errors": errors}
        action = "released" if released else "unreleased"

        if errors:
            return Response.fail(
                detail=f"Marks {action} for {changed_count} students; {len(errors)} errors occurred.",
                error=error_codes[0],
                data=data,
            )

        return Response.succeed(
            detail=f"Marks {action} for {changed_count} students.",
            data=data,
        )
