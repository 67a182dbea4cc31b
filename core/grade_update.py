# core/grade_update.py

"""
Single-cell grade edits for the grades table.

Each call is its own unit of work: the per-student record and the grade are found or created,
the new value is validated and stored, and the student's total mark is recomputed.
"""

import logging

from core.errors import GradeSaveError, PersistenceError
from core.response import ErrorCode, Response
from models.form_store import FormStore
from models.grade_entry_form import GradeEntryForm
from models.roster import Roster

logger = logging.getLogger(__name__)


class GradeUpdateService:

    def __init__(self, roster: Roster, form_store: FormStore):
        self._roster = roster
        self._form_store = form_store

    def set_grade(
        self, form: GradeEntryForm, student_id: str, item_id: str, raw_value
    ) -> Response:
        """
        Stores one grade value and returns the student's recomputed total mark.

        Args:
            form (GradeEntryForm): The form being edited.
            student_id (str): The roster ID of the student.
            item_id (str): The ID of one of the form's items.
            raw_value (Any): The submitted value; blank or None clears the grade.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if the value was saved.
                    - False if the value failed validation, the student or item is unknown,
                      or the write could not be persisted.
                - detail (str | None): A confirmation, or a description of the failure.
                - error (ErrorCode | str | None):
                    - `ErrorCode.NOT_FOUND` if the student or item does not exist.
                    - `ErrorCode.GRADE_SAVE_FAILED` if the value fails validation.
                    - `ErrorCode.PERSISTENCE_FAILURE` if the write cannot be flushed.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - status_code (int | None):
                    - 200 on success
                    - 404 if the student or item is not found
                    - 400 on other failures
                - data (dict | None): Payload with the following keys:
                    - "saved" (bool): Whether the value was stored.
                    - "total_mark" (float): The student's total for the form after the call.
                    - "grade" (Grade | None): The grade record, when one was resolved.

        Notes:
            - A value that fails validation leaves the previously stored value in place; the
              grade record itself may have been created empty by this call.
            - Writing the same value twice leaves the total unchanged.
        """
        student_response = self._roster.find_student_by_uuid(student_id)

        if not student_response.success:
            return student_response

        if form.find_item(item_id) is None:
            return Response.not_found(
                f"No item with ID '{item_id}' exists on '{form.short_identifier}'."
            )

        grade = None

        try:
            record = self._form_store.upsert_grade_entry_student(form, student_id)
            grade = self._form_store.upsert_grade(record, item_id)
            self._form_store.save_grade(grade, raw_value)

        except GradeSaveError as e:
            return Response.fail(
                detail=f"Grade could not be saved: {e}",
                error=ErrorCode.GRADE_SAVE_FAILED,
                data=self._payload(form, student_id, grade, saved=False),
            )

        except PersistenceError as e:
            logger.error(
                "Failed to persist grade for student %s on form %s: %s",
                student_id,
                form.id,
                e,
            )
            return Response.fail(
                detail=f"Grade could not be persisted: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
                status_code=500,
                data=self._payload(form, student_id, grade, saved=False),
            )

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        else:
            return Response.succeed(
                detail=f"Grade successfully updated to: {grade.value}.",
                data=self._payload(form, student_id, grade, saved=True),
            )

    def _payload(self, form, student_id, grade, saved):
        return {
            "saved": saved,
            "total_mark": self._form_store.calculate_total_mark(form, student_id),
            "grade": grade,
        }
