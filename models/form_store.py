# models/form_store.py

"""
The FormStore is the source of truth for grade entry forms and their per-student records.

Records are kept in keyed dictionaries:
    - forms by form ID
    - `GradeEntryStudent` records by (form ID, student ID)
    - `Grade` records by (grade entry student ID, item ID)

Per-student records and grades are created on demand through the explicit `upsert_*` methods;
at most one record ever exists per key, and this store never deletes them.

Writes can be grouped with `transaction()`, a context manager that snapshots all records on entry
and restores the snapshot if the block raises. When a save directory is configured, data is
flushed to JSON once per outermost transaction, or after each individual write made outside a
transaction.

Notes:
    - Nested `transaction()` blocks join the outermost one; only the outermost block commits or rolls back.
    - Rolling back replaces record objects with restored copies, so records fetched before a
      rolled-back transaction are detached and must be looked up again.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from typing import Any, Iterator

from core.errors import DuplicateRecordError, GradeSaveError, PersistenceError
from core.response import ErrorCode, Response
from core.utils import generate_uuid
from models.grade import Grade
from models.grade_entry_form import GradeEntryForm
from models.grade_entry_student import GradeEntryStudent

logger = logging.getLogger(__name__)

FORMS_FILE = "grade_entry_forms.json"
GRADE_ENTRY_STUDENTS_FILE = "grade_entry_students.json"
GRADES_FILE = "grades.json"


class FormStore:

    def __init__(self, save_dir_path: str | None = None):
        self._forms: dict[str, GradeEntryForm] = {}
        self._grade_entry_students: dict[tuple[str, str], GradeEntryStudent] = {}
        self._grades: dict[tuple[str, str], Grade] = {}
        self._save_dir_path = save_dir_path
        self._transaction_depth = 0

    # === properties ===

    @property
    def forms(self) -> dict[str, GradeEntryForm]:
        return self._forms

    @property
    def save_dir_path(self) -> str | None:
        return self._save_dir_path

    @property
    def in_transaction(self) -> bool:
        return self._transaction_depth > 0

    # === transactions ===

    @contextmanager
    def transaction(self) -> Iterator[FormStore]:
        """
        Runs the enclosed block as one atomic unit.

        On normal exit of the outermost block, the store is flushed to disk (if configured).
        If the block raises, or the flush fails with `PersistenceError`, every record is restored
        to its state on entry and the exception propagates.
        """
        if self._transaction_depth:
            self._transaction_depth += 1
            try:
                yield self
            finally:
                self._transaction_depth -= 1
            return

        snapshot = self._snapshot()
        self._transaction_depth = 1
        try:
            yield self
            self._flush()

        except BaseException:
            self._restore(snapshot)
            logger.warning("Form store transaction rolled back.")
            raise

        finally:
            self._transaction_depth = 0

    def _snapshot(self) -> dict[str, list[dict]]:
        return {
            "forms": [f.to_dict() for f in self._forms.values()],
            "grade_entry_students": [
                g.to_dict() for g in self._grade_entry_students.values()
            ],
            "grades": [g.to_dict() for g in self._grades.values()],
        }

    def _restore(self, snapshot: dict[str, list[dict]]) -> None:
        self._forms = {}
        self._grade_entry_students = {}
        self._grades = {}
        self._import_snapshot(snapshot)

    def _import_snapshot(self, snapshot: dict[str, list[Any]]) -> None:
        for data in snapshot["forms"]:
            form = GradeEntryForm.from_dict(data)
            self._forms[form.id] = form

        for data in snapshot["grade_entry_students"]:
            record = GradeEntryStudent.from_dict(data)
            self._grade_entry_students[
                (record.grade_entry_form_id, record.student_id)
            ] = record

        for data in snapshot["grades"]:
            grade = Grade.from_dict(data)
            self._grades[(grade.grade_entry_student_id, grade.grade_entry_item_id)] = grade

    def _flush(self) -> None:
        if self._save_dir_path is None:
            return

        save_response = self.save()

        if not save_response.success:
            raise PersistenceError(save_response.detail)

    def _flush_if_idle(self) -> None:
        if not self._transaction_depth:
            self._flush()

    # === persistence and import ===

    def save(self, save_dir_path: str | None = None) -> Response:
        """
        Serializes and saves all forms, per-student records, and grades to disk in JSON format.

        Args:
            save_dir_path (str | None): Target directory; defaults to the store's configured directory.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if all files were written.
                - detail (str | None): A confirmation, or a description of the failure.
                - error (ErrorCode | str | None):
                    - `ErrorCode.MISSING_REQUIRED_FIELD` if no directory is available.
                    - `ErrorCode.PERSISTENCE_FAILURE` if OSError raised.
                    - `ErrorCode.INVALID_FIELD_VALUE` if a record is not JSON serializable.
                - data (dict | None): Always None.
        """
        save_dir_path = save_dir_path or self._save_dir_path

        if save_dir_path is None:
            return Response.fail(
                detail="No save directory configured for the form store.",
                error=ErrorCode.MISSING_REQUIRED_FIELD,
            )

        def write_json(filename: str, data: list) -> None:
            with open(os.path.join(save_dir_path, filename), "w") as f:
                json.dump(data, f, indent=2, sort_keys=True)

        snapshot = self._snapshot()

        try:
            write_json(FORMS_FILE, snapshot["forms"])
            write_json(GRADE_ENTRY_STUDENTS_FILE, snapshot["grade_entry_students"])
            write_json(GRADES_FILE, snapshot["grades"])

        except TypeError as e:
            return Response.fail(
                detail=f"Object not JSON serializable: {e}",
                error=ErrorCode.INVALID_FIELD_VALUE,
            )

        except OSError as e:
            logger.error("Failed to write form store to %s: %s", save_dir_path, e)
            return Response.fail(
                detail=f"Failed to write data to disk: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
            )

        else:
            return Response.succeed(detail="Form store successfully saved to disk.")

    @classmethod
    def load(cls, save_dir_path: str) -> Response:
        """
        Loads previously serialized forms, per-student records, and grades from disk.

        Returns:
            Response: On success, data["store"] is a `FormStore` bound to `save_dir_path`.
                `ErrorCode.INVALID_INPUT` for JSON errors, `ErrorCode.INVALID_FIELD_VALUE` or
                `ErrorCode.MISSING_REQUIRED_FIELD` for bad records, `ErrorCode.PERSISTENCE_FAILURE`
                for unreadable files.
        """

        def read_json(filename: str) -> list:
            with open(os.path.join(save_dir_path, filename), "r") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"Expected {filename} to contain a list.")
            return data

        try:
            store = cls(save_dir_path)
            store._import_snapshot(
                {
                    "forms": read_json(FORMS_FILE),
                    "grade_entry_students": read_json(GRADE_ENTRY_STUDENTS_FILE),
                    "grades": read_json(GRADES_FILE),
                }
            )

        except json.JSONDecodeError as e:
            return Response.fail(
                detail=f"Failed to parse JSON data: {e}",
                error=ErrorCode.INVALID_INPUT,
            )

        except KeyError as e:
            return Response.fail(
                detail=f"Missing required field: {e}",
                error=ErrorCode.MISSING_REQUIRED_FIELD,
            )

        except (TypeError, ValueError) as e:
            return Response.fail(
                detail=f"Invalid field value: {e}",
                error=ErrorCode.INVALID_FIELD_VALUE,
            )

        except OSError as e:
            return Response.fail(
                detail=f"Failed to read data from disk: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
            )

        else:
            return Response.succeed(data={"store": store})

    # === data accessors ===

    # --- forms ---

    def find_form_by_uuid(self, uuid: str) -> Response:
        form = self._forms.get(uuid)

        if form is None:
            return Response.not_found(
                f"No grade entry form with ID '{uuid}' exists."
            )

        return Response.succeed(data={"record": form})

    # --- per-student records ---

    def grade_entry_students_for(
        self, form: GradeEntryForm
    ) -> dict[str, GradeEntryStudent]:
        """Returns the form's per-student records keyed by student ID."""
        return {
            student_id: record
            for (form_id, student_id), record in self._grade_entry_students.items()
            if form_id == form.id
        }

    def find_grade_entry_student(
        self, form: GradeEntryForm, student_id: str
    ) -> GradeEntryStudent | None:
        return self._grade_entry_students.get((form.id, student_id))

    # --- grades ---

    def grades_for(self, grade_entry_student: GradeEntryStudent) -> dict[str, Grade]:
        """Returns the record's grades keyed by item ID."""
        return {
            item_id: grade
            for (record_id, item_id), grade in self._grades.items()
            if record_id == grade_entry_student.id
        }

    def find_grade(
        self, grade_entry_student: GradeEntryStudent, item_id: str
    ) -> Grade | None:
        return self._grades.get((grade_entry_student.id, item_id))

    def calculate_total_mark(self, form: GradeEntryForm, student_id: str) -> float:
        """
        Sums a student's entered grades over the form's items.

        Items without a grade, or with an empty grade, contribute zero.
        """
        record = self.find_grade_entry_student(form, student_id)
        if record is None:
            return 0.0

        total = 0.0
        for item in form.items:
            grade = self.find_grade(record, item.id)
            if grade is not None and grade.value is not None:
                total += grade.value

        return total

    # === data manipulators ===

    # --- forms ---

    def create_form(self, attributes: dict[str, Any]) -> Response:
        """
        Creates a new `GradeEntryForm` from a property map inside a transaction.

        Args:
            attributes (dict[str, Any]): See `GradeEntryForm.apply_attributes()`; "short_identifier" is required.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if the form was validated, stored, and flushed.
                - detail (str | None): A confirmation, or a description of the failure.
                - error (ErrorCode | str | None):
                    - `ErrorCode.INVALID_FIELD_VALUE` if a value fails validation.
                    - `ErrorCode.VALIDATION_FAILED` if the short identifier is already in use.
                    - `ErrorCode.PERSISTENCE_FAILURE` if the flush fails.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - data (dict | None):
                    - On success, "record" (GradeEntryForm): The new form.

        Notes:
            - On any failure no form is added.
        """
        try:
            with self.transaction():
                form = GradeEntryForm(
                    generate_uuid(), attributes.get("short_identifier", "")
                )
                form.apply_attributes(attributes)
                self.require_unique_short_identifier(form.short_identifier)
                self._forms[form.id] = form

        except PersistenceError as e:
            return Response.fail(
                detail=f"Failed to persist grade entry form: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
                status_code=500,
            )

        except DuplicateRecordError as e:
            return Response.fail(
                detail=f"Unique record validation failed: {e}",
                error=ErrorCode.VALIDATION_FAILED,
            )

        except (TypeError, ValueError) as e:
            return Response.fail(
                detail=f"Invalid field value: {e}",
                error=ErrorCode.INVALID_FIELD_VALUE,
            )

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        else:
            return Response.succeed(
                detail=f"Grade entry form '{form.short_identifier}' successfully created.",
                data={"record": self._forms[form.id]},
            )

    def update_form(self, form_id: str, attributes: dict[str, Any]) -> Response:
        """
        Applies a property map to an existing form inside a transaction.

        Returns:
            Response: Same contract as `create_form()`, plus `ErrorCode.NOT_FOUND` (404) for an unknown form.

        Notes:
            - On any failure the stored form keeps all of its previous properties and items.
        """
        form_response = self.find_form_by_uuid(form_id)

        if not form_response.success:
            return form_response

        try:
            with self.transaction():
                form = self._forms[form_id]
                if "short_identifier" in attributes:
                    self.require_unique_short_identifier(
                        GradeEntryForm.validate_short_identifier_input(
                            attributes["short_identifier"]
                        ),
                        exclude_id=form_id,
                    )
                form.apply_attributes(attributes)

        except PersistenceError as e:
            return Response.fail(
                detail=f"Failed to persist grade entry form: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
                status_code=500,
            )

        except DuplicateRecordError as e:
            return Response.fail(
                detail=f"Unique record validation failed: {e}",
                error=ErrorCode.VALIDATION_FAILED,
            )

        except (TypeError, ValueError) as e:
            return Response.fail(
                detail=f"Invalid field value: {e}",
                error=ErrorCode.INVALID_FIELD_VALUE,
            )

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        else:
            return Response.succeed(
                detail=f"Grade entry form '{form.short_identifier}' successfully updated.",
                data={"record": self._forms[form_id]},
            )

    # --- per-student records ---

    def upsert_grade_entry_student(
        self, form: GradeEntryForm, student_id: str
    ) -> GradeEntryStudent:
        """Returns the (form, student) record, creating an unreleased one if none exists."""
        key = (form.id, student_id)
        record = self._grade_entry_students.get(key)

        if record is None:
            record = GradeEntryStudent(generate_uuid(), form.id, student_id)
            self._grade_entry_students[key] = record

        return record

    def set_released(self, grade_entry_student: GradeEntryStudent, released: bool) -> bool:
        """
        Sets the release flag on a per-student record.

        Returns:
            True if the flag changed value, False if it already held `released`.

        Raises:
            PersistenceError: If the write cannot be flushed; the flag is reverted first.
        """
        previous = grade_entry_student.is_released

        if previous == released:
            return False

        grade_entry_student.is_released = released

        try:
            self._flush_if_idle()
        except PersistenceError:
            grade_entry_student.is_released = previous
            raise

        return True

    # --- grades ---

    def upsert_grade(self, grade_entry_student: GradeEntryStudent, item_id: str) -> Grade:
        """
        Returns the grade for (record, item), creating an empty one if none exists.

        Raises:
            KeyError: If the item does not belong to the record's form.
        """
        form = self._forms.get(grade_entry_student.grade_entry_form_id)

        if form is None or form.find_item(item_id) is None:
            raise KeyError(f"No item with ID '{item_id}' exists on this form.")

        key = (grade_entry_student.id, item_id)
        grade = self._grades.get(key)

        if grade is None:
            grade = Grade(generate_uuid(), grade_entry_student.id, item_id)
            self._grades[key] = grade

        return grade

    def save_grade(self, grade: Grade, value: Any) -> None:
        """
        Validates and stores a grade value.

        Raises:
            GradeSaveError: If the value fails validation; the stored value is unchanged.
            PersistenceError: If the write cannot be flushed; the stored value is reverted first.
        """
        previous = grade.value

        try:
            grade.value = value
        except (TypeError, ValueError) as e:
            raise GradeSaveError(str(e)) from e

        try:
            self._flush_if_idle()
        except PersistenceError:
            grade.value = previous
            raise

    # === data validators ===

    def require_unique_short_identifier(
        self, short_identifier: str, exclude_id: str | None = None
    ) -> None:
        normalized = self._normalize(short_identifier)
        if any(
            self._normalize(f.short_identifier) == normalized and f.id != exclude_id
            for f in self._forms.values()
        ):
            raise DuplicateRecordError(
                f"A grade entry form with the short identifier '{short_identifier}' already exists."
            )

    # === helper methods ===

    def _normalize(self, input: str) -> str:
        return input.strip().lower()
