# models/roster.py

"""
The Roster is the source of truth for `Student` records.

Students are stored in a dictionary keyed by ID and can be written to and read from
`students.json` in a save directory.
"""

from __future__ import annotations

import json
import os
from typing import Callable

from core.response import ErrorCode, Response
from models.student import Student

STUDENTS_FILE = "students.json"


class Roster:

    def __init__(self, students: list[Student] | None = None):
        self._students: dict[str, Student] = {}
        for student in students or []:
            response = self.add_student(student)
            if not response.success:
                raise ValueError(response.detail)

    # === properties ===

    @property
    def students(self) -> dict[str, Student]:
        return self._students

    # === persistence and import ===

    def save(self, save_dir_path: str) -> Response:
        """
        Serializes and saves the roster to `students.json` in the given directory.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if the file was written.
                - detail (str | None): A confirmation, or a description of the failure.
                - error (ErrorCode | str | None):
                    - `ErrorCode.PERSISTENCE_FAILURE` if OSError raised.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - data (dict | None): Always None.
        """
        try:
            with open(os.path.join(save_dir_path, STUDENTS_FILE), "w") as f:
                json.dump(
                    [s.to_dict() for s in self._students.values()],
                    f,
                    indent=2,
                    sort_keys=True,
                )

        except OSError as e:
            return Response.fail(
                detail=f"Failed to write data to disk: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
            )

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
            )

        else:
            return Response.succeed(detail="Roster successfully saved to disk.")

    @classmethod
    def load(cls, save_dir_path: str) -> Response:
        """
        Loads a roster from `students.json` in the given directory.

        Returns:
            Response: A structured response with the following contract:
                - success (bool): True if the roster was loaded.
                - error (ErrorCode | str | None):
                    - `ErrorCode.INVALID_INPUT` if the file is not valid JSON.
                    - `ErrorCode.INVALID_FIELD_VALUE` if the file is not a list or a record fails validation.
                    - `ErrorCode.MISSING_REQUIRED_FIELD` if a record lacks a required key.
                    - `ErrorCode.PERSISTENCE_FAILURE` if the file cannot be read.
                - data (dict | None):
                    - On success, "roster" (Roster): The loaded roster.
        """
        try:
            with open(os.path.join(save_dir_path, STUDENTS_FILE), "r") as f:
                data = json.load(f)

            if not isinstance(data, list):
                raise ValueError(f"Expected {STUDENTS_FILE} to contain a list.")

            roster = cls([Student.from_dict(record) for record in data])

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

        except ValueError as e:
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
            return Response.succeed(data={"roster": roster})

    # === data accessors ===

    def get_students(
        self, predicate: Callable[[Student], bool] | None = None
    ) -> list[Student]:
        if predicate:
            return list(filter(predicate, self._students.values()))
        return list(self._students.values())

    def find_student_by_uuid(self, uuid: str) -> Response:
        """
        Finds a student by ID.

        Returns:
            Response: On success, data["record"] is the `Student`; on failure `ErrorCode.NOT_FOUND` (404).
        """
        student = self._students.get(uuid)

        if student is None:
            return Response.not_found(
                f"No student with ID '{uuid}' is on the roster."
            )

        return Response.succeed(data={"record": student})

    def find_student_by_user_name(self, user_name: str) -> Response:
        normalized = self._normalize(user_name)

        for student in self._students.values():
            if self._normalize(student.user_name) == normalized:
                return Response.succeed(data={"record": student})

        return Response.not_found(
            f"No student with user name '{user_name.strip()}' is on the roster."
        )

    # === data manipulators ===

    def add_student(self, student: Student) -> Response:
        try:
            self.require_unique_student_id(student.id)
            self.require_unique_user_name(student.user_name)

        except ValueError as e:
            return Response.fail(
                detail=f"Unique record validation failed: {e}",
                error=ErrorCode.VALIDATION_FAILED,
            )

        self._students[student.id] = student

        return Response.succeed(
            detail="Student successfully added to the roster.",
            data={"record": student},
        )

    # === data validators ===

    def require_unique_student_id(self, student_id: str) -> None:
        if student_id in self._students:
            raise ValueError(f"A student with the ID '{student_id}' already exists.")

    def require_unique_user_name(self, user_name: str) -> None:
        normalized = self._normalize(user_name)
        if any(self._normalize(s.user_name) == normalized for s in self._students.values()):
            raise ValueError(f"A student with the user name '{user_name}' already exists.")

    # === helper methods ===

    def _normalize(self, input: str) -> str:
        return input.strip().lower()
