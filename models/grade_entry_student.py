# models/grade_entry_student.py

"""
Represents the per-(form, student) record of a grade entry form.

Holds the release flag that controls whether the student can see their grades. The grades
themselves live in the form store, keyed by this record's ID and the item ID.
"""

from __future__ import annotations


class GradeEntryStudent:

    def __init__(
        self,
        id: str,
        grade_entry_form_id: str,
        student_id: str,
        released: bool = False,
    ):
        self._id = id
        self._grade_entry_form_id = grade_entry_form_id
        self._student_id = student_id
        self._is_released = released

    # === properties ===

    @property
    def id(self) -> str:
        return self._id

    @property
    def grade_entry_form_id(self) -> str:
        return self._grade_entry_form_id

    @property
    def student_id(self) -> str:
        return self._student_id

    @property
    def is_released(self) -> bool:
        return self._is_released

    @is_released.setter
    def is_released(self, released: bool) -> None:
        self._is_released = bool(released)

    @property
    def release_status(self) -> str:
        return "'RELEASED'" if self._is_released else "'NOT RELEASED'"

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "id": self._id,
            "grade_entry_form_id": self._grade_entry_form_id,
            "student_id": self._student_id,
            "released": self._is_released,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GradeEntryStudent:
        return cls(
            id=data["id"],
            grade_entry_form_id=data["grade_entry_form_id"],
            student_id=data["student_id"],
            released=data.get("released", False),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"GradeEntryStudent({self._id}, {self._grade_entry_form_id}, {self._student_id}, {self._is_released})"

    def __str__(self) -> str:
        return f"GRADE ENTRY STUDENT: form id: {self._grade_entry_form_id}, student id: {self._student_id}, {self.release_status}"
