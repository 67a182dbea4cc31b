# models/grade.py

"""
Represents one numeric grade for a (GradeEntryStudent, GradeEntryItem) pair.

A `Grade` is created empty (value `None`) the first time it is needed and holds a value once
one is entered. Marks above the item's `out_of` are allowed (bonus marks); negative and
non-finite values are not.

Notes:
- Validation is enforced via the `value` setter and `validate_grade_input()`.
- Totals are computed by the form store, not here.
"""

from __future__ import annotations

import math
from typing import Any


class Grade:

    def __init__(
        self,
        id: str,
        grade_entry_student_id: str,
        grade_entry_item_id: str,
        value: float | None = None,
    ):
        self.id = id
        self._grade_entry_student_id = grade_entry_student_id
        self._grade_entry_item_id = grade_entry_item_id
        self._value = value

    # === properties ===

    @property
    def grade_entry_student_id(self) -> str:
        return self._grade_entry_student_id

    @property
    def grade_entry_item_id(self) -> str:
        return self._grade_entry_item_id

    @property
    def value(self) -> float | None:
        return self._value

    @value.setter
    def value(self, value: Any) -> None:
        self._value = Grade.validate_grade_input(value)

    @property
    def is_entered(self) -> bool:
        return self._value is not None

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "grade_entry_student_id": self._grade_entry_student_id,
            "grade_entry_item_id": self._grade_entry_item_id,
            "value": self._value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Grade:
        return cls(
            id=data["id"],
            grade_entry_student_id=data["grade_entry_student_id"],
            grade_entry_item_id=data["grade_entry_item_id"],
            value=data.get("value"),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"Grade({self.id}, {self._grade_entry_student_id}, {self._grade_entry_item_id}, {self._value})"

    def __str__(self) -> str:
        return f"GRADE: id: {self.id}, item id: {self._grade_entry_item_id}, value: {self._value}"

    # === data validators ===

    @staticmethod
    def validate_grade_input(value: Any) -> float | None:
        """
        Validates and normalizes input for a `Grade` value.

        Accepts any input, and then:
            - Maps `None` and blank strings to `None` (no grade entered).
            - Casts to float.
            - Ensures the number is finite.
            - Ensures it is non-negative.

        Args:
            value (Any): The input value to validate.

        Returns:
            The normalized grade value (float), or None.

        Raises:
            TypeError: If the input cannot be cast to float.
            ValueError: If the input is non-finite or less than zero.
        """
        if value is None or (isinstance(value, str) and not value.strip()):
            return None

        if isinstance(value, bool):
            raise TypeError("Invalid input. Grade must be a number.")

        try:
            value = float(value)

        except (TypeError, ValueError):
            raise TypeError("Invalid input. Grade must be a number.") from None

        if not math.isfinite(value):
            raise ValueError("Invalid input. Grade must be a finite number.")

        if value < 0:
            raise ValueError("Invalid input. Grade cannot be less than zero.")

        return value
