# models/grade_entry_item.py

"""
The GradeEntryItem model represents one gradable column (criterion) of a grade entry form.
"""

from __future__ import annotations

import math
from typing import Any

# CSV grade reports use these as identity column headers
RESERVED_NAMES = ("user_name", "last_name", "first_name")


class GradeEntryItem:

    def __init__(
        self,
        id: str,
        name: str,
        out_of: float,
        position: int = 0,
    ):
        self._id = id
        # name and out_of use setter methods for validation
        self.name = name
        self.out_of = out_of
        self._position = position

    @property
    def id(self) -> str:
        return self._id

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, name: str) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Invalid input. Item name cannot be blank.")
        if name.strip().lower() in RESERVED_NAMES:
            raise ValueError(
                f"Invalid input. '{name.strip()}' is reserved for a CSV identity column."
            )
        self._name = name.strip()

    @property
    def out_of(self) -> float:
        return self._out_of

    @out_of.setter
    def out_of(self, out_of: Any) -> None:
        self._out_of = GradeEntryItem.validate_out_of_input(out_of)

    @property
    def position(self) -> int:
        return self._position

    @position.setter
    def position(self, position: int) -> None:
        self._position = position

    def to_dict(self) -> dict:
        return {
            "id": self._id,
            "name": self._name,
            "out_of": self._out_of,
            "position": self._position,
        }

    @classmethod
    def from_dict(cls, data: dict) -> GradeEntryItem:
        return cls(
            id=data["id"],
            name=data["name"],
            out_of=data["out_of"],
            position=data.get("position", 0),
        )

    def __repr__(self) -> str:
        return f"GradeEntryItem({self._id}, {self._name}, {self._out_of}, {self._position})"

    def __str__(self) -> str:
        return f"ITEM: name: {self._name}, out of: {self._out_of}, id: {self._id}"

    @staticmethod
    def validate_out_of_input(out_of: Any) -> float:
        try:
            out_of = float(out_of)

        except (TypeError, ValueError):
            raise TypeError("Invalid input. Out of must be a number.") from None

        if not math.isfinite(out_of):
            raise ValueError("Invalid input. Out of must be a finite number.")

        if out_of < 0:
            raise ValueError("Invalid input. Out of cannot be less than zero.")

        return out_of
