# models/grade_entry_form.py

"""
The GradeEntryForm model represents one marks spreadsheet (e.g., a midterm) and its ordered items.

Per-student records and grades are held by the form store; the form itself owns only its
metadata and its `GradeEntryItem` columns.

Provides `apply_attributes()` for the administrative create/edit flow. All incoming values are
validated against staged copies before anything on the form is mutated, so a rejected property
map leaves the form exactly as it was.
"""

from __future__ import annotations

import datetime
from typing import Any

from core.utils import generate_uuid
from models.grade_entry_item import GradeEntryItem

EDITABLE_FIELDS = ("short_identifier", "description", "message", "date")


class GradeEntryForm:

    def __init__(
        self,
        id: str,
        short_identifier: str,
        description: str = "",
        message: str = "",
        date: datetime.date | None = None,
        items: list[GradeEntryItem] | None = None,
    ):
        self._id = id
        # short_identifier uses setter method for validation
        self.short_identifier = short_identifier
        self._description = description
        self._message = message
        self._date = date
        self._items: dict[str, GradeEntryItem] = {}
        for item in items or []:
            self._items[item.id] = item

    # === properties ===

    @property
    def id(self) -> str:
        return self._id

    @property
    def short_identifier(self) -> str:
        return self._short_identifier

    @short_identifier.setter
    def short_identifier(self, short_identifier: str) -> None:
        self._short_identifier = GradeEntryForm.validate_short_identifier_input(
            short_identifier
        )

    @property
    def description(self) -> str:
        return self._description

    @property
    def message(self) -> str:
        return self._message

    @property
    def date(self) -> datetime.date | None:
        return self._date

    @property
    def items(self) -> list[GradeEntryItem]:
        """Items in creation order."""
        return sorted(self._items.values(), key=lambda item: item.position)

    @property
    def out_of_total(self) -> float:
        return sum(item.out_of for item in self._items.values())

    # === data accessors ===

    def find_item(self, item_id: str) -> GradeEntryItem | None:
        return self._items.get(item_id)

    def find_item_by_name(self, name: str) -> GradeEntryItem | None:
        normalized = name.strip().lower()
        for item in self._items.values():
            if item.name.lower() == normalized:
                return item
        return None

    # === data manipulators ===

    def add_item(self, name: str, out_of: float) -> GradeEntryItem:
        if self.find_item_by_name(name) is not None:
            raise ValueError(f"An item with the name '{name}' already exists.")

        item = GradeEntryItem(generate_uuid(), name, out_of, self._next_position())
        self._items[item.id] = item

        return item

    def apply_attributes(self, attributes: dict[str, Any]) -> None:
        """
        Validates and applies a property map to this form.

        Args:
            attributes (dict[str, Any]): Any of "short_identifier", "description", "message", "date"
                (ISO string, `datetime.date`, or None), and "grade_entry_items" (a list of dicts with
                "name", "out_of", and optionally the "id" of an existing item to edit).

        Raises:
            ValueError: If any value is invalid, an item ID is unknown, or item names collide.
            TypeError: If a numeric field is not a number.

        Notes:
            - Items not mentioned in "grade_entry_items" are kept unchanged; items are never deleted here.
            - Nothing is mutated unless every value passes validation.
        """
        unknown = set(attributes) - set(EDITABLE_FIELDS) - {"grade_entry_items"}
        if unknown:
            raise ValueError(f"Unrecognized form attributes: {sorted(unknown)}.")

        short_identifier = GradeEntryForm.validate_short_identifier_input(
            attributes.get("short_identifier", self._short_identifier)
        )
        date = GradeEntryForm.validate_date_input(attributes.get("date", self._date))
        staged_items = self._stage_items(attributes.get("grade_entry_items", []))

        self._short_identifier = short_identifier
        self._description = str(attributes.get("description", self._description))
        self._message = str(attributes.get("message", self._message))
        self._date = date
        self._items = staged_items

    def _stage_items(self, item_data: list[dict]) -> dict[str, GradeEntryItem]:
        staged = {
            item.id: GradeEntryItem.from_dict(item.to_dict())
            for item in self._items.values()
        }
        next_position = self._next_position()

        for data in item_data:
            item_id = data.get("id")
            if item_id:
                if item_id not in staged:
                    raise ValueError(f"No item with ID '{item_id}' exists on this form.")
                item = staged[item_id]
                item.name = data.get("name", item.name)
                item.out_of = data.get("out_of", item.out_of)
            else:
                item = GradeEntryItem(
                    generate_uuid(), data.get("name", ""), data.get("out_of"), next_position
                )
                next_position += 1
                staged[item.id] = item

        seen = set()
        for item in staged.values():
            normalized = item.name.lower()
            if normalized in seen:
                raise ValueError(f"An item with the name '{item.name}' already exists.")
            seen.add(normalized)

        return staged

    def _next_position(self) -> int:
        return max((item.position for item in self._items.values()), default=-1) + 1

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "id": self._id,
            "short_identifier": self._short_identifier,
            "description": self._description,
            "message": self._message,
            "date": self._date.isoformat() if self._date else None,
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: dict) -> GradeEntryForm:
        return cls(
            id=data["id"],
            short_identifier=data["short_identifier"],
            description=data.get("description", ""),
            message=data.get("message", ""),
            date=GradeEntryForm.validate_date_input(data.get("date")),
            items=[GradeEntryItem.from_dict(item) for item in data.get("items", [])],
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"GradeEntryForm({self._id}, {self._short_identifier}, {len(self._items)} items)"

    def __str__(self) -> str:
        return f"GRADE ENTRY FORM: {self._short_identifier}, id: {self._id}"

    # === data validators ===

    @staticmethod
    def validate_short_identifier_input(short_identifier: Any) -> str:
        if not isinstance(short_identifier, str) or not short_identifier.strip():
            raise ValueError("Invalid input. Short identifier cannot be blank.")
        return short_identifier.strip()

    @staticmethod
    def validate_date_input(date: Any) -> datetime.date | None:
        if date is None or date == "":
            return None
        if isinstance(date, datetime.date):
            return date
        try:
            return datetime.date.fromisoformat(str(date))
        except ValueError:
            raise ValueError(
                f"Invalid input. Date must be in YYYY-MM-DD format, got '{date}'."
            ) from None
