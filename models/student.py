# models/student.py

"""
Represents a student on the course roster.

Stores core identifying information such as user name, first and last name, and a unique ID.
A hidden student stays on the roster but is excluded from the "Show All" grades table filter
and from CSV grade reports.

Includes functionality for:
- Validating and normalizing user name input
- Toggling the hidden flag
- Serializing to and from JSON-compatible dictionaries
"""

from __future__ import annotations

import re


class Student:

    def __init__(
        self,
        id: str,
        user_name: str,
        first_name: str,
        last_name: str,
        hidden: bool = False,
    ):
        self._id: str = id
        # user_name uses setter method for validation
        self.user_name = user_name
        self._first_name: str = first_name
        self._last_name: str = last_name
        self._is_hidden: bool = hidden

    # === properties ===

    @property
    def id(self) -> str:
        return self._id

    @property
    def user_name(self) -> str:
        return self._user_name

    @user_name.setter
    def user_name(self, user_name: str) -> None:
        self._user_name = Student.validate_user_name_input(user_name)

    @property
    def first_name(self) -> str:
        return self._first_name

    @first_name.setter
    def first_name(self, first_name: str) -> None:
        self._first_name = first_name

    @property
    def last_name(self) -> str:
        return self._last_name

    @last_name.setter
    def last_name(self, last_name: str) -> None:
        self._last_name = last_name

    @property
    def full_name(self) -> str:
        return f"{self._first_name} {self._last_name}"

    @property
    def is_hidden(self) -> bool:
        return self._is_hidden

    # === persistence and import ===

    def to_dict(self) -> dict:
        return {
            "id": self._id,
            "user_name": self._user_name,
            "first_name": self._first_name,
            "last_name": self._last_name,
            "hidden": self._is_hidden,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Student:
        return cls(
            id=data["id"],
            user_name=data["user_name"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            hidden=data.get("hidden", False),
        )

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"Student({self._id}, {self._user_name}, {self._first_name}, {self._last_name}, {self._is_hidden})"

    def __str__(self) -> str:
        return f"STUDENT: name: {self.full_name}, user name: {self._user_name}, id: {self._id}"

    # === data validators ===

    @staticmethod
    def validate_user_name_input(user_name: str) -> str:
        """
        Validates and normalizes a Student user name.

        Normalizes the input by stripping surrounding whitespace. Ensures the user name:
            - Is not empty
            - Contains no internal whitespace or commas (it is used as the CSV row key)

        Args:
            user_name: The input user name string to validate.

        Returns:
            The stripped user name if valid.

        Raises:
            ValueError: If the user name does not conform to the expected format.
        """
        user_name = user_name.strip()
        if not re.fullmatch(r"[^\s,]+", user_name):
            raise ValueError(
                "Invalid input. User name must be non-empty and contain no whitespace or commas."
            )
        return user_name
