# core/response.py

"""
The `Response` envelope returned by every public store lookup and service operation, and the
`ErrorCode` values it can carry.

Operations never let domain exceptions escape; they report them here instead. Batch operations
(release, CSV import) may return `success=False` together with a populated `data` payload, since
part of the batch can still have been applied.
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    # === lookups ===
    NOT_FOUND = "NOT_FOUND"
    UNKNOWN_FILTER = "UNKNOWN_FILTER"

    # === validation ===
    # a required argument or attribute is missing
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"

    # input structure is malformed (e.g., an unreadable CSV header)
    INVALID_INPUT = "INVALID_INPUT"

    # a field value is out of bounds or incorrectly formatted
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"

    # valid in isolation, but breaks a uniqueness rule
    VALIDATION_FAILED = "VALIDATION_FAILED"

    # --- release requests ---
    MISSING_FILTER = "MISSING_FILTER"
    NO_STUDENT_SELECTED = "NO_STUDENT_SELECTED"
    NO_ACTION_SPECIFIED = "NO_ACTION_SPECIFIED"

    # --- grade values ---
    GRADE_SAVE_FAILED = "GRADE_SAVE_FAILED"
    CSV_ROW_INVALID = "CSV_ROW_INVALID"

    # === faults ===
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class Response:
    """
    Attributes:
        success (bool): Whether the operation did what was asked.
        detail (str | None): A human-readable summary.
        error (ErrorCode | str | None): The machine-readable failure reason.
        status_code (int | None): The HTTP status a web layer should answer with.
        data (dict): The operation's payload; an empty dict when there is none.
    """

    def __init__(
        self,
        success: bool,
        detail: str | None = None,
        error: ErrorCode | str | None = None,
        status_code: int | None = None,
        data: dict | None = None,
    ):
        self._success = success
        self._detail = detail
        self._error = error
        self._status_code = status_code
        self._data = data if data is not None else {}

    # === properties ===

    @property
    def success(self) -> bool:
        return self._success

    @property
    def detail(self) -> str | None:
        return self._detail

    @property
    def error(self) -> ErrorCode | str | None:
        return self._error

    @property
    def status_code(self) -> int | None:
        return self._status_code

    @property
    def data(self) -> dict:
        return self._data

    @property
    def error_name(self) -> str | None:
        return self._error.value if isinstance(self._error, ErrorCode) else self._error

    # === constructors ===

    @classmethod
    def succeed(
        cls,
        detail: str | None = None,
        data: dict | None = None,
        status_code: int = 200,
    ) -> Response:
        return cls(True, detail=detail, status_code=status_code, data=data)

    @classmethod
    def fail(
        cls,
        detail: str | None = None,
        error: ErrorCode | str | None = None,
        status_code: int = 400,
        data: dict | None = None,
    ) -> Response:
        return cls(False, detail=detail, error=error, status_code=status_code, data=data)

    @classmethod
    def not_found(cls, detail: str) -> Response:
        return cls.fail(detail=detail, error=ErrorCode.NOT_FOUND, status_code=404)

    # === dunder methods ===

    def __repr__(self) -> str:
        return f"Response({self._success}, {self.error_name}, {self._status_code}, {self._detail!r})"

    def __str__(self) -> str:
        if self._success:
            return f"Success: {self._detail or ''}"
        return f"Error: {self.error_name or ''}"
