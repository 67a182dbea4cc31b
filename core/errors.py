# core/errors.py

"""
Exception types raised by the stores, the registry, and the CSV parser.

Service-level methods catch these and translate them into `Response` objects carrying
the matching `ErrorCode`; they never escape a public service boundary.
"""


class UnknownFilterError(KeyError):
    """Raised when a filter name is not present in the registry."""

    def __init__(self, name: str):
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Unknown filter: '{self.name}'."


class GradeSaveError(ValueError):
    """Raised by the form store when a grade value fails validation."""


class CsvRowError(ValueError):
    """Raised by the CSV parser for a single malformed or invalid row."""


class PersistenceError(RuntimeError):
    """Raised when the form store cannot apply or flush a write."""


class DuplicateRecordError(ValueError):
    """Raised when a record would violate a uniqueness rule (e.g., a repeated short identifier)."""
