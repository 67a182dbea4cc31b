# core/filter_sort.py

"""
Typed registry of the filters and sorts offered by the grades table.

Filters and sorts are identified by enum members and map to plain module-level functions:
    - a filter takes a `QueryContext` and returns the base list of eligible `Student` records
    - a sort is a three-way comparator over two student-like records (anything with `last_name`),
      paired with a key function whose value drives the alphabetical page index

Resolving an unknown filter raises `UnknownFilterError`. Resolving an unknown or blank sort falls
back to `SortName.LAST_NAME`.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable

from core import config
from core.errors import UnknownFilterError
from models.form_store import FormStore
from models.grade_entry_form import GradeEntryForm
from models.roster import Roster
from models.student import Student

logger = logging.getLogger(__name__)


class FilterName(str, Enum):
    NONE = "none"


class SortName(str, Enum):
    LAST_NAME = "last_name"


class QueryContext:
    """The data a filter or sort may join against: the roster, the form store, and the active form."""

    def __init__(self, roster: Roster, form_store: FormStore, form: GradeEntryForm):
        self.roster = roster
        self.form_store = form_store
        self.form = form


class FilterSpec:

    def __init__(self, label: str, fn: Callable[[QueryContext], list[Student]]):
        self.label = label
        self.fn = fn

    def __call__(self, context: QueryContext) -> list[Student]:
        return self.fn(context)


class SortSpec:

    def __init__(self, comparator: Callable[[Any, Any], int], key: Callable[[Any], str]):
        self.comparator = comparator
        self.key = key


# === filters ===


def show_all(context: QueryContext) -> list[Student]:
    students = context.roster.get_students(lambda s: not s.is_hidden)
    return sorted(students, key=lambda s: (s.user_name, s.id))


# === sorts ===


def last_name_key(record: Any) -> str:
    return record.last_name


def compare_last_name(a: Any, b: Any) -> int:
    a_name = a.last_name.lower()
    b_name = b.last_name.lower()
    return (a_name > b_name) - (a_name < b_name)


# === registry ===


class FilterSortRegistry:

    def __init__(
        self,
        per_pages: tuple[int, ...],
        filters: dict[FilterName, FilterSpec],
        sorts: dict[SortName, SortSpec],
        default_sort: SortName = SortName.LAST_NAME,
    ):
        self._per_pages = per_pages
        self._filters = filters
        self._sorts = sorts
        self._default_sort = default_sort

    @property
    def per_pages(self) -> tuple[int, ...]:
        return self._per_pages

    @property
    def default_sort(self) -> SortName:
        return self._default_sort

    def filter_labels(self) -> dict[str, str]:
        return {name.value: spec.label for name, spec in self._filters.items()}

    def resolve_filter(self, name: str | FilterName) -> FilterSpec:
        try:
            return self._filters[FilterName(name)]
        except (ValueError, KeyError):
            raise UnknownFilterError(str(getattr(name, "value", name))) from None

    def resolve_sort_name(self, name: str | SortName | None) -> SortName:
        try:
            sort_name = SortName(name)
        except ValueError:
            if name:
                logger.debug("Unknown sort '%s'; using '%s'.", name, self._default_sort.value)
            return self._default_sort

        return sort_name if sort_name in self._sorts else self._default_sort

    def resolve_sort(self, name: str | SortName | None) -> SortSpec:
        return self._sorts[self.resolve_sort_name(name)]


DEFAULT_REGISTRY = FilterSortRegistry(
    per_pages=config.PER_PAGES,
    filters={FilterName.NONE: FilterSpec("Show All", show_all)},
    sorts={SortName.LAST_NAME: SortSpec(compare_last_name, last_name_key)},
)
