# core/table_query.py

"""
Filtering, sorting, pagination, and the alphabetical page index for the grades table.

`TableQueryEngine.query()` turns a filter name and a sort name into an ordered list of
`StudentRow` objects. `paginate()` slices that list into one page, and `build_alpha_index()`
records the leading letter of every page so a UI can jump straight to a letter.

All three are pure: repeated calls over the same data produce the same rows in the same order.
"""

from __future__ import annotations

import math
from functools import cmp_to_key

from core.filter_sort import (
    DEFAULT_REGISTRY,
    FilterName,
    FilterSortRegistry,
    QueryContext,
    SortName,
)
from core.utils import leading_letter
from models.grade_entry_student import GradeEntryStudent
from models.student import Student


class StudentRow:
    """A roster student joined with their record on the active form."""

    def __init__(
        self,
        student: Student,
        grade_entry_student: GradeEntryStudent | None,
        grades: dict[str, float | None],
        total_mark: float,
    ):
        self._student = student
        self._grade_entry_student = grade_entry_student
        self._grades = grades
        self._total_mark = total_mark

    @property
    def student(self) -> Student:
        return self._student

    @property
    def id(self) -> str:
        return self._student.id

    @property
    def user_name(self) -> str:
        return self._student.user_name

    @property
    def last_name(self) -> str:
        return self._student.last_name

    @property
    def grade_entry_student(self) -> GradeEntryStudent | None:
        return self._grade_entry_student

    @property
    def released(self) -> bool:
        return self._grade_entry_student is not None and self._grade_entry_student.is_released

    @property
    def total_mark(self) -> float:
        return self._total_mark

    def grade_for(self, item_id: str) -> float | None:
        return self._grades.get(item_id)

    def __repr__(self) -> str:
        return f"StudentRow({self.id}, {self.user_name}, {self.last_name}, {self.released}, {self._total_mark})"


class Page:

    def __init__(self, rows: list[StudentRow], total_count: int, total_pages: int):
        self.rows = rows
        self.total_count = total_count
        self.total_pages = total_pages


class AlphaBucket:

    def __init__(self, letter: str, page: int):
        self.letter = letter
        self.page = page

    def to_dict(self) -> dict:
        return {"letter": self.letter, "page": self.page}

    @classmethod
    def from_dict(cls, data: dict) -> AlphaBucket:
        return cls(letter=data["letter"], page=data["page"])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlphaBucket):
            return NotImplemented
        return (self.letter, self.page) == (other.letter, other.page)

    def __repr__(self) -> str:
        return f"AlphaBucket({self.letter!r}, {self.page})"


class TableQueryEngine:

    def __init__(self, registry: FilterSortRegistry = DEFAULT_REGISTRY):
        self._registry = registry

    @property
    def registry(self) -> FilterSortRegistry:
        return self._registry

    def query(
        self,
        filter_name: str | FilterName,
        sort_name: str | SortName | None,
        context: QueryContext,
        desc: bool = False,
    ) -> list[StudentRow]:
        """
        Applies a named filter, then a named sort, and joins each student with the active form.

        Args:
            filter_name (str | FilterName): A registered filter.
            sort_name (str | SortName | None): A registered sort; unknown or blank falls back to the default.
            context (QueryContext): The roster, form store, and active form.
            desc (bool): Reverse the order; students that compare equal keep their relative order.

        Returns:
            list[StudentRow]: The ordered rows.

        Raises:
            UnknownFilterError: If `filter_name` is not registered.

        Notes:
            - The sort is stable, so students that compare equal stay in the filter's order
              (user name, then ID), which keeps pagination reproducible.
        """
        students = self._registry.resolve_filter(filter_name)(context)
        sort = self._registry.resolve_sort(sort_name)

        ordered = sorted(students, key=cmp_to_key(sort.comparator), reverse=desc)

        return [self._build_row(student, context) for student in ordered]

    def sort_key(self, sort_name: str | SortName | None):
        return self._registry.resolve_sort(sort_name).key

    def _build_row(self, student: Student, context: QueryContext) -> StudentRow:
        store = context.form_store
        record = store.find_grade_entry_student(context.form, student.id)
        grades = {}

        if record is not None:
            grades = {
                item_id: grade.value for item_id, grade in store.grades_for(record).items()
            }

        return StudentRow(
            student,
            record,
            grades,
            store.calculate_total_mark(context.form, student.id),
        )


# === pagination ===


def total_pages(total_count: int, page_size: int) -> int:
    return max(1, math.ceil(total_count / page_size))


def paginate(rows: list[StudentRow], page_size: int, page_number: int) -> Page:
    """
    Slices ordered rows into one 1-indexed page.

    Raises:
        ValueError: If `page_size` or `page_number` is less than 1.

    Notes:
        - A page past the last one is returned empty rather than raising.
    """
    if page_size < 1:
        raise ValueError(f"Page size must be at least 1, got {page_size}.")

    if page_number < 1:
        raise ValueError(f"Page number must be at least 1, got {page_number}.")

    start = (page_number - 1) * page_size

    return Page(
        rows=rows[start : start + page_size],
        total_count=len(rows),
        total_pages=total_pages(len(rows), page_size),
    )


# === alphabetical index ===


def build_alpha_index(
    rows: list[StudentRow],
    page_size: int,
    page_count: int,
    sort_key=None,
) -> list[AlphaBucket]:
    """
    Computes the leading letter of the first row on every page.

    Args:
        rows (list[StudentRow]): The full ordered rows (not just one page).
        page_size (int): Rows per page.
        page_count (int): The number of pages, as reported by `paginate()`.
        sort_key (Callable | None): Maps a row to the string its sort orders by; defaults to last name.

    Returns:
        list[AlphaBucket]: Exactly `page_count` entries, one per page in page order. A page with no
        rows gets the letter "".

    Notes:
        - Consecutive pages that start with the same letter each keep their own entry; the first
          entry for a letter is the page a jump to that letter should open.
    """
    sort_key = sort_key or (lambda row: row.last_name)
    index = []

    for page in range(1, page_count + 1):
        start = (page - 1) * page_size
        letter = leading_letter(sort_key(rows[start])) if start < len(rows) else ""
        index.append(AlphaBucket(letter, page))

    return index
