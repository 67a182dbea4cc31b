# core/csv_grades.py

"""
CSV grade reports: export of a form's full grade matrix, and transactional import of the same layout.

Layout (export and import):
    - Row 1 is the header: "user_name", "last_name", "first_name", then one column per item name
      in item creation order.
    - Every other row is one student: user name, last name, first name, then one grade per item.
      An ungraded cell is blank. Whole numbers are written without a decimal part; other values
      are written in full precision, so an exported file re-imports to exactly the same grades.
    - Export lists every non-hidden student in grades-table order (last name, case-insensitive).

Import rules:
    - UTF-8 input, with or without a byte order mark. Blank lines are ignored.
    - The header's first column must be "user_name". "last_name" and "first_name" columns are
      accepted and ignored. Every other header must name one of the form's items
      (case-insensitive). Unknown, blank, or repeated headers reject the whole file.
    - A data row must have as many cells as the header, a user name found on the roster, and
      every non-blank grade must be a finite number >= 0. Blank grade cells leave the stored
      grade unchanged.
    - A row that breaks any rule is skipped in full and reported as an `InvalidLine` carrying
      the row's raw text; every other row is applied.
    - The whole import runs inside one form store transaction, so a persistence failure
      discards every write from the file.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Iterator

import core.formatters as formatters
from core import config
from core.errors import CsvRowError, PersistenceError
from core.filter_sort import FilterName, QueryContext, SortName
from core.response import ErrorCode, Response
from core.table_query import TableQueryEngine
from models.form_store import FormStore
from models.grade import Grade
from models.grade_entry_form import GradeEntryForm
from models.grade_entry_item import RESERVED_NAMES, GradeEntryItem
from models.roster import Roster
from models.student import Student

logger = logging.getLogger(__name__)

IDENTITY_COLUMNS = RESERVED_NAMES
USER_NAME_COLUMN = IDENTITY_COLUMNS[0]


class InvalidLine:
    """A rejected CSV row: its 1-based line number, its raw text, and why it was rejected."""

    def __init__(self, line_number: int, content: str, reason: str):
        self.line_number = line_number
        self.content = content
        self.reason = reason

    def to_dict(self) -> dict:
        return {
            "line_number": self.line_number,
            "content": self.content,
            "reason": self.reason,
        }

    def __repr__(self) -> str:
        return f"InvalidLine({self.line_number}, {self.content!r}, {self.reason!r})"

    def __str__(self) -> str:
        return f"Line {self.line_number}: {self.content} ({self.reason})"


def csv_filename(form: GradeEntryForm) -> str:
    return formatters.format_grades_report_filename(form.short_identifier)


def _decode_encoding() -> str:
    encoding = config.CSV_ENCODING.lower().replace("_", "-")
    return "utf-8-sig" if encoding in ("utf-8", "utf8") else config.CSV_ENCODING


# === export ===


class CsvGradeExporter:

    def __init__(
        self,
        roster: Roster,
        form_store: FormStore,
        engine: TableQueryEngine | None = None,
    ):
        self._roster = roster
        self._form_store = form_store
        self._engine = engine or TableQueryEngine()

    def export_csv(self, form: GradeEntryForm) -> bytes:
        items = form.items
        rows = self._engine.query(
            FilterName.NONE,
            SortName.LAST_NAME,
            QueryContext(self._roster, self._form_store, form),
        )

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow(list(IDENTITY_COLUMNS) + [item.name for item in items])

        for row in rows:
            writer.writerow(
                [row.user_name, row.last_name, row.student.first_name]
                + [formatters.format_grade_value(row.grade_for(item.id)) for item in items]
            )

        return output.getvalue().encode(config.CSV_ENCODING)


# === import ===


class CsvGradeImporter:

    def __init__(self, roster: Roster, form_store: FormStore):
        self._roster = roster
        self._form_store = form_store

    def import_csv(self, file_bytes: bytes, form: GradeEntryForm) -> Response:
        """
        Applies a CSV grade report to a form inside one transaction.

        Args:
            file_bytes (bytes): The uploaded file content.
            form (GradeEntryForm): The form receiving the grades.

        Returns:
            Response: A structured response with the following contract:
                - success (bool):
                    - True if every row was applied.
                    - False if any row was rejected, or if the whole file was rejected.
                - detail (str | None): A summary of the outcome.
                - error (ErrorCode | str | None):
                    - `ErrorCode.CSV_ROW_INVALID` if some rows were rejected (valid rows are still committed).
                    - `ErrorCode.INVALID_INPUT` if the file cannot be decoded or its header is invalid.
                    - `ErrorCode.PERSISTENCE_FAILURE` if the transaction could not be committed.
                    - `ErrorCode.INTERNAL_ERROR` for unexpected errors.
                - status_code (int | None):
                    - 200 on success
                    - 400 on failure
                    - 500 on persistence failure
                - data (dict | None): Payload with the following keys (always present):
                    - "num_updates" (int): Grade values written (0 if nothing was committed).
                    - "invalid_lines" (list[InvalidLine]): Rejected rows in file order.

        Notes:
            - Rejected rows never abort the transaction; only file-level and persistence errors do.
        """
        invalid_lines: list[InvalidLine] = []
        num_updates = 0

        try:
            text = file_bytes.decode(_decode_encoding())

        except UnicodeDecodeError as e:
            return Response.fail(
                detail=f"The uploaded file is not valid {config.CSV_ENCODING} text: {e}",
                error=ErrorCode.INVALID_INPUT,
                data={"num_updates": 0, "invalid_lines": []},
            )

        try:
            with self._form_store.transaction():
                rows = self._read_rows(list(io.StringIO(text, newline="")))
                columns = self._parse_header(rows, form)

                for line_number, content, cells, read_error in rows:
                    if cells is not None and not any(cell.strip() for cell in cells):
                        continue

                    try:
                        if read_error is not None:
                            raise CsvRowError(f"Malformed CSV: {read_error}")
                        student, values = self._parse_row(cells, columns)

                    except CsvRowError as e:
                        invalid_lines.append(InvalidLine(line_number, content, str(e)))
                        continue

                    num_updates += self._apply_row(form, student, values)

        except PersistenceError as e:
            logger.error("CSV import into form %s rolled back: %s", form.id, e)
            return Response.fail(
                detail=f"Failed to persist imported grades: {e}",
                error=ErrorCode.PERSISTENCE_FAILURE,
                status_code=500,
                data={"num_updates": 0, "invalid_lines": invalid_lines},
            )

        except ValueError as e:
            return Response.fail(
                detail=f"Invalid CSV file: {e}",
                error=ErrorCode.INVALID_INPUT,
                data={"num_updates": 0, "invalid_lines": []},
            )

        except Exception as e:
            return Response.fail(
                detail=f"Unexpected error: {e}",
                error=ErrorCode.INTERNAL_ERROR,
                data={"num_updates": 0, "invalid_lines": []},
            )

        logger.info(
            "Imported %d grades into form %s (%d invalid lines).",
            num_updates,
            form.short_identifier,
            len(invalid_lines),
        )
        data = {"num_updates": num_updates, "invalid_lines": invalid_lines}

        if invalid_lines:
            return Response.fail(
                detail=f"{num_updates} grades updated; {len(invalid_lines)} lines were invalid.",
                error=ErrorCode.CSV_ROW_INVALID,
                data=data,
            )

        return Response.succeed(detail=f"{num_updates} grades updated.", data=data)

    # === parsing helpers ===

    def _read_rows(
        self, lines: list[str]
    ) -> Iterator[tuple[int, str, list[str] | None, csv.Error | None]]:
        """
        Yields (line number, raw text, cells, read error) for every CSV record.

        A record can span several physical lines when a quoted cell contains a newline; its raw
        text then covers all of them.
        """
        reader = csv.reader(lines)
        consumed = 0

        while True:
            read_error = None

            try:
                cells = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                cells, read_error = None, e

            start, consumed = consumed, reader.line_num
            if consumed == start:
                return

            yield start + 1, "".join(lines[start:consumed]).rstrip("\r\n"), cells, read_error

    def _parse_header(self, rows, form: GradeEntryForm) -> list[GradeEntryItem | None]:
        """
        Consumes rows up to and including the header and maps each column to an item.

        Returns:
            One entry per column: the item for grade columns, None for identity columns.

        Raises:
            ValueError: If there is no header, or a header cell is blank, unknown, or repeated.
        """
        for _, _, cells, read_error in rows:
            if read_error is not None:
                raise ValueError(f"Malformed header row: {read_error}")
            if any(cell.strip() for cell in cells):
                break
        else:
            raise ValueError("The file is empty; expected a header row.")

        headers = [cell.strip() for cell in cells]

        if headers[0].lower() != USER_NAME_COLUMN:
            raise ValueError(f"The first column must be '{USER_NAME_COLUMN}'.")

        columns: list[GradeEntryItem | None] = [None]
        seen = {USER_NAME_COLUMN}

        for header in headers[1:]:
            normalized = header.lower()

            if not normalized:
                raise ValueError("Header cells cannot be blank.")

            if normalized in seen:
                raise ValueError(f"Column '{header}' appears more than once.")
            seen.add(normalized)

            if normalized in IDENTITY_COLUMNS:
                columns.append(None)
                continue

            item = form.find_item_by_name(header)
            if item is None:
                raise ValueError(
                    f"Column '{header}' does not match any item on '{form.short_identifier}'."
                )
            columns.append(item)

        return columns

    def _parse_row(
        self, cells: list[str], columns: list[GradeEntryItem | None]
    ) -> tuple[Student, list[tuple[GradeEntryItem, float]]]:
        if len(cells) != len(columns):
            raise CsvRowError(f"Expected {len(columns)} columns, found {len(cells)}.")

        user_name = cells[0].strip()
        if not user_name:
            raise CsvRowError("Missing user name.")

        student_response = self._roster.find_student_by_user_name(user_name)
        if not student_response.success:
            raise CsvRowError(student_response.detail)

        values = []

        for item, cell in zip(columns, cells):
            if item is None or not cell.strip():
                continue

            try:
                values.append((item, Grade.validate_grade_input(cell)))
            except (TypeError, ValueError) as e:
                raise CsvRowError(f"{item.name}: {e}") from None

        return student_response.data["record"], values

    def _apply_row(
        self,
        form: GradeEntryForm,
        student: Student,
        values: list[tuple[GradeEntryItem, float]],
    ) -> int:
        record = self._form_store.upsert_grade_entry_student(form, student.id)

        for item, value in values:
            grade = self._form_store.upsert_grade(record, item.id)
            self._form_store.save_grade(grade, value)

        return len(values)
