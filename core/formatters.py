# core/formatters.py

# all pure text helpers
# must never import from models!

from typing import Any

# === generic text formatters ===


def format_list_with_and(items: list[Any]) -> str:
    items = [str(item) for item in items]

    if not items:
        return ""

    if len(items) == 1:
        return items[0]

    if len(items) == 2:
        return " and ".join(items)

    return ", ".join(items[:-1]) + ", and " + items[-1]


# === grade formatters ===


def format_grade_value(value: float | None) -> str:
    """
    Formats a grade for CSV output: blank when ungraded, no trailing ".0" for whole numbers.

    The output parses back with `float()` to exactly the same value.
    """
    if value is None:
        return ""

    value = float(value)

    if value.is_integer():
        return str(int(value))

    return repr(value)


# === grade entry form formatters ===


def format_release_log_message(
    short_identifier: str, form_id: str, num_changed: int, released: bool
) -> str:
    action = "released" if released else "unreleased"

    return (
        f"Marks {action} for marks spreadsheet '{short_identifier}', "
        f"ID: '{form_id}' (for {num_changed} students)."
    )


def format_grades_report_filename(short_identifier: str) -> str:
    return f"{short_identifier}_grades_report.csv"


def format_content_disposition(filename: str) -> str:
    return f'attachment; filename="{filename}"'
