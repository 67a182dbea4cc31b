# core/utils.py

"""
Repository for program-wide utilities.
"""

import uuid
from typing import Any


def generate_uuid() -> str:
    return str(uuid.uuid4())


def leading_letter(value: str | None) -> str:
    """Upper-cased first non-space character of `value`, or "" if there is none."""
    return (value or "").strip()[:1].upper()


def parse_bool(value: Any) -> bool:
    """
    Interprets a request parameter as a boolean.

    Accepts real booleans and the strings "true", "1", "yes", and "on" (any case); everything else,
    including None and blank strings, is False.
    """
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on") if value is not None else False
