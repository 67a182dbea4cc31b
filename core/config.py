# core/config.py

"""
Program-wide settings, read from the environment (and an optional `.env` file).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# Page sizes offered by the grades table, in display order.
PER_PAGES: tuple[int, ...] = (15, 30, 50, 100, 150)


def _int_setting(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got '{raw}'.") from None


DEFAULT_PER_PAGE = _int_setting("GRADEBOOK_DEFAULT_PER_PAGE", 15)
if DEFAULT_PER_PAGE not in PER_PAGES:
    raise RuntimeError(
        f"GRADEBOOK_DEFAULT_PER_PAGE must be one of {PER_PAGES}, got {DEFAULT_PER_PAGE}."
    )

DEFAULT_FILTER = "none"
DEFAULT_SORT = "last_name"

# Optional directory for JSON persistence of the roster and form stores.
DATA_DIR = os.getenv("GRADEBOOK_DATA_DIR", "").strip() or None

LOG_FILE = os.getenv("GRADEBOOK_LOG_FILE", "").strip() or None
LOG_LEVEL = os.getenv("GRADEBOOK_LOG_LEVEL", "INFO").strip().upper()
AUDIT_LOGGER_NAME = os.getenv("GRADEBOOK_AUDIT_LOGGER", "gradebook.audit").strip()

CSV_ENCODING = os.getenv("GRADEBOOK_CSV_ENCODING", "utf-8").strip()
CSV_MEDIA_TYPE = "application/vnd.ms-excel"
