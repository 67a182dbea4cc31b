# core/session.py

"""
The per-user session channel: keyed values that survive across requests, plus flash messages.

`AlphaIndexCache` keeps each form's alphabetical page index in the session together with the
(filter, sort, desc, per-page) key it was built for. The cache never rebuilds on its own; callers
refresh it explicitly, and can ask whether the stored entry was built for a different key.
"""

from __future__ import annotations

from typing import Any

from core.table_query import AlphaBucket


class Flash:

    def __init__(self, kind: str, key: str, params: dict[str, Any] | None = None):
        self.kind = kind
        self.key = key
        self.params = params or {}

    def __repr__(self) -> str:
        return f"Flash({self.kind!r}, {self.key!r}, {self.params!r})"


class Session:

    def __init__(self):
        self._values: dict[str, Any] = {}
        self._flashes: list[Flash] = []

    # === keyed values ===

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def pop(self, key: str, default: Any = None) -> Any:
        return self._values.pop(key, default)

    # === flash messages ===

    @property
    def flashes(self) -> list[Flash]:
        return list(self._flashes)

    def flash(self, kind: str, key: str, **params: Any) -> None:
        self._flashes.append(Flash(kind, key, params))

    def consume_flashes(self) -> list[Flash]:
        """Returns all pending flash messages and clears them."""
        flashes, self._flashes = self._flashes, []
        return flashes


class AlphaIndexKey:
    """What an alphabetical index depends on; any change makes a cached index stale."""

    def __init__(self, filter_name: str, sort_name: str, desc: bool, per_page: int):
        self.filter_name = filter_name
        self.sort_name = sort_name
        self.desc = desc
        self.per_page = per_page

    def to_dict(self) -> dict:
        return {
            "filter": self.filter_name,
            "sort_by": self.sort_name,
            "desc": self.desc,
            "per_page": self.per_page,
        }

    @classmethod
    def from_dict(cls, data: dict) -> AlphaIndexKey:
        return cls(data["filter"], data["sort_by"], data["desc"], data["per_page"])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AlphaIndexKey):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"AlphaIndexKey({self.filter_name}, {self.sort_name}, {self.desc}, {self.per_page})"


class AlphaIndexCache:
    SESSION_KEY = "alpha_pagination_options"

    def __init__(self, session: Session):
        self._session = session

    def _entries(self) -> dict[str, dict]:
        entries = self._session.get(self.SESSION_KEY)
        if entries is None:
            entries = {}
            self._session.set(self.SESSION_KEY, entries)
        return entries

    def lookup(self, form_id: str) -> tuple[AlphaIndexKey, list[AlphaBucket]] | None:
        entry = self._entries().get(form_id)
        if entry is None:
            return None
        return (
            AlphaIndexKey.from_dict(entry["key"]),
            [AlphaBucket.from_dict(bucket) for bucket in entry["index"]],
        )

    def refresh(
        self, form_id: str, key: AlphaIndexKey, index: list[AlphaBucket]
    ) -> None:
        self._entries()[form_id] = {
            "key": key.to_dict(),
            "index": [bucket.to_dict() for bucket in index],
        }

    def is_stale(self, form_id: str, key: AlphaIndexKey) -> bool:
        """True if no index is cached for the form, or the cached one was built for another key."""
        entry = self._entries().get(form_id)
        return entry is None or AlphaIndexKey.from_dict(entry["key"]) != key
