"""
Shared keyed store.

One entry per store key. Entries are arbitrary nested values; query-backed
entries follow the ``{"data", "loading", "error", "refetch", ...}``
convention but nothing here depends on it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from .paths import Path, get_path, set_path

logger = logging.getLogger(__name__)


class Store:
    """Keyed mapping of store key to entry, with deep reads and writes."""

    def __init__(self) -> None:
        self._entries: Dict[str, Any] = {}

    def get(self, key: Optional[str] = None) -> Any:
        """
        Read from the store.

        Args:
            key: ``None`` for a shallow copy of every entry, a store key for
                one entry, or ``"<store key>.<path>"`` for a deep read
                inside an entry

        Returns:
            The value, or ``None`` when absent
        """
        if not key:
            return dict(self._entries)

        if "." in key:
            root, _, rest = key.partition(".")
            return get_path(self._entries.get(root), rest)

        return self._entries.get(key)

    def entry(self, key: str) -> Any:
        """The entry stored under exactly ``key`` (no path splitting)."""
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> Any:
        """Replace the entry under ``key``."""
        self._entries[key] = value
        return value

    def setdefault(self, key: str, value: Any) -> Any:
        """Return the entry under ``key``, storing ``value`` first if absent."""
        return self._entries.setdefault(key, value)

    def write_path(self, key: str, path: Path, value: Any) -> Optional[Any]:
        """
        Deep-write ``value`` inside an existing entry.

        Returns:
            The updated entry, or ``None`` if there is no entry for ``key``
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("Skipping write to missing store entry %r", key)
            return None
        set_path(entry, path, value)
        return entry

    def delete(self, key: str) -> bool:
        """Remove the entry under ``key``; returns whether one existed."""
        if key not in self._entries:
            return False
        del self._entries[key]
        return True

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()

    def has(self, key: str) -> bool:
        """Whether an entry exists under ``key``."""
        return key in self._entries

    def keys(self) -> Iterator[str]:
        """Iterate over store keys."""
        return iter(list(self._entries))

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
