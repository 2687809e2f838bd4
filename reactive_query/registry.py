"""
Registry of keyed queries.

``QueryContext.key(id)`` records the query's builder here so refetch and
polling can target it later without re-declaring it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from .query.builder import QueryBuilder
from .query.models import QueryOptions

logger = logging.getLogger(__name__)


@dataclass
class QueryRegistration:
    """A query registered under an id."""

    id: str
    builder: QueryBuilder

    @property
    def table(self) -> str:
        return self.builder.name

    @property
    def options(self) -> QueryOptions:
        return self.builder.options


class QueryRegistry:
    """Mapping of registration id to QueryRegistration."""

    def __init__(self) -> None:
        self._registrations: Dict[str, QueryRegistration] = {}

    def register(self, registration_id: str, builder: QueryBuilder) -> QueryRegistration:
        """Register ``builder`` under ``registration_id``, replacing any previous one."""
        if registration_id in self._registrations:
            logger.debug("Replacing query registration %r", registration_id)
        registration = QueryRegistration(registration_id, builder)
        self._registrations[registration_id] = registration
        return registration

    def get(self, registration_id: str) -> Optional[QueryRegistration]:
        return self._registrations.get(registration_id)

    def unregister(self, registration_id: str) -> bool:
        """Remove a registration; returns whether it existed."""
        return self._registrations.pop(registration_id, None) is not None

    def ids(self) -> List[str]:
        return list(self._registrations)

    def items(self) -> List[Tuple[str, QueryRegistration]]:
        return list(self._registrations.items())

    def clear(self) -> None:
        self._registrations.clear()

    def __contains__(self, registration_id: object) -> bool:
        return registration_id in self._registrations

    def __iter__(self) -> Iterator[str]:
        return iter(self.ids())

    def __len__(self) -> int:
        return len(self._registrations)
