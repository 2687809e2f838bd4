"""
Query definition models.

A QueryDefinition is the structured, transport-independent form of a query:
the table or operation name, the selected fields and the filter, sort and
pagination options.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

# A selected field is either a leaf name or a {relation: [nested fields]} mapping
FieldSpec = Union[str, Mapping[str, List[Any]]]
RowMapper = Callable[[Any], Any]

DEFAULT_ALIAS = "data"


@dataclass
class QueryOptions:
    """Filter, sort and pagination options of a query."""

    filter: Optional[Dict[str, Any]] = None
    sort: Optional[List[str]] = None
    limit: Optional[int] = None
    offset: Optional[int] = None
    preserve: bool = False
    map: Optional[RowMapper] = None

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> QueryOptions:
        """
        Create options from a plain mapping.

        Raises:
            ValueError: If the mapping contains unknown option names
        """
        if not options:
            return cls()
        unknown = set(options) - {"filter", "sort", "limit", "offset", "preserve", "map"}
        if unknown:
            raise ValueError(f"Unknown query options: {', '.join(sorted(unknown))}")
        return cls(**dict(options))

    def copy(self) -> QueryOptions:
        """Copy with an independent filter and sort list."""
        return replace(
            self,
            filter=copy.deepcopy(self.filter),
            sort=list(self.sort) if self.sort is not None else None,
        )


@dataclass
class QueryDefinition:
    """
    Structured query definition.

    ``name`` is fixed once the definition exists; fields and options may
    change through the builder until a snapshot is taken with ``build()``.
    """

    name: str
    fields: List[FieldSpec] = field(default_factory=list)
    options: QueryOptions = field(default_factory=QueryOptions)
    alias: str = DEFAULT_ALIAS
    translated: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Query name is required")
        self.fields = list(self.fields)
        self.alias = self.alias or DEFAULT_ALIAS

    def __setattr__(self, key: str, value: Any) -> None:
        if key == "name" and "name" in self.__dict__:
            raise AttributeError("Query name cannot be changed after construction")
        super().__setattr__(key, value)

    def snapshot(self) -> QueryDefinition:
        """Independent copy of this definition."""
        return QueryDefinition(
            self.name,
            fields=copy.deepcopy(self.fields),
            options=self.options.copy(),
            alias=self.alias,
            translated=self.translated,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form, without the row mapper."""
        return {
            "name": self.name,
            "fields": copy.deepcopy(self.fields),
            "options": {
                "filter": copy.deepcopy(self.options.filter),
                "sort": self.options.sort,
                "limit": self.options.limit,
                "offset": self.options.offset,
                "preserve": self.options.preserve,
            },
            "alias": self.alias,
            "translated": self.translated,
        }
