"""
Fluent query builder.

The builder collects a QueryDefinition through chained calls and renders it
to the query wire format::

    query { <alias>: <name>(<args>) { <fields> } }
"""

from __future__ import annotations

import copy
import json
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .models import FieldSpec, QueryDefinition, QueryOptions, RowMapper

Injector = Callable[[], Optional[Mapping[str, Any]]]

# Arguments rendered on the wire, in this order
WIRE_ARGUMENTS = ("filter", "sort", "limit", "offset")


class QueryBuilder:
    """
    Fluent interface for building structured queries.

    Examples:
        Simple query:
        ```python
        query = (QueryBuilder("articles")
            .select(["id", "title", {"author": ["id", "name"]}])
            .where({"status": {"eq": "published"}})
            .order_by(["-date_created"])
            .take(20)
        )
        query.serialize()
        ```

        Filter values that depend on state resolved at execution time:
        ```python
        query = (QueryBuilder("pages")
            .where_dynamic({"slug": slug})
            .inject(lambda: {"site": current_site()})
        )
        ```
    """

    eq_operator = "eq"
    or_operator = "_or"

    def __init__(self, name: str):
        """
        Initialize query builder.

        Args:
            name: Table or operation name
        """
        self._definition = QueryDefinition(name)
        self._injector: Optional[Injector] = None

    @classmethod
    def from_source(
        cls,
        source: Union["QueryBuilder", QueryDefinition, Mapping[str, Any], str],
        options: Optional[Mapping[str, Any]] = None,
    ) -> "QueryBuilder":
        """
        Coerce a query source into a builder.

        Args:
            source: A builder (returned as is), a QueryDefinition, a mapping
                with ``name`` and ``fields`` keys, or a bare table name
                (which selects ``id``)
            options: Option mapping applied on top of the source

        Returns:
            QueryBuilder for the source
        """
        if isinstance(source, QueryBuilder):
            builder = source
        elif isinstance(source, QueryDefinition):
            builder = cls(source.name)
            builder._definition = source.snapshot()
        elif isinstance(source, str):
            builder = cls(source).select(["id"])
        elif isinstance(source, Mapping):
            if "name" not in source:
                raise ValueError("Query definition mapping needs a 'name'")
            builder = cls(source["name"]).select(list(source.get("fields") or []))
            if source.get("alias"):
                builder.as_(source["alias"])
        else:
            raise TypeError(f"Cannot build a query from {type(source).__name__}")

        if options:
            parsed = QueryOptions.from_mapping(options)
            for name in ("filter", "sort", "limit", "offset", "map"):
                value = getattr(parsed, name)
                if value is not None:
                    setattr(builder._definition.options, name, value)
            if "preserve" in options:
                builder._definition.options.preserve = parsed.preserve
        return builder

    @property
    def name(self) -> str:
        """Table or operation name."""
        return self._definition.name

    @property
    def definition(self) -> QueryDefinition:
        """The live definition, without injection applied."""
        return self._definition

    @property
    def options(self) -> QueryOptions:
        """The live options."""
        return self._definition.options

    def select(self, fields: Sequence[FieldSpec]) -> QueryBuilder:
        """
        Set the field selection.

        Args:
            fields: Leaf names or ``{relation: [nested fields]}`` mappings

        Returns:
            Self for chaining
        """
        self._definition.fields = list(fields)
        return self

    def join(self, nested_fields: Sequence[FieldSpec]) -> QueryBuilder:
        """Append relation selections to the current fields."""
        self._definition.fields.extend(nested_fields)
        return self

    def where(self, filter: Optional[Dict[str, Any]]) -> QueryBuilder:
        """Set the filter, replacing any previous one."""
        self._definition.options.filter = filter
        return self

    def or_where(self, conditions: Sequence[Dict[str, Any]]) -> QueryBuilder:
        """Replace the filter with a logical OR over ``conditions``."""
        self._definition.options.filter = {self.or_operator: list(conditions)}
        return self

    def where_dynamic(self, values: Mapping[str, Any]) -> QueryBuilder:
        """
        Set an equality filter from flat values.

        ``{"lang": "en"}`` becomes ``{"lang": {"eq": "en"}}``; ``None`` values
        are dropped. Replaces any previous filter.
        """
        return self.where(self.equality_conditions(values))

    def inject(self, fn: Injector) -> QueryBuilder:
        """
        Register a late-bound filter source.

        ``fn`` is called on every ``build()``/``serialize()`` and its flat
        values are merged, as equality conditions, on top of the declared
        filter.
        """
        self._injector = fn
        return self

    def order_by(self, fields: Sequence[str]) -> QueryBuilder:
        """Set the sort fields (``-field`` for descending)."""
        self._definition.options.sort = list(fields)
        return self

    def take(self, limit: int) -> QueryBuilder:
        """Limit the number of rows."""
        self._definition.options.limit = limit
        return self

    def skip(self, offset: int) -> QueryBuilder:
        """Skip the first ``offset`` rows."""
        self._definition.options.offset = offset
        return self

    def as_(self, alias: str) -> QueryBuilder:
        """Set the result alias (``as`` is reserved in Python)."""
        self._definition.alias = alias
        return self

    def map(self, fn: RowMapper) -> QueryBuilder:
        """Transform every result row with ``fn``."""
        self._definition.options.map = fn
        return self

    def preserve(self, preserve: bool = True) -> QueryBuilder:
        """Suppress loading churn and unchanged-result notifications on refetch."""
        self._definition.options.preserve = preserve
        return self

    def translated(self, translated: bool = True) -> QueryBuilder:
        """Mark the query as filtered by the client's active language."""
        self._definition.translated = translated
        return self

    def equality_conditions(self, values: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Convert flat values to equality conditions, dropping ``None``."""
        return {
            key: {self.eq_operator: value}
            for key, value in (values or {}).items()
            if value is not None
        }

    def _resolved_filter(self) -> Optional[Dict[str, Any]]:
        declared = copy.deepcopy(self._definition.options.filter)
        if self._injector is None:
            return declared

        injected = self.equality_conditions(self._injector())
        if not injected:
            return declared
        return {**(declared or {}), **injected}

    def build(self) -> QueryDefinition:
        """
        Resolve injection and return a snapshot of the definition.

        Returns:
            QueryDefinition independent of later builder calls
        """
        definition = self._definition.snapshot()
        definition.options.filter = self._resolved_filter()
        return definition

    def serialize(self) -> str:
        """Resolve injection and render the wire format."""
        return serialize_definition(self.build())

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class DirectusQueryBuilder(QueryBuilder):
    """QueryBuilder using Directus' ``_eq``/``_or`` filter operators."""

    eq_operator = "_eq"
    or_operator = "_or"


def render_fields(fields: Sequence[FieldSpec]) -> str:
    """
    Render a field selection.

    Leaves pass through; ``{"author": ["id", "name"]}`` renders as
    ``author { id name }``, recursively.
    """
    parts: List[str] = []
    for item in fields:
        if isinstance(item, str):
            parts.append(item)
        elif isinstance(item, Mapping):
            for relation, nested in item.items():
                parts.append(f"{relation} {{ {render_fields(nested)} }}")
        else:
            raise TypeError(f"Unsupported field selection: {item!r}")
    return " ".join(parts)


def render_value(value: Any) -> str:
    """JSON-encode ``value`` with bare object keys."""
    if isinstance(value, Mapping):
        items = (f"{key}:{render_value(item)}" for key, item in value.items())
        return "{" + ",".join(items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(render_value(item) for item in value) + "]"
    return json.dumps(value, ensure_ascii=False)


def render_arguments(options: QueryOptions) -> str:
    """Render ``(filter: …, sort: …, limit: …, offset: …)``, or ``""``."""
    rendered = []
    for name in WIRE_ARGUMENTS:
        value = getattr(options, name)
        if value is None:
            continue
        if isinstance(value, (list, tuple, dict)) and not value:
            continue
        rendered.append(f"{name}: {render_value(value)}")

    if not rendered:
        return ""
    return f"({', '.join(rendered)})"


def serialize_definition(definition: QueryDefinition) -> str:
    """Render a definition to ``query { alias: name(args) { fields } }``."""
    args = render_arguments(definition.options)
    fields = render_fields(definition.fields)
    return f"query {{ {definition.alias}: {definition.name}{args} {{ {fields} }} }}"
