"""
Query definitions, the fluent builder and wire-format serialization.
"""

from .builder import (
    DirectusQueryBuilder,
    QueryBuilder,
    render_arguments,
    render_fields,
    serialize_definition,
)
from .models import DEFAULT_ALIAS, QueryDefinition, QueryOptions

__all__ = [
    "QueryBuilder",
    "DirectusQueryBuilder",
    "QueryDefinition",
    "QueryOptions",
    "DEFAULT_ALIAS",
    "serialize_definition",
    "render_fields",
    "render_arguments",
]
