"""
Query execution contexts.

A QueryContext is one declaration of a query against a client. ``exec()``
runs it and keeps the result on the context; ``use()``, ``save()`` and
``refetch()`` move results into the client's shared store and notify
subscribers.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import MutableMapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from .exceptions import ErrorHandler
from .query.builder import QueryBuilder, serialize_definition
from .query.models import QueryDefinition
from .retry import with_retry
from .store.paths import get_path

if TYPE_CHECKING:
    from .client import Client

logger = logging.getLogger(__name__)

Callback = Callable[..., Any]


class ContextState(str, Enum):
    """Execution state of a context."""

    IDLE = "idle"
    EXECUTING = "executing"
    SUCCESS = "success"
    FAILED = "failed"


async def _invoke(callback: Optional[Callback], *args: Any) -> None:
    if callback is None:
        return
    try:
        result = callback(*args)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("Refetch callback %r raised", callback)


class QueryContext:
    """
    One query declaration bound to a client.

    Example:
        ```python
        ctx = await client.query(QueryBuilder("posts").select(["id", "title"])).exec()
        entry = ctx.key("posts").use()
        await entry["refetch"](force=True)
        ```
    """

    def __init__(self, client: "Client", builder: QueryBuilder) -> None:
        self.client = client
        self.builder = builder
        self.data: Any = None
        self.error: Optional[Exception] = None
        self.key_id: Optional[str] = None
        self.state = ContextState.IDLE

    @property
    def table(self) -> str:
        return self.builder.name

    @property
    def store_key(self) -> str:
        """The store key this query's results live under."""
        return self.client.resolve_store_key(self.builder.name)

    def _final_definition(self) -> QueryDefinition:
        definition = self.builder.build()
        language = self.client.language
        if language and self.client.is_translated(definition):
            language_filter = self.builder.equality_conditions(
                {self.client.config.language_field: language}
            )
            definition.options.filter = {
                **(definition.options.filter or {}),
                **language_filter,
            }
        return definition

    async def exec(self) -> QueryContext:
        """
        Execute the query and keep the result on the context.

        Failures are recorded in ``error`` (and ``data`` cleared) instead of
        raised. The store is only touched to flag an existing entry as
        loading.

        Returns:
            Self
        """
        self.state = ContextState.EXECUTING
        try:
            definition = self._final_definition()
            query = serialize_definition(definition)
        except Exception as e:
            logger.warning("Could not build query for %s: %s", self.table, e)
            return self._fail(e)

        store_key = self.store_key
        if not definition.options.preserve:
            entry = self.client.data_store.entry(store_key)
            if isinstance(entry, MutableMapping):
                entry["loading"] = True
                self.client.emit(store_key, dict(entry))

        config = self.client.config
        headers = self.client.graphql_headers()
        try:
            envelope = await with_retry(
                lambda: self.client.transport.execute_query(query, headers),
                max_attempts=config.query_attempts,
                base_delay=config.retry_backoff,
                retry_on=ErrorHandler.is_retryable_error,
            )
            rows = get_path(envelope, ["data", definition.alias])
            if rows is None:
                rows = []
            row_mapper = definition.options.map
            if row_mapper is not None:
                rows = [row_mapper(row) for row in rows]
        except Exception as e:
            logger.debug("Query %s failed: %s", definition.name, e)
            return self._fail(e)

        self.data = rows
        self.error = None
        self.state = ContextState.SUCCESS
        return self

    def _fail(self, error: Exception) -> QueryContext:
        self.data = None
        self.error = error
        self.state = ContextState.FAILED
        return self

    def save(self, *pairs: str) -> QueryContext:
        """
        Write the result into the store.

        With no arguments the entry becomes ``{"data": data}``. Otherwise
        arguments are ``(source, destination_path)`` pairs: ``source`` is
        read from every row (list results) or from the result itself, and
        written at ``destination_path`` inside the existing entry.

        Raises:
            ValueError: If an odd number of arguments is given
        """
        if len(pairs) % 2:
            raise ValueError("save() takes (source, destination) pairs")

        store_key = self.store_key
        data_store = self.client.data_store

        if not pairs:
            entry = data_store.set(store_key, {"data": self.data})
            self.client.emit(store_key, entry)
            return self

        data_store.setdefault(store_key, {})
        for source, destination in zip(pairs[::2], pairs[1::2]):
            if isinstance(self.data, list):
                value = [get_path(row, source) for row in self.data]
            else:
                value = get_path(self.data, source)
            data_store.write_path(store_key, destination, value)

        self.client.emit(store_key, data_store.entry(store_key))
        return self

    def prefix(self, name: str) -> QueryContext:
        """Store every query on this table under ``name``."""
        self.client.set_prefix(self.builder.name, name)
        return self

    def key(self, registration_id: str) -> QueryContext:
        """Register this query under ``registration_id`` for refetch and polling."""
        self.key_id = registration_id
        self.client.registry.register(registration_id, self.builder)
        return self

    async def refetch(
        self,
        force: bool = False,
        on_success: Optional[Callback] = None,
        on_error: Optional[Callback] = None,
        on_finally: Optional[Callback] = None,
    ) -> QueryContext:
        """
        Re-run the registered query and sync the shared entry.

        Does nothing unless ``key()`` was called. With ``preserve`` set and
        ``force`` unset, the loading flag is left alone and an unchanged
        result is not written or emitted. A response overtaken by a later
        refetch of the same store key is neither written nor kept on the
        context.

        Args:
            force: Always mark loading and write the result
            on_success: Called with the new data
            on_error: Called with the error instead of ``on_success``
            on_finally: Called last, in both cases

        Returns:
            Self
        """
        registration = (
            self.client.registry.get(self.key_id) if self.key_id is not None else None
        )
        if registration is None:
            logger.debug("refetch() on %s without a registration", self.table)
            return self

        builder = registration.builder
        preserve = builder.options.preserve
        store_key = self.client.resolve_store_key(builder.name)
        generation = self.client.next_generation(store_key)

        entry = self.client.data_store.entry(store_key)
        if (not preserve or force) and isinstance(entry, MutableMapping):
            entry["loading"] = True
            self.client.emit(store_key, dict(entry))

        fresh = await self.client.query(builder).exec()

        if self.client.is_latest_generation(store_key, generation):
            self.data = fresh.data
            self.error = fresh.error
            self.state = fresh.state

            entry = self.client.data_store.entry(store_key)
            if isinstance(entry, MutableMapping):
                changed = fresh.data != entry.get("data")
                if changed or not preserve or force:
                    entry["data"] = fresh.data
                    entry["error"] = fresh.error
                    entry["loading"] = False
                    self.client.emit(store_key, entry)
        else:
            logger.debug("Discarding stale refetch result for %s", store_key)

        if fresh.error is not None and on_error is not None:
            await _invoke(on_error, fresh.error)
        else:
            await _invoke(on_success, fresh.data)
        await _invoke(on_finally)
        return self

    def use(self) -> Dict[str, Any]:
        """
        Publish the context's current result as the store entry.

        Returns:
            The entry: ``data``, ``loading``, ``error`` and ``refetch``,
            ``watch``, ``watch_deep`` closures bound to this query
        """
        store_key = self.store_key
        client = self.client
        entry = {
            "data": self.data,
            "loading": self.data is None,
            "error": self.error,
            "refetch": lambda **options: self.refetch(**options),
            "watch": lambda prop, callback: client.watch(store_key, prop, callback),
            "watch_deep": lambda path, callback: client.watch_deep(store_key, path, callback),
        }
        client.data_store.set(store_key, entry)
        client.emit(store_key, entry)
        return entry

    def __repr__(self) -> str:
        return f"QueryContext({self.table!r}, state={self.state.value})"
