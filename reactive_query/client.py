"""
Reactive query client.

The client owns every registry of a session: the shared store, the
subscriptions on it, store-key prefixes, keyed query registrations and the
pollers running them. Nothing is process-global; ``clone()`` starts a new
session from the same settings.
"""

from __future__ import annotations

import logging
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    Optional,
    Sequence,
    Type,
    Union,
)

from .auth import AuthHeaderResolver, RuleLike, coerce_rule
from .config.models import ClientConfig
from .context import QueryContext
from .items import ItemId, ItemsClient
from .polling import PollingScheduler, StopPredicate
from .query.builder import QueryBuilder
from .query.models import QueryDefinition
from .registry import QueryRegistration, QueryRegistry
from .retry import with_retry
from .store.paths import Path
from .store.store import Store
from .store.subscriptions import Listener, SubscriptionRegistry, Unsubscribe
from .transport.base import Transport
from .transport.http import HTTPTransport

logger = logging.getLogger(__name__)

QuerySource = Union[QueryBuilder, QueryDefinition, Mapping[str, Any], str]


class StoreView:
    """Reads scoped to one table's store entry."""

    def __init__(self, client: "Client", table: str) -> None:
        self.client = client
        self.table = table

    @property
    def key(self) -> str:
        """Current store key of the table (prefix applied)."""
        return self.client.resolve_store_key(self.table)

    def get(self, path: Optional[str] = None) -> Any:
        """The whole entry, or the value at dotted ``path`` inside it."""
        key = self.key
        if not path:
            return self.client.data_store.entry(key)
        return self.client.data_store.get(f"{key}.{path}")

    def prefix(self, name: str) -> StoreView:
        """Store the table under ``name`` from now on."""
        self.client.set_prefix(self.table, name)
        return self

    def update(self, path: Path, value: Any) -> StoreView:
        self.client.update(self.table, path, value)
        return self

    def listen(self, callback: Listener) -> Unsubscribe:
        return self.client.listen(self.key, callback)

    def __repr__(self) -> str:
        return f"StoreView({self.table!r}, key={self.key!r})"


class Client:
    """
    Reactive data client for a content API.

    Examples:
        Declare, run and publish a query:
        ```python
        async with Client(base_url="https://cms.example.com") as client:
            ctx = await client.query(
                QueryBuilder("articles").select(["id", "title"]).take(10)
            ).exec()
            ctx.key("articles").use()
            client.listen("articles", print)
            client.store("articles").get("data.0.title")
        ```

        Keep keyed queries fresh:
        ```python
        client.polling(5.0)
        client.stop_polling(lambda entry: entry and not entry["loading"])
        ```
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        transport: Optional[Transport] = None,
        environ: Optional[Mapping[str, str]] = None,
        builder_class: Type[QueryBuilder] = QueryBuilder,
        **config_overrides: Any,
    ) -> None:
        """
        Initialize client.

        Args:
            config: Client configuration; built from ``config_overrides``
                when omitted
            transport: Transport to use (an HTTPTransport by default)
            environ: Environment mapping for environment auth fallbacks
            builder_class: Builder used for non-builder query sources
            **config_overrides: ClientConfig fields (``base_url``, ...)
        """
        if config is None:
            config = ClientConfig(**config_overrides)
        elif config_overrides:
            config = ClientConfig(**{**config.model_dump(), **config_overrides})
        self.config = config
        self.builder_class = builder_class
        self._environ = environ

        self.transport: Transport = transport or HTTPTransport(config)
        self.auth = AuthHeaderResolver(
            config.auth_header_key, config.auth_fallbacks, environ
        )
        self.items = ItemsClient(self.transport, self.auth, config.items_path)

        self.data_store = Store()
        self.subscriptions = SubscriptionRegistry()
        self.registry = QueryRegistry()
        self.scheduler = PollingScheduler(
            self.registry, self._execute_registration, self._registration_value
        )
        self._prefixes: Dict[str, str] = {}
        self._generations: Dict[str, int] = {}

    # Session settings

    @property
    def token(self) -> Optional[str]:
        return self.config.token

    @property
    def language(self) -> Optional[str]:
        return self.config.language

    def set_token(self, token: Optional[str]) -> Client:
        """Set the bearer token sent with queries."""
        self.config.token = token
        return self

    def set_language(self, language: Optional[str]) -> Client:
        """Set the language translated queries are filtered by."""
        self.config.language = language
        return self

    def auto_auth_with_header(
        self, header_key: str, backup: Optional[Sequence[RuleLike]] = None
    ) -> Client:
        """
        Configure auth header resolution for item requests.

        Args:
            header_key: Primary header holding the token
            backup: Ordered fallback rules, tried when the header is absent
        """
        rules = [coerce_rule(rule) for rule in backup or ()]
        self.config.auth_header_key = header_key
        self.config.auth_fallbacks = rules
        self.auth.configure(header_key, rules)
        return self

    def graphql_headers(self) -> Dict[str, str]:
        """Headers sent with every query."""
        headers = {"Content-Type": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def is_translated(self, definition: QueryDefinition) -> bool:
        """Whether ``definition`` is filtered by the active language."""
        if definition.translated:
            return True
        marker = self.config.translation_marker
        return bool(marker) and marker in definition.name

    # Queries

    def query(
        self, source: QuerySource, options: Optional[Mapping[str, Any]] = None
    ) -> QueryContext:
        """Wrap a query in a new context bound to this client."""
        builder = self.builder_class.from_source(source, options)
        return QueryContext(self, builder)

    def resolve_store_key(self, table: str) -> str:
        """The store key of ``table``: its prefix if one is set."""
        return self._prefixes.get(table, table)

    def set_prefix(self, table: str, name: str) -> Client:
        self._prefixes[table] = name
        return self

    def unregister(self, registration_id: str) -> bool:
        """Remove a keyed query and stop polling it."""
        self.scheduler.cancel(registration_id)
        return self.registry.unregister(registration_id)

    def next_generation(self, store_key: str) -> int:
        """Claim a new refetch generation for ``store_key``."""
        generation = self._generations.get(store_key, 0) + 1
        self._generations[store_key] = generation
        return generation

    def is_latest_generation(self, store_key: str, generation: int) -> bool:
        return self._generations.get(store_key) == generation

    # Store

    def get(self, key: Optional[str] = None) -> Any:
        """
        Read the store.

        ``get()`` returns every entry, ``get("key")`` one entry and
        ``get("key.some.path")`` a value inside an entry.
        """
        return self.data_store.get(key)

    def save(self, key: str, value: Any) -> Client:
        """Replace the entry under ``key`` and notify subscribers."""
        self.data_store.set(key, value)
        self.emit(key, value)
        return self

    def update(self, table_or_key: str, path: Path, value: Any) -> Client:
        """
        Write ``value`` at ``path`` inside an existing entry and notify.

        Does nothing when the entry does not exist.
        """
        key = self.resolve_store_key(table_or_key)
        entry = self.data_store.write_path(key, path, value)
        if entry is not None:
            self.emit(key, entry)
        return self

    def invalidate(self, key: str) -> Client:
        """Drop the entry under ``key``; subscribers stay registered."""
        self.data_store.delete(key)
        return self

    def store(self, table: Union[str, QueryBuilder, QueryDefinition]) -> StoreView:
        name = table if isinstance(table, str) else table.name
        return StoreView(self, name)

    # Subscriptions

    def listen(self, key: str, callback: Listener) -> Unsubscribe:
        return self.subscriptions.listen(key, callback)

    def unlisten(self, key: str, callback: Listener) -> Client:
        self.subscriptions.unlisten(key, callback)
        return self

    def watch(self, key: str, prop: str, callback: Listener) -> Unsubscribe:
        return self.subscriptions.watch(key, prop, callback)

    def watch_deep(self, key: str, path: str, callback: Listener) -> Unsubscribe:
        return self.subscriptions.watch_deep(key, path, callback)

    def emit(self, key: str, value: Any) -> None:
        self.subscriptions.emit(key, value)

    # Polling

    async def _execute_registration(self, registration: QueryRegistration) -> QueryContext:
        return await self.query(registration.builder).exec()

    def _registration_value(self, registration: QueryRegistration) -> Any:
        return self.data_store.entry(self.resolve_store_key(registration.table))

    def polling(self, interval: Optional[float] = None) -> Client:
        """
        Execute every keyed query each ``interval`` seconds.

        Queries already polled are left alone. Defaults to
        ``config.poll_interval``.
        """
        self.scheduler.start(interval if interval is not None else self.config.poll_interval)
        return self

    def stop_polling(self, predicate: StopPredicate) -> Client:
        """Stop the pollers whose current store entry satisfies ``predicate``."""
        self.scheduler.stop(predicate)
        return self

    # Passthroughs

    async def with_retry(
        self,
        fn: Callable[[], Any],
        max_retries: int = 3,
        backoff: Optional[float] = None,
    ) -> Any:
        """Run ``fn`` with bounded exponential-backoff retries."""
        return await with_retry(
            fn,
            max_attempts=max_retries,
            base_delay=self.config.retry_backoff if backoff is None else backoff,
        )

    async def create_item(
        self,
        table: str,
        payload: Any,
        existing_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return await self.items.create(table, payload, existing_headers)

    async def update_item(
        self,
        table: str,
        item_id: ItemId,
        payload: Any,
        existing_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return await self.items.update(table, item_id, payload, existing_headers)

    async def delete_item(
        self,
        table: str,
        item_id: ItemId,
        existing_headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return await self.items.delete(table, item_id, existing_headers)

    # Lifecycle

    def clone(self) -> Client:
        """
        A new client with the same settings.

        Base URL, token, language and auth settings are copied. The clone
        has its own transport and starts with an empty store, no
        subscriptions, prefixes, registrations or pollers.
        """
        return Client(
            self.config.model_copy(deep=True),
            environ=self._environ,
            builder_class=self.builder_class,
        )

    async def close(self) -> None:
        """Stop polling, wait for issued executions and close the transport."""
        await self.scheduler.close()
        await self.transport.close()
        logger.debug("Client for %s closed", self.config.base_url)

    async def __aenter__(self) -> Client:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Client({self.config.base_url!r})"
