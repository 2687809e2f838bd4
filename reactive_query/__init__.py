"""
Reactive data layer for content APIs.

Builds structured queries, serializes them to the query wire format,
executes them over aiohttp and keeps the results in a shared keyed store
that UI code subscribes to.

Features:
- Fluent query builder with late-bound filter injection
- Shared store with listeners and shallow or deep watchers
- Refetch with preserve/force change detection and stale-response discard
- Polling of keyed queries on asyncio tasks
- Auth header resolution and REST item passthroughs
- Pydantic configuration loadable from files and environment variables
"""

from .auth import AuthHeaderResolver, AuthResult
from .client import Client, StoreView
from .config import (
    ClientConfig,
    ConfigLoader,
    FallbackKind,
    HeaderFallbackRule,
    LoggingConfig,
    LogLevel,
    load_config,
)
from .context import ContextState, QueryContext
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    ContentError,
    ErrorHandler,
    HTTPError,
    NetworkError,
    NotFoundError,
    QueryExecutionError,
    RateLimitError,
    ReactiveQueryError,
    ServerError,
    TimeoutError,
)
from .items import ItemsClient
from .logging import setup_logging
from .polling import PollingScheduler
from .query import (
    DirectusQueryBuilder,
    QueryBuilder,
    QueryDefinition,
    QueryOptions,
    serialize_definition,
)
from .registry import QueryRegistration, QueryRegistry
from .retry import RetryConfig, with_retry
from .store import Store, SubscriptionRegistry, get_path, set_path
from .transport import HTTPTransport, Transport

__version__ = "0.1.0"

__all__ = [
    # Client
    "Client",
    "StoreView",
    "QueryContext",
    "ContextState",
    # Queries
    "QueryBuilder",
    "DirectusQueryBuilder",
    "QueryDefinition",
    "QueryOptions",
    "serialize_definition",
    "QueryRegistry",
    "QueryRegistration",
    "PollingScheduler",
    # Store
    "Store",
    "SubscriptionRegistry",
    "get_path",
    "set_path",
    # Transport and collaborators
    "Transport",
    "HTTPTransport",
    "AuthHeaderResolver",
    "AuthResult",
    "ItemsClient",
    "RetryConfig",
    "with_retry",
    # Configuration
    "ClientConfig",
    "LoggingConfig",
    "LogLevel",
    "HeaderFallbackRule",
    "FallbackKind",
    "ConfigLoader",
    "load_config",
    "setup_logging",
    # Exceptions
    "ReactiveQueryError",
    "ConfigurationError",
    "NetworkError",
    "ConnectionError",
    "TimeoutError",
    "ContentError",
    "HTTPError",
    "AuthenticationError",
    "NotFoundError",
    "RateLimitError",
    "ServerError",
    "QueryExecutionError",
    "ErrorHandler",
]
