"""
Shared test fixtures and configuration for the reactive_query test suite.
"""

from typing import Any, Dict, List

import pytest

from helpers import FakeTransport
from reactive_query import Client, ClientConfig, QueryBuilder


@pytest.fixture
def fake_transport() -> FakeTransport:
    """Scripted transport."""
    return FakeTransport()


@pytest.fixture
def client_config() -> ClientConfig:
    """Default test configuration for Client."""
    return ClientConfig(base_url="https://cms.example.com", retry_backoff=0.0)


@pytest.fixture
def client(client_config: ClientConfig, fake_transport: FakeTransport) -> Client:
    """Client wired to the scripted transport."""
    return Client(client_config, transport=fake_transport, environ={})


@pytest.fixture
def posts_query() -> QueryBuilder:
    """A simple query on the posts table."""
    return QueryBuilder("posts").select(["id", "title"])


@pytest.fixture
def emissions(client: Client) -> List[Dict[str, Any]]:
    """Snapshots of every value emitted on the ``posts`` key."""
    received: List[Dict[str, Any]] = []
    client.listen("posts", lambda value: received.append(dict(value)))
    return received
