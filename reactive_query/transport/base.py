"""
Transport interface.

A transport carries serialized queries to the query endpoint and REST calls
to the items endpoints, and converts failures into ReactiveQueryError
subclasses.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional


class Transport(ABC):
    """Abstract JSON-over-HTTP transport."""

    @abstractmethod
    async def execute_query(
        self, query: str, headers: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        """
        POST ``{"query": query}`` to the query endpoint.

        Returns:
            The decoded response envelope (``{"data": {...}}``)
        """

    @abstractmethod
    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """Send a JSON request to ``base_url + path`` and return the decoded body."""

    async def close(self) -> None:
        """Release any held connections."""

    async def __aenter__(self) -> "Transport":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
