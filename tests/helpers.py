"""
Scripted transport and helpers shared by the reactive_query tests.
"""

import asyncio
from collections import deque
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from reactive_query.transport import Transport


@dataclass
class Gated:
    """A scripted response held back until ``gate`` is set."""

    gate: asyncio.Event
    response: Any


def envelope(rows: Any, alias: str = "data") -> Dict[str, Any]:
    """Build a query response envelope."""
    return {"data": {alias: rows}}


class FakeTransport(Transport):
    """
    Transport returning scripted responses.

    Queued items are envelopes, exceptions (raised) or Gated wrappers.
    When the queue is empty ``default`` is returned.
    """

    def __init__(self) -> None:
        self.responses: deque = deque()
        self.default: Any = envelope([])
        self.queries: List[Tuple[str, Dict[str, str]]] = []
        self.requests: List[Tuple[str, str, Any, Dict[str, str]]] = []
        self.request_result: Any = {"data": {"id": 1}}
        self.closed = False

    def queue(self, *responses: Any) -> "FakeTransport":
        self.responses.extend(responses)
        return self

    async def execute_query(
        self, query: str, headers: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        self.queries.append((query, dict(headers or {})))
        response = self.responses.popleft() if self.responses else self.default
        if isinstance(response, Gated):
            await response.gate.wait()
            response = response.response
        if isinstance(response, Exception):
            raise response
        return response

    async def request(
        self,
        method: str,
        path: str,
        payload: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        self.requests.append((method, path, payload, dict(headers or {})))
        return self.request_result

    async def close(self) -> None:
        self.closed = True

    @property
    def last_query(self) -> str:
        return self.queries[-1][0]


async def until(predicate, attempts: int = 100, delay: float = 0.0) -> None:
    """Yield to the event loop until ``predicate()`` holds."""
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(delay)
    raise AssertionError("condition not reached")
