"""
Repeating execution of registered queries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set

from .registry import QueryRegistration, QueryRegistry

logger = logging.getLogger(__name__)

Execute = Callable[[QueryRegistration], Awaitable[Any]]
CurrentValue = Callable[[QueryRegistration], Any]
StopPredicate = Callable[[Any], bool]


class PollingScheduler:
    """
    One polling task per registration id.

    Every ``interval`` seconds a poller spawns ``execute(registration)`` as a
    separate task, so cancelling a poller never aborts a request it already
    issued.
    """

    def __init__(
        self,
        registry: QueryRegistry,
        execute: Execute,
        current_value: CurrentValue,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            registry: Registrations to poll
            execute: Runs one execution of a registration
            current_value: Reads the store value a stop predicate is
                evaluated against
        """
        self.registry = registry
        self._execute = execute
        self._current_value = current_value
        self._handles: Dict[str, asyncio.Task] = {}
        self._in_flight: Set[asyncio.Task] = set()

    @property
    def active_ids(self) -> List[str]:
        return [rid for rid, task in self._handles.items() if not task.done()]

    @property
    def in_flight(self) -> List[asyncio.Future]:
        """Executions issued by pollers that have not finished."""
        return [task for task in self._in_flight if not task.done()]

    def is_polling(self, registration_id: str) -> bool:
        task = self._handles.get(registration_id)
        return task is not None and not task.done()

    def start(self, interval: float) -> List[str]:
        """
        Start polling every registration that is not already polled.

        Must be called with a running event loop.

        Returns:
            Ids of the pollers started by this call
        """
        if interval <= 0:
            raise ValueError("Polling interval must be positive")

        started = []
        for registration_id in self.registry.ids():
            if self.is_polling(registration_id):
                continue
            self._handles[registration_id] = asyncio.create_task(
                self._poll(registration_id, interval),
                name=f"poll:{registration_id}",
            )
            started.append(registration_id)

        if started:
            logger.debug("Polling %s every %.2fs", ", ".join(started), interval)
        return started

    async def _poll(self, registration_id: str, interval: float) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                registration = self.registry.get(registration_id)
                if registration is None:
                    logger.debug("Registration %r is gone; polling stops", registration_id)
                    return
                self._spawn(registration)
        finally:
            if self._handles.get(registration_id) is asyncio.current_task():
                del self._handles[registration_id]

    def _spawn(self, registration: QueryRegistration) -> None:
        task = asyncio.ensure_future(self._execute(registration))
        self._in_flight.add(task)
        task.add_done_callback(self._on_execution_done)

    def _on_execution_done(self, task: asyncio.Future) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("Polled execution failed: %s", error, exc_info=error)

    def stop(self, predicate: StopPredicate) -> List[str]:
        """
        Evaluate ``predicate`` once per live poller against the current
        store value of its registration, cancelling those where it holds.

        Returns:
            Ids of the cancelled pollers
        """
        stopped = []
        for registration_id in list(self._handles):
            registration = self.registry.get(registration_id)
            value = self._current_value(registration) if registration else None
            if predicate(value):
                self.cancel(registration_id)
                stopped.append(registration_id)
        return stopped

    def cancel(self, registration_id: str) -> bool:
        """Cancel one poller; returns whether it was running."""
        task = self._handles.pop(registration_id, None)
        if task is None:
            return False
        task.cancel()
        logger.debug("Stopped polling %r", registration_id)
        return True

    def cancel_all(self) -> None:
        for registration_id in list(self._handles):
            self.cancel(registration_id)

    async def close(self, wait_in_flight: bool = True) -> None:
        """Cancel every poller and wait for executions already issued."""
        pollers = list(self._handles.values())
        self.cancel_all()
        if pollers:
            await asyncio.gather(*pollers, return_exceptions=True)
        if wait_in_flight and self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def __len__(self) -> int:
        return len(self.active_ids)
