"""
Per-key listeners and watchers.

Listeners receive every value emitted for a key. Watchers receive a
projection of it: a top-level property (shallow) or a dotted path (deep),
and only when that projection exists.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from .paths import MISSING, get_path

logger = logging.getLogger(__name__)

Listener = Callable[[Any], Any]
Unsubscribe = Callable[[], None]


@dataclass(eq=False)
class Watcher:
    """A projection of a store key's value delivered to a callback."""

    prop: str
    callback: Listener
    deep: bool = False

    def project(self, value: Any) -> Any:
        """The watched part of ``value``, or MISSING."""
        if self.deep:
            return get_path(value, self.prop, MISSING)
        if isinstance(value, Mapping):
            return value.get(self.prop, MISSING)
        return get_path(value, [self.prop], MISSING)


class SubscriptionRegistry:
    """Listener and watcher lists keyed by store key."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._watchers: Dict[str, List[Watcher]] = defaultdict(list)

    def listen(self, key: str, callback: Listener) -> Unsubscribe:
        """
        Register ``callback`` for every emission on ``key``.

        Returns:
            A callable that removes this listener
        """
        self._listeners[key].append(callback)
        return lambda: self.unlisten(key, callback)

    def unlisten(self, key: str, callback: Listener) -> None:
        """Remove ``callback`` from ``key``'s listeners (all registrations of it)."""
        if key not in self._listeners:
            return
        remaining = [fn for fn in self._listeners[key] if fn != callback]
        if remaining:
            self._listeners[key] = remaining
        else:
            del self._listeners[key]

    def watch(self, key: str, prop: str, callback: Listener) -> Unsubscribe:
        """Watch the top-level property ``prop`` of ``key``'s value."""
        return self._add_watcher(key, Watcher(prop, callback, deep=False))

    def watch_deep(self, key: str, path: str, callback: Listener) -> Unsubscribe:
        """Watch the dotted ``path`` inside ``key``'s value."""
        return self._add_watcher(key, Watcher(path, callback, deep=True))

    def _add_watcher(self, key: str, watcher: Watcher) -> Unsubscribe:
        self._watchers[key].append(watcher)

        def unsubscribe() -> None:
            if key not in self._watchers:
                return
            remaining = [w for w in self._watchers[key] if w is not watcher]
            if remaining:
                self._watchers[key] = remaining
            else:
                del self._watchers[key]

        return unsubscribe

    def emit(self, key: str, value: Any) -> None:
        """
        Deliver ``value`` synchronously to ``key``'s subscribers.

        Listeners run first, then watchers, each in registration order.
        A subscriber that raises is logged and does not stop delivery.
        """
        for callback in list(self._listeners.get(key, ())):
            self._deliver(key, callback, value)

        for watcher in list(self._watchers.get(key, ())):
            projected = watcher.project(value)
            if projected is not MISSING:
                self._deliver(key, watcher.callback, projected)

    def _deliver(self, key: str, callback: Listener, value: Any) -> None:
        try:
            callback(value)
        except Exception:
            logger.exception("Subscriber for store key %r raised", key)

    def listener_count(self, key: str) -> int:
        """Number of listeners registered under ``key``."""
        return len(self._listeners.get(key, ()))

    def watcher_count(self, key: str) -> int:
        """Number of watchers registered under ``key``."""
        return len(self._watchers.get(key, ()))

    def clear(self) -> None:
        """Drop every listener and watcher."""
        self._listeners.clear()
        self._watchers.clear()
