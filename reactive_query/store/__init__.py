"""
Shared store, subscriptions and deep path helpers.
"""

from .paths import MISSING, get_path, has_path, set_path, split_path
from .store import Store
from .subscriptions import SubscriptionRegistry, Watcher

__all__ = [
    "Store",
    "SubscriptionRegistry",
    "Watcher",
    "MISSING",
    "get_path",
    "has_path",
    "set_path",
    "split_path",
]
