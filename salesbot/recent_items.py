from __future__ import annotations

import itertools
import threading
from collections import OrderedDict
from typing import Dict, List, Optional

from .catalog import Product


class RecentItems:
    """Bounded per-user cache of the products a user most recently resolved."""

    def __init__(self, max_items: int = 10, max_users: Optional[int] = None) -> None:
        """Purpose: Initialize the cache with per-user and global caps.
        Inputs/Outputs: Inputs are max_items per user and optional max_users; no return.
        Side Effects / State: Creates empty in-memory caches guarded by a lock.
        Dependencies: None beyond OrderedDict and threading.
        Failure Modes: max_items below 1 raises ValueError.
        If Removed: "recent" replies have nothing to list.
        Testing Notes: Record 11 products for one user and expect the oldest evicted.
        """
        # Keep configuration and per-user ordered caches.
        if max_items < 1:
            raise ValueError("max_items must be at least 1")
        self._max_items = max_items
        self._max_users = max_users
        self._items: Dict[str, "OrderedDict[str, Product]"] = {}
        self._touched: Dict[str, int] = {}
        self._clock = itertools.count()
        self._lock = threading.Lock()

    @staticmethod
    def _key(product: Product) -> str:
        return product.code or product.name

    def record(self, user_id: str, product: Product) -> None:
        """Purpose: Mark a product as most recently matched for a user.
        Inputs/Outputs: Inputs are user_id and Product; no return value.
        Side Effects / State: Mutates the user's cache and prunes old users.
        Dependencies: Uses _key and _prune_users.
        Failure Modes: Blank user_id is ignored.
        If Removed: Recent lookups are never remembered.
        Testing Notes: Recording the same product twice keeps one entry at the front.
        """
        # Move to the newest end, then evict from the oldest end.
        if not user_id:
            return
        with self._lock:
            items = self._items.setdefault(user_id, OrderedDict())
            key = self._key(product)
            items.pop(key, None)
            items[key] = product
            while len(items) > self._max_items:
                items.popitem(last=False)
            self._touched[user_id] = next(self._clock)
            self._prune_users()

    def get(self, user_id: str) -> List[Product]:
        """Return the user's products, most recent first."""
        with self._lock:
            items = self._items.get(user_id)
            if not items:
                return []
            return list(reversed(items.values()))

    def clear(self, user_id: str) -> None:
        with self._lock:
            self._items.pop(user_id, None)
            self._touched.pop(user_id, None)

    def _prune_users(self) -> bool:
        # Caller holds the lock.
        if not self._max_users or self._max_users <= 0:
            return False
        if len(self._items) <= self._max_users:
            return False
        ordered = sorted(self._touched.items(), key=lambda pair: pair[1], reverse=True)
        keep = {user_id for user_id, _ in ordered[: self._max_users]}
        removed = [user_id for user_id in list(self._items.keys()) if user_id not in keep]
        for user_id in removed:
            self._items.pop(user_id, None)
            self._touched.pop(user_id, None)
        return bool(removed)
