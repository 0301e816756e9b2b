"""In-memory database, for tests and one-off runs."""

from __future__ import annotations

import copy
from typing import Any, Optional

from .datastore import in_range


class InMemoryDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, list[dict[str, Any]]] = {}
        self.connected = False
        self.connect_count = 0
        self.disconnect_count = 0

    async def connect(self) -> None:
        self.connected = True
        self.connect_count += 1

    def disconnect(self) -> None:
        self.connected = False
        self.disconnect_count += 1

    async def insert(self, collection: str, results: list[dict[str, Any]]) -> None:
        self.collections.setdefault(collection, []).extend(copy.deepcopy(results))

    async def get(
        self,
        collection: str,
        timestamp_from: Optional[int] = None,
        timestamp_to: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        matches = [
            copy.deepcopy(r)
            for r in self.collections.get(collection, [])
            if in_range(r, timestamp_from, timestamp_to)
        ]
        return sorted(matches, key=lambda r: r["timestamp"])
