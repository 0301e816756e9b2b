"""JSON-file database that keeps every profile collection in one file."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Optional

from .datastore import in_range

logger = logging.getLogger(__name__)


class JsonFileDatabase:
    """Stores collections as ``{"collections": {profile: [record, ...]}}``.

    The file is read on connect and rewritten after every insert. A file
    that exists but cannot be parsed is an error, never silently replaced.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: Optional[dict[str, Any]] = None

    async def connect(self) -> None:
        if self.path.exists():
            with open(self.path) as f:
                data = json.load(f)
            if not isinstance(data.get("collections"), dict):
                raise ValueError(f"Invalid results file: {self.path}")
            self._data = data
        else:
            self._data = {"collections": {}, "last_updated": ""}
        logger.debug("Opened results file %s", self.path)

    def disconnect(self) -> None:
        self._data = None

    def _collections(self) -> dict[str, list[dict[str, Any]]]:
        if self._data is None:
            raise RuntimeError("Database is not connected")
        return self._data["collections"]

    async def insert(self, collection: str, results: list[dict[str, Any]]) -> None:
        self._collections().setdefault(collection, []).extend(results)
        self._data["last_updated"] = time.strftime("%Y-%m-%dT%H:%M:%SZ")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(self._data, f, indent=2)
        logger.debug("Saved %d result(s) to %s/%s", len(results), self.path, collection)

    async def get(
        self,
        collection: str,
        timestamp_from: Optional[int] = None,
        timestamp_to: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        matches = [
            r for r in self._collections().get(collection, [])
            if in_range(r, timestamp_from, timestamp_to)
        ]
        return sorted(matches, key=lambda r: r["timestamp"])
