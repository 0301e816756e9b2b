"""Data-access interface and the connection discipline around it."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Protocol, runtime_checkable

from speedtracker.errors import StorageError
from speedtracker.models.result import ResultRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class Database(Protocol):
    """Anything that can store result records in named collections."""

    async def connect(self) -> None: ...

    def disconnect(self) -> None: ...

    async def insert(self, collection: str, results: list[dict[str, Any]]) -> Any: ...

    async def get(
        self,
        collection: str,
        timestamp_from: Optional[int] = None,
        timestamp_to: Optional[int] = None,
    ) -> list[dict[str, Any]]: ...


def in_range(record: dict[str, Any], timestamp_from: Optional[int], timestamp_to: Optional[int]) -> bool:
    """Inclusive timestamp filter shared by the bundled databases."""
    timestamp = record.get("timestamp")
    if timestamp is None:
        return False
    if timestamp_from is not None and timestamp < timestamp_from:
        return False
    if timestamp_to is not None and timestamp > timestamp_to:
        return False
    return True


class DataStore:
    """Wraps a :class:`Database`, connecting before and disconnecting after every call."""

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _connection(self) -> AsyncIterator[Database]:
        await self.database.connect()
        try:
            yield self.database
        finally:
            self.database.disconnect()

    async def insert(self, profile: str, data: ResultRecord | list[ResultRecord]) -> None:
        """Store one or more records in the profile's collection."""
        records = data if isinstance(data, list) else [data]
        results = [record.model_dump() for record in records]
        try:
            async with self._connection() as db:
                await db.insert(collection=profile, results=results)
        except Exception as e:
            logger.error("Failed to insert %d result(s) for profile %s: %s", len(results), profile, e)
            raise StorageError(str(e)) from e
        logger.debug("Inserted %d result(s) for profile %s", len(results), profile)
        return None

    async def get(
        self,
        profile: str,
        timestamp_from: Optional[int] = None,
        timestamp_to: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Fetch records in the profile's collection within [from, to]."""
        try:
            async with self._connection() as db:
                results = await db.get(
                    collection=profile,
                    timestamp_from=timestamp_from,
                    timestamp_to=timestamp_to,
                )
        except Exception as e:
            logger.error("Failed to get results for profile %s: %s", profile, e)
            raise StorageError(str(e)) from e
        return list(results)
