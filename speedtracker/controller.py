"""Controller: runs tests, accepts pingbacks and serves stored results."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from speedtracker.auth import is_authorized, pingback_token
from speedtracker.errors import (
    AuthError,
    MalformedResultError,
    MissingURLError,
    ProfileNotFoundError,
    RequestValidationError,
    SpeedTrackerError,
    StorageError,
    UpstreamError,
)
from speedtracker.models.config import SpeedTrackerConfig
from speedtracker.profiles import (
    build_pingback_url,
    profile_exists,
    resolve_parameters,
    resolve_profile,
)
from speedtracker.storage.datastore import Database, DataStore
from speedtracker.transformer import build_result_record
from speedtracker.wpt.client import WebPageTestClient

logger = logging.getLogger(__name__)

Handler = Callable[[Mapping[str, Any]], Awaitable["Response"]]


@dataclass(frozen=True)
class Response:
    """HTTP-style outcome of a controller operation. ``body`` is JSON text."""
    status_code: int
    body: str

    @classmethod
    def ok(cls, payload: Any) -> "Response":
        return cls(status_code=200, body=json.dumps(payload))

    @classmethod
    def error(cls, status_code: int, message: str) -> "Response":
        return cls(status_code=status_code, body=json.dumps({"error": message}))

    def json(self) -> Any:
        return json.loads(self.body)


def _parse_timestamp(name: str, value: Optional[str | int]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise RequestValidationError(f"Invalid parameter: {name}") from None


class Controller:
    """Sequences the WebPageTest client and the data store for each operation."""

    def __init__(
        self,
        config: SpeedTrackerConfig,
        database: Database,
        client: Optional[WebPageTestClient] = None,
    ):
        self.config = config
        self.datastore = DataStore(database)
        self.wpt = client or WebPageTestClient(config.wpt_url, config.wpt_api_key)
        self._functions: dict[str, Handler] = {
            "pingback": lambda params: self.process_result(
                id=params.get("id"), key=params.get("key"), profile=params.get("profile"),
            ),
            "results": lambda params: self.get_results(
                profile=params.get("profile"), from_=params.get("from"), to=params.get("to"),
            ),
            "test": lambda params: self.run_test(profile=params.get("profile")),
        }

    def get_function(self, name: str) -> Handler:
        """Return the handler for ``test``, ``pingback`` or ``results``.

        Each handler takes the request's query parameters and returns a
        coroutine resolving to a :class:`Response`.
        """
        return self._functions[name]

    async def run_test(self, profile: Optional[str]) -> Response:
        try:
            resolved = resolve_profile(
                profile, self.config.profiles, self.config.default_profile_url,
            )
            pingback = build_pingback_url(
                self.config.base_url,
                self.config.pingback_path,
                pingback_token(self.config.wpt_api_key or ""),
                profile,
            )
            parameters = resolve_parameters(resolved, pingback)
        except ProfileNotFoundError as e:
            logger.warning("Test requested for unknown profile %r", profile)
            return Response.error(e.status_code, e.message)
        except MissingURLError as e:
            logger.warning("Profile %r has no url", profile)
            return Response.error(e.status_code, e.message)

        try:
            acknowledgement = await self.wpt.run_test(parameters["url"], parameters)
        except UpstreamError as e:
            logger.error("Could not run test for profile %s: %s", profile, e)
            return Response.error(e.status_code, "Could not run test")

        logger.info("Started test for profile %s", profile)
        return Response.ok(acknowledgement)

    def _check_pingback(self, id: Optional[str], key: Optional[str], profile: Optional[str]) -> None:
        # Key is checked before any other parameter.
        if not is_authorized(key, self.config.wpt_api_key):
            raise AuthError("Invalid key")
        if not isinstance(id, str) or not id:
            raise RequestValidationError("Missing parameter: id")
        if not profile_exists(profile, self.config.profiles):
            raise ProfileNotFoundError(profile)

    async def process_result(
        self, id: Optional[str], key: Optional[str], profile: Optional[str],
    ) -> Response:
        try:
            self._check_pingback(id, key, profile)
        except SpeedTrackerError as e:
            logger.warning("Rejected pingback for test %r (profile=%r): %s", id, profile, e.message)
            return Response.error(e.status_code, e.message)

        try:
            data = await self.wpt.get_test_results(id)
        except UpstreamError as e:
            logger.error("Could not get results for test %s: %s", id, e)
            return Response.error(e.status_code, f"Could not get results for test {id}")

        try:
            record = build_result_record(data)
        except MalformedResultError as e:
            logger.exception("Could not process results for test %s", id)
            return Response.error(e.status_code, f"Could not process results for test {id}")

        try:
            acknowledgement = await self.datastore.insert(profile, record)
        except StorageError as e:
            return Response.error(e.status_code, e.message)

        logger.info("Stored results for test %s in profile %s", id, profile)
        return Response.ok(acknowledgement)

    async def get_results(
        self,
        profile: Optional[str],
        from_: Optional[str | int] = None,
        to: Optional[str | int] = None,
    ) -> Response:
        if not isinstance(profile, str):
            return Response.error(400, "Missing parameter: profile")

        try:
            timestamp_from = _parse_timestamp("from", from_)
            timestamp_to = _parse_timestamp("to", to)
        except RequestValidationError as e:
            return Response.error(e.status_code, e.message)

        try:
            results = await self.datastore.get(profile, timestamp_from, timestamp_to)
        except StorageError as e:
            return Response.error(e.status_code, e.message)

        logger.debug("Returning %d result(s) for profile %s", len(results), profile)
        return Response.ok(results)
