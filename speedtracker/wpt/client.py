"""Async WebPageTest API client."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from speedtracker.errors import UpstreamError

logger = logging.getLogger(__name__)

# httpx logs full request URLs at INFO; ours carry the API key and pingback key.
logging.getLogger("httpx").setLevel(logging.WARNING)

# Profile parameter names that differ from the runtest.php query names.
QUERY_NAMES = {
    "firstViewOnly": "fvonly",
    "emulateMobile": "mobile",
    "disableJavaScript": "noscript",
    "keepOriginalUserAgent": "keepua",
}


def to_query(parameters: dict[str, Any]) -> dict[str, str]:
    """Translate resolved parameters into runtest.php query parameters."""
    query = {}
    for name, value in parameters.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = 1 if value else 0
        query[QUERY_NAMES.get(name, name)] = str(value)
    return query


class WebPageTestClient:
    """Submits tests to a WebPageTest instance and fetches their results."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def _get_json(self, path: str, params: dict[str, str]) -> dict[str, Any]:
        url = f"{self.base_url}/{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": "speedtracker"},
            ) as http_client:
                response = await http_client.get(url, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.error("WebPageTest request to %s failed with HTTP %d", path, status)
            raise UpstreamError(f"WebPageTest request to {path} failed with HTTP {status}") from e
        except httpx.HTTPError as e:
            # str(e) can embed the request URL, so only the error type is reported.
            reason = type(e).__name__
            logger.error("WebPageTest request to %s failed: %s", path, reason)
            raise UpstreamError(f"WebPageTest request to {path} failed: {reason}") from e
        except ValueError as e:
            logger.error("WebPageTest returned invalid JSON from %s", path)
            raise UpstreamError("WebPageTest returned invalid JSON") from e

        if not isinstance(payload, dict):
            raise UpstreamError("WebPageTest returned an unexpected response")

        status = payload.get("statusCode", 200)
        if not isinstance(status, int) or not 200 <= status < 300:
            message = payload.get("statusText", "unknown error")
            logger.error("WebPageTest %s returned status %s: %s", path, status, message)
            raise UpstreamError(f"WebPageTest error {status}: {message}")
        return payload

    async def run_test(self, url: str, parameters: dict[str, Any]) -> dict[str, Any]:
        """Start a test. Completion arrives later through the pingback URL."""
        params = to_query({k: v for k, v in parameters.items() if k != "url"})
        params["url"] = url
        params["f"] = "json"
        if self.api_key:
            params["k"] = self.api_key

        logger.info("Submitting WebPageTest run for %s", url)
        payload = await self._get_json("runtest.php", params)
        test_id = (payload.get("data") or {}).get("testId")
        logger.info("WebPageTest accepted test %s", test_id)
        return payload

    async def get_test_results(self, test_id: str) -> dict[str, Any]:
        """Fetch the full result document (the ``data`` member) for a test."""
        logger.info("Fetching WebPageTest results for %s", test_id)
        payload = await self._get_json("jsonResult.php", {"test": test_id})
        data = payload.get("data")
        if not isinstance(data, dict):
            raise UpstreamError(f"No result data for test {test_id}")
        return data
