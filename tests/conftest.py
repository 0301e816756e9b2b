"""Pytest configuration and shared fixtures."""

import copy
from typing import Any
from unittest.mock import AsyncMock

import pytest

from speedtracker.auth import pingback_token
from speedtracker.controller import Controller
from speedtracker.models.config import Profile, SpeedTrackerConfig
from speedtracker.storage.memory import InMemoryDatabase
from speedtracker.wpt.client import WebPageTestClient

API_KEY = "wpt-secret-key"


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def api_key() -> str:
    return API_KEY


@pytest.fixture
def valid_key() -> str:
    """Pingback key matching the configured API key."""
    return pingback_token(API_KEY)


@pytest.fixture
def homepage_profile() -> Profile:
    return Profile(
        name="homepage",
        parameters={
            "url": "https://example.com",
            "connectivity": "3G",
            "runs": 3,
        },
    )


@pytest.fixture
def speedtracker_config(homepage_profile: Profile) -> SpeedTrackerConfig:
    """Create a test configuration with a single registered profile."""
    return SpeedTrackerConfig(
        base_url="https://tracker.example.com",
        profiles={
            "homepage": homepage_profile,
            "no-url": Profile(name="no-url", parameters={"connectivity": "Cable"}),
        },
        default_profile_url="http://example.com",
        wpt_api_key=API_KEY,
    )


# ============================================================================
# WebPageTest Fixtures
# ============================================================================


def _breakdown() -> dict[str, Any]:
    sizes = {
        "css": (12000, 3), "flash": (0, 0), "font": (40000, 2), "html": (8000, 1),
        "image": (250000, 14), "js": (180000, 9), "other": (1200, 2), "video": (0, 0),
    }
    return {
        kind: {"bytes": b, "requests": r, "bytesUncompressed": b * 2}
        for kind, (b, r) in sizes.items()
    }


def _first_view() -> dict[str, Any]:
    return {
        "loadTime": 2100,
        "TTFB": 320,
        "domInteractive": 1500,
        "firstPaint": 900,
        "visualComplete": 2400,
        "fullyLoaded": 3100,
        "render": 950,
        "SpeedIndex": 1320,
        "domElements": 512,
        "lighthouse.ProgressiveWebApp": 0.456,
    }


@pytest.fixture
def wpt_result() -> dict[str, Any]:
    """A WebPageTest jsonResult.php ``data`` document."""
    run_view = _first_view()
    run_view["breakdown"] = _breakdown()
    run_view["videoFrames"] = [
        {
            "time": 0,
            "image": "https://www.webpagetest.org/getfile.php?test=180101_AB_1&file=video_1/frame_0000.jpg",
            "VisuallyComplete": 0,
        },
        {
            "time": 900,
            "image": "https://www.webpagetest.org/getfile.php?test=180101_AB_1&file=video_1/frame_0009.jpg",
            "VisuallyComplete": 64,
        },
        {
            "time": 2400,
            "image": "https://www.webpagetest.org/getfile.php?test=180101_AB_1&file=video_1/frame_0024.jpg",
            "VisuallyComplete": 100,
        },
    ]
    return {
        "id": "180101_AB_1",
        "url": "https://example.com",
        "completed": 1514764800,
        "runs": {"1": {"firstView": run_view}},
        "average": {"firstView": _first_view()},
    }


@pytest.fixture
def make_wpt_result(wpt_result):
    """Factory returning a copy of ``wpt_result`` with a new id and completion time."""
    def _make(test_id: str, completed: int) -> dict[str, Any]:
        data = copy.deepcopy(wpt_result)
        data["id"] = test_id
        data["completed"] = completed
        return data
    return _make


@pytest.fixture
def mock_wpt(wpt_result) -> AsyncMock:
    client = AsyncMock(spec=WebPageTestClient)
    client.run_test.return_value = {
        "statusCode": 200,
        "statusText": "Ok",
        "data": {"testId": "180101_AB_1", "userUrl": "https://www.webpagetest.org/result/180101_AB_1/"},
    }
    client.get_test_results.return_value = wpt_result
    return client


# ============================================================================
# Controller Fixtures
# ============================================================================


@pytest.fixture
def database() -> InMemoryDatabase:
    return InMemoryDatabase()


@pytest.fixture
def controller(speedtracker_config, database, mock_wpt) -> Controller:
    return Controller(speedtracker_config, database, client=mock_wpt)
