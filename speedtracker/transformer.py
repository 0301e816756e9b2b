"""Transform WebPageTest result documents into stored result records."""

from __future__ import annotations

import math
from typing import Any
from urllib.parse import parse_qs, urlparse

from speedtracker.errors import MalformedResultError
from speedtracker.models.result import (
    RESOURCE_TYPES,
    ResourceBreakdown,
    ResourceCounts,
    ResultRecord,
    VideoFrame,
)

SCORE_METRIC = "lighthouse.ProgressiveWebApp"
BREAKDOWN_RUN = 1


def _select_run(runs: Any, number: int) -> dict[str, Any]:
    # WPT keys runs by run number as a string; accept int keys and lists too.
    if isinstance(runs, dict):
        if str(number) in runs:
            return runs[str(number)]
        return runs[number]
    return runs[number]


def _frame_image_id(image: Any) -> str | None:
    if not isinstance(image, str):
        return None
    values = parse_qs(urlparse(image).query).get("file")
    return values[0] if values else None


def _score(average: dict[str, Any]) -> int | None:
    value = average.get(SCORE_METRIC)
    # A reported null counts as no score.
    if value is None:
        return None
    if not math.isfinite(value):
        raise ValueError(f"Non-finite score: {value!r}")
    return math.floor(value * 100)


def _build_record(data: dict[str, Any]) -> ResultRecord:
    first_view = _select_run(data["runs"], BREAKDOWN_RUN)["firstView"]
    average = data["average"]["firstView"]
    breakdown = first_view["breakdown"]

    return ResultRecord(
        id=data["id"],
        timestamp=data["completed"],
        date=data["completed"],
        load_time=average["loadTime"],
        ttfb=average["TTFB"],
        dom_interactive=average["domInteractive"],
        first_paint=average["firstPaint"],
        visual_complete=average["visualComplete"],
        fully_loaded=average["fullyLoaded"],
        render=average["render"],
        speed_index=average["SpeedIndex"],
        dom_elements=average["domElements"],
        score=_score(average),
        breakdown=ResourceBreakdown(**{
            kind: ResourceCounts(
                bytes=breakdown[kind]["bytes"],
                requests=breakdown[kind]["requests"],
            )
            for kind in RESOURCE_TYPES
        }),
        video_frames=[
            VideoFrame(
                image_id=_frame_image_id(frame.get("image")),
                time=frame["time"],
                visually_complete=frame["VisuallyComplete"],
            )
            for frame in first_view["videoFrames"]
        ],
    )


def build_result_record(data: dict[str, Any]) -> ResultRecord:
    """Build a :class:`ResultRecord` from the ``data`` member of a WPT result.

    Breakdown and video frames come from the first view of run 1; every
    single-value metric comes from the averaged first view. Raises
    :class:`MalformedResultError` if the document lacks any of it.
    """
    try:
        return _build_record(data)
    except (KeyError, IndexError, TypeError, AttributeError, ValueError, OverflowError) as e:
        raise MalformedResultError(f"Malformed test result document: {e!r}") from e
