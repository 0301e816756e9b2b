"""Stored result records produced from WebPageTest results."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

RESOURCE_TYPES = ("css", "flash", "font", "html", "image", "js", "other", "video")


class ResourceCounts(BaseModel):
    bytes: int = Field(default=0, ge=0)
    requests: int = Field(default=0, ge=0)


class ResourceBreakdown(BaseModel):
    """Bytes and request counts per resource type for a single run."""
    css: ResourceCounts = Field(default_factory=ResourceCounts)
    flash: ResourceCounts = Field(default_factory=ResourceCounts)
    font: ResourceCounts = Field(default_factory=ResourceCounts)
    html: ResourceCounts = Field(default_factory=ResourceCounts)
    image: ResourceCounts = Field(default_factory=ResourceCounts)
    js: ResourceCounts = Field(default_factory=ResourceCounts)
    other: ResourceCounts = Field(default_factory=ResourceCounts)
    video: ResourceCounts = Field(default_factory=ResourceCounts)


class VideoFrame(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    image_id: Optional[str] = None  # ``file`` query parameter of the frame image
    time: int = Field(ge=0)  # ms since navigation start
    visually_complete: float = Field(ge=0)  # percent


class ResultRecord(BaseModel):
    """One completed test, as persisted in a profile's collection."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str
    timestamp: int = Field(ge=0)
    date: int = Field(ge=0)

    # Averaged first-view metrics (ms unless noted)
    load_time: float = Field(ge=0)
    ttfb: float = Field(ge=0)
    dom_interactive: float = Field(ge=0)
    first_paint: float = Field(ge=0)
    visual_complete: float = Field(ge=0)
    fully_loaded: float = Field(ge=0)
    render: float = Field(ge=0)
    speed_index: float = Field(ge=0)
    dom_elements: float = Field(ge=0)  # count, averaged across runs
    score: Optional[int] = Field(ge=0, le=100)  # None when the test reported no score

    breakdown: ResourceBreakdown = Field(default_factory=ResourceBreakdown)
    video_frames: list[VideoFrame] = Field(default_factory=list)
