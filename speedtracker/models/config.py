"""Configuration models for SpeedTracker."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
    model_validator,
)

DEFAULT_WPT_URL = "https://www.webpagetest.org"
DEFAULT_PINGBACK_PATH = "/.netlify/functions/pingback"

ParameterValue = Union[bool, int, float, str]


class Profile(BaseModel):
    """A named set of WebPageTest parameters (url, connectivity, runs, ...)."""

    model_config = ConfigDict(frozen=True)

    name: str
    parameters: dict[str, ParameterValue] = Field(default_factory=dict)


class SpeedTrackerConfig(BaseModel):
    # Pingback callback
    base_url: str = ""
    pingback_path: str = DEFAULT_PINGBACK_PATH

    # Profiles
    profiles: dict[str, Profile] = Field(default_factory=dict)
    default_profile_url: Optional[str] = None

    # WebPageTest
    wpt_api_key: Optional[str] = None
    wpt_url: str = DEFAULT_WPT_URL

    # Storage
    database_path: str = "./speedtracker-results.json"

    # The "env:NAME" reference wpt_api_key was resolved from, if any.
    _wpt_api_key_ref: Optional[str] = PrivateAttr(default=None)

    @model_validator(mode="before")
    @classmethod
    def name_profiles(cls, data):
        """Fill each profile's ``name`` from its key in the ``profiles`` mapping."""
        if isinstance(data, dict) and isinstance(data.get("profiles"), dict):
            profiles = {}
            for name, profile in data["profiles"].items():
                if isinstance(profile, dict) and "name" not in profile:
                    profile = {**profile, "name": name}
                profiles[name] = profile
            data = {**data, "profiles": profiles}
        return data

    @field_validator("wpt_api_key", mode="before")
    @classmethod
    def resolve_env_api_key(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and v.startswith("env:"):
            env_var = v[4:]
            resolved = os.environ.get(env_var)
            if resolved is None:
                raise ValueError(f"Environment variable '{env_var}' not set")
            return resolved
        return v

    @model_validator(mode="wrap")
    @classmethod
    def remember_env_api_key(cls, data, handler):
        config = handler(data)
        if isinstance(data, dict):
            ref = data.get("wpt_api_key")
            if isinstance(ref, str) and ref.startswith("env:"):
                config._wpt_api_key_ref = ref
        return config

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @classmethod
    def load(cls, path: str | Path) -> "SpeedTrackerConfig":
        """Load config from a JSON file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path) as f:
            data = json.load(f)
        return cls(**data)

    def save(self, path: str | Path) -> None:
        """Save config to a JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.model_dump()
        # Never write a key that came from the environment back to disk.
        data["wpt_api_key"] = self._wpt_api_key_ref or self.wpt_api_key
        data["profiles"] = {
            name: {"parameters": profile.parameters}
            for name, profile in self.profiles.items()
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
