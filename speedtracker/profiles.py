"""Profile lookup and WebPageTest parameter resolution."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlencode

from speedtracker.errors import MissingURLError, ProfileNotFoundError
from speedtracker.models.config import Profile

logger = logging.getLogger(__name__)

DEFAULT_PROFILE_NAME = "default"

# Fallbacks, used only where the profile leaves a parameter undefined.
DEFAULT_PARAMETERS: dict[str, Any] = {
    "connectivity": "Cable",
    "lighthouse": True,
    "firstViewOnly": True,
    "runs": 1,
}


def profile_exists(name: Optional[str], profiles: Mapping[str, Profile]) -> bool:
    """True for registered profiles and for the reserved default name."""
    return name == DEFAULT_PROFILE_NAME or (isinstance(name, str) and name in profiles)


def resolve_profile(
    name: Optional[str],
    profiles: Mapping[str, Profile],
    default_profile_url: Optional[str] = None,
) -> Profile:
    """Look up a profile, synthesizing the default one from a fallback URL."""
    if isinstance(name, str) and name in profiles:
        return profiles[name]

    if (
        name == DEFAULT_PROFILE_NAME
        and isinstance(default_profile_url, str)
        and default_profile_url.startswith("http")
    ):
        logger.debug("Using default profile URL for profile %r", name)
        return Profile(name=DEFAULT_PROFILE_NAME, parameters={"url": default_profile_url})

    raise ProfileNotFoundError(name)


def build_pingback_url(base_url: str, pingback_path: str, token: str, profile_name: str) -> str:
    query = urlencode({"key": token, "profile": profile_name})
    return f"{base_url.rstrip('/')}{pingback_path}?{query}"


def resolve_parameters(profile: Profile, pingback_url: str) -> dict[str, Any]:
    """Merge defaults, profile parameters and forced overrides.

    Overrides win over the profile, which wins over the defaults. The
    result must carry a non-empty ``url``.
    """
    overrides = {
        "pingback": pingback_url,
        "video": True,
    }
    parameters = {**DEFAULT_PARAMETERS, **profile.parameters, **overrides}

    if not parameters.get("url"):
        raise MissingURLError()

    return parameters
