"""Pingback authentication against the shared WebPageTest secret."""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional


def pingback_token(secret: str) -> str:
    """Derive the token embedded in pingback URLs from the shared secret."""
    return hashlib.sha1(secret.encode()).hexdigest()


def is_authorized(token: Optional[str], secret: Optional[str]) -> bool:
    """Check a pingback token. Denies when either side is missing."""
    if not secret or not token or not isinstance(token, str):
        return False
    return hmac.compare_digest(pingback_token(secret).encode(), token.encode())
