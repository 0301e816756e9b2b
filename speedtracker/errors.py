"""Error taxonomy shared by the controller and its collaborators."""

from __future__ import annotations


class SpeedTrackerError(Exception):
    """Base error. ``status_code`` is the HTTP-style status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RequestValidationError(SpeedTrackerError):
    status_code = 400


class MissingURLError(RequestValidationError):
    def __init__(self, message: str = "Missing parameter: url"):
        super().__init__(message)


class AuthError(SpeedTrackerError):
    status_code = 403


class NotFoundError(SpeedTrackerError):
    status_code = 404


class ProfileNotFoundError(NotFoundError):
    def __init__(self, profile: str | None):
        super().__init__("Invalid profile")
        self.profile = profile


class UpstreamError(SpeedTrackerError):
    """A call to the WebPageTest service failed."""

    status_code = 500


class MalformedResultError(UpstreamError):
    """A WebPageTest result document is missing the structure we need."""


class StorageError(SpeedTrackerError):
    """A data-access call failed. ``message`` is the underlying error text."""

    status_code = 500
