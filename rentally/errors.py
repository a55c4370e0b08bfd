from __future__ import annotations


class DiscoveryError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DiscoveryError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(DiscoveryError):
    status_code = 404
    default_message = "Not found"


class UpstreamUnavailable(DiscoveryError):
    status_code = 500
    default_message = "Upstream service unavailable"


class CoordinatesUnavailable(UpstreamUnavailable):
    default_message = (
        "Could not determine your location. Please provide coordinates manually "
        "(latitude and longitude as query parameters)."
    )
