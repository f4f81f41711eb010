"""
Errors raised by the preload layer.

The coordinator records fetch failures instead of raising them; these types
exist so the places that do surface a failure (explicit refresh, caller-side
timeouts) share one shape with a resource name and a message.
"""

from .models import ResourceName


class PreloadError(Exception):
    """Base class. `str(error)` is the human-readable message."""

    def __init__(self, resource: ResourceName, message: str) -> None:
        super().__init__(message)
        self.resource = resource
        self.message = message


class FetchError(PreloadError):
    """A data-access call returned an error or raised."""
    pass


class RefreshError(PreloadError):
    """A user-initiated refresh failed. Raised by the provider, never the coordinator."""
    pass


class PreloadTimeoutError(PreloadError):
    """The caller's deadline passed before the fetch settled."""

    def __init__(self, resource: ResourceName, timeout_seconds: float) -> None:
        super().__init__(
            resource,
            f"Timed out loading {resource.value} after {timeout_seconds:g}s",
        )
        self.timeout_seconds = timeout_seconds
