"""Error taxonomy for the address-to-route pipeline.

Collaborator failures are caught at the component that called the collaborator
and re-raised as one of these, so the controller only ever sees this hierarchy.
"""


class RouteWiseError(Exception):
    """Base class for every error the pipeline reports to the user."""


class ValidationError(RouteWiseError):
    """Caller misuse, rejected before any network call is made."""


class UpstreamError(RouteWiseError):
    """The optimizer or recognizer failed, or returned malformed output."""


class GeocodingFailed(RouteWiseError):
    """Not a single address in the batch could be geocoded."""

    def __init__(self, message: str = "Could not geocode any address.", failures: list[str] | None = None):
        super().__init__(message)
        self.failures = failures or []


class DirectionsUnavailable(RouteWiseError):
    """The directions provider did not return a route."""

    def __init__(self, message: str = "Could not calculate directions for the optimized route.", status: str | None = None):
        super().__init__(message)
        self.status = status


class IndexOutOfRange(RouteWiseError, IndexError):
    """Removal index does not point at an address in the list."""
