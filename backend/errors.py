"""GlowPath Backend — Error taxonomy

Every failure aborts the operation it occurs in and reaches the caller with a
human-readable message. Routes map each class onto an HTTP status.
"""

from typing import Optional


class GlowPathError(Exception):
    """Base class for every failure surfaced to a GlowPath caller."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(GlowPathError):
    """Place resolution returned nothing (the user can refine the query)."""

    status_code = 404


class InvalidInputError(GlowPathError):
    """Caller-supplied input is unusable, e.g. a non-finite radiance override."""

    status_code = 422


class UpstreamFailure(GlowPathError):
    """A collaborator returned a non-success status or a malformed payload."""

    status_code = 502

    def __init__(self, source: str, detail: str = "", upstream_status: Optional[int] = None):
        message = f"{source} failed"
        if upstream_status is not None:
            message += f" ({upstream_status})"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.source = source
        self.detail = detail
        self.upstream_status = upstream_status


class ValidationFailure(UpstreamFailure):
    """Model output did not match the classification schema."""
