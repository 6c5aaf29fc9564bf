"""
Exception hierarchy for the EEI auditor.

Every error carries a human-readable `message` and an optional `details`
dict; the API layer maps classes to status codes. Crawl errors also carry
a `kind` used for the per-URL error classification (timeout, blocked,
network, unknown).
"""

from typing import Any


class EEIError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InputError(EEIError):
    """Missing or invalid URL / dataset key. Raised before any I/O."""


class CrawlError(EEIError):
    """A fetch failed. `kind` classifies the failure."""

    kind: str = "unknown"


class NetworkError(CrawlError):
    """Connect or DNS failure."""

    kind = "network"


class FetchTimeoutError(CrawlError):
    """Static, rendered or per-entity budget exceeded."""

    kind = "timeout"


class BlockedError(CrawlError):
    """HTTP 403/429 or a robots directive block."""

    kind = "blocked"


class HTTPStatusError(CrawlError):
    """Any other non-success HTTP status."""

    kind = "unknown"


class RenderError(EEIError):
    """Headless rendering failed or is unavailable."""


class ParseError(EEIError):
    """Malformed structured data. Counted, never fatal."""


class JobNotFoundError(EEIError):
    """No job record for the given id (missing or expired)."""


class JobConflictError(EEIError):
    """Another invocation holds the job, or the stored record moved on."""


class InternalError(EEIError):
    """Unexpected fault in scoring or aggregation."""


def classify_error(exc: BaseException) -> str:
    """Map an exception to an error kind (timeout/blocked/network/unknown)."""
    if isinstance(exc, CrawlError):
        return exc.kind
    if isinstance(exc, TimeoutError):
        return "timeout"
    return "unknown"
