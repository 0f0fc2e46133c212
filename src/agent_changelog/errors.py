"""Exception hierarchy for changelog fetching and selection.

Adapter-level failures (transport, HTTP status, decoding) derive from
FetchError so aggregate views can catch them at the task boundary and
keep going with the remaining sources. NotFoundError and
EmptyResultError are always fatal to the caller.
"""

from __future__ import annotations


class ChangelogError(Exception):
    """Base class for every error this package raises on purpose."""

    kind = "changelog_error"


class FetchError(ChangelogError):
    """A source could not be fetched or decoded."""

    kind = "fetch_error"


class TransportError(FetchError):
    """Network or connection failure (DNS, refused, timeout)."""

    kind = "transport_error"


class HTTPStatusError(FetchError):
    """The server answered with a non-success status code."""

    kind = "http_status_error"

    def __init__(self, status_code: int, url: str, reason: str = "") -> None:
        self.status_code = status_code
        self.url = url
        self.reason = reason
        detail = f"HTTP {status_code}"
        if reason:
            detail += f" {reason}"
        super().__init__(f"{detail}: {url}")


class DecodeError(FetchError):
    """A structured payload could not be decoded into the expected shape."""

    kind = "decode_error"


class NotFoundError(ChangelogError):
    """Unknown source key, or the requested version is absent."""

    kind = "not_found"


class EmptyResultError(ChangelogError):
    """A source (or every source) produced zero entries."""

    kind = "empty_result"
