"""HTTP fetcher for raw changelog documents and GitHub API payloads.

Every network call in the package goes through a fetcher, and every
httpx failure is translated here into one of our own error kinds:

- connection problems and timeouts -> TransportError
- non-2xx responses               -> HTTPStatusError (carries the status)
- bodies that are not valid JSON  -> DecodeError

Design notes:
- Uses httpx for async HTTP requests, one client per call so concurrent
  tasks never share connection state
- No retries and no rate-limit backoff; a failed call is final
- Adapters code against FetcherProtocol, so tests use MockFetcher and
  never touch the network
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from agent_changelog import __version__
from agent_changelog.errors import DecodeError, HTTPStatusError, TransportError
from agent_changelog.logging_config import get_logger

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class FetcherProtocol(Protocol):
    """Interface the source adapters depend on."""

    async def get_text(self, url: str, params: dict[str, Any] | None = None) -> str:
        """Fetch a document and return its decoded text."""
        ...

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """Fetch a document and return its decoded JSON value."""
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class HTTPFetcher:
    """Real fetcher using httpx.

    Usage:
        fetcher = HTTPFetcher(timeout=10.0)
        text = await fetcher.get_text("https://example.com/CHANGELOG.md")
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self._timeout = timeout
        self._transport = transport
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github+json, text/plain;q=0.9, */*;q=0.8",
            "User-Agent": f"agent-changelog/{__version__}",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def get_text(self, url: str, params: dict[str, Any] | None = None) -> str:
        response = await self._get(url, params)
        return response.text

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._get(url, params)
        try:
            return response.json()
        except ValueError as exc:
            raise DecodeError(f"Invalid JSON from {url}: {exc}") from exc

    async def _get(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        """Perform one GET and translate failures into our error kinds.

        Raises:
            TransportError: The request never produced a response
            HTTPStatusError: The response status was not 2xx
        """
        logger.debug("fetch_started", url=url, params=params)
        try:
            async with httpx.AsyncClient(
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url, params=params)
        except httpx.RequestError as exc:
            logger.debug("fetch_failed", url=url, error=str(exc))
            raise TransportError(f"HTTP request failed: {url}: {exc}") from exc

        if not response.is_success:
            logger.debug("fetch_failed", url=url, status_code=response.status_code)
            raise HTTPStatusError(
                response.status_code, str(response.url), response.reason_phrase
            )
        return response


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockFetcher:
    """Fetcher that serves canned responses keyed by URL.

    Values may be a str (served by get_text), any JSON-like object
    (served by get_json), or an exception instance, which is raised.
    Unknown URLs raise HTTPStatusError(404).

    Usage:
        fetcher = MockFetcher({"https://x/CHANGELOG.md": "## 1.0.0\\n- Init\\n"})
        text = await fetcher.get_text("https://x/CHANGELOG.md")
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self._responses = responses or {}
        self.calls: list[tuple[str, dict[str, Any] | None]] = []

    async def get_text(self, url: str, params: dict[str, Any] | None = None) -> str:
        value = self._lookup(url, params)
        if not isinstance(value, str):
            raise DecodeError(f"Mock response for {url} is not text")
        return value

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        return self._lookup(url, params)

    def _lookup(self, url: str, params: dict[str, Any] | None) -> Any:
        self.calls.append((url, params))
        if url not in self._responses:
            raise HTTPStatusError(404, url, "Not Found")
        value = self._responses[url]
        if isinstance(value, BaseException):
            raise value
        return value
