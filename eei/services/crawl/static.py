"""
Static (plain HTTP) page fetching.

Maps httpx failures onto the crawl error taxonomy so callers only ever see
NetworkError / FetchTimeoutError / BlockedError / HTTPStatusError.
"""

from dataclasses import dataclass

import httpx
import structlog

from eei.core.config import Settings
from eei.core.exceptions import (
    BlockedError,
    CrawlError,
    FetchTimeoutError,
    HTTPStatusError,
    NetworkError,
)
from eei.services.retry_utils import with_retries
from eei.services.url_utils import RobotsChecker

logger = structlog.get_logger()

BLOCKED_STATUS_CODES = {403, 429}

ACCEPT_HTML = "text/html,application/xhtml+xml"


@dataclass
class FetchResponse:
    url: str
    final_url: str
    status_code: int
    html: str


def build_client(settings: Settings) -> httpx.AsyncClient:
    """Shared outbound client: bounded redirects, static identity."""
    return httpx.AsyncClient(
        follow_redirects=True,
        max_redirects=settings.max_redirects,
        timeout=settings.static_timeout,
        headers={"User-Agent": settings.static_user_agent, "Accept": ACCEPT_HTML},
    )


class StaticFetcher:
    """Fetches raw HTML over plain HTTP."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: float = 20.0,
        max_attempts: int = 2,
        robots: RobotsChecker | None = None,
    ):
        """
        Args:
            client: shared httpx AsyncClient (redirect limit lives on the client)
            timeout: per-request timeout in seconds
            max_attempts: attempts on transient connection errors
            robots: optional robots.txt checker; disallowed URLs raise BlockedError
        """
        self.client = client
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.robots = robots
        self.log = logger.bind(component="StaticFetcher")

    async def fetch(self, url: str, user_agent: str | None = None) -> FetchResponse:
        """
        GET a page and return its HTML.

        Raises:
            BlockedError: 403/429 or robots.txt disallow
            FetchTimeoutError: request exceeded the timeout
            NetworkError: connect/DNS/transport failure or too many redirects
            HTTPStatusError: any other non-2xx/3xx status
        """
        if self.robots is not None and not await self.robots.can_fetch(url):
            raise BlockedError("Disallowed by robots.txt", details={"url": url})

        headers = {"User-Agent": user_agent} if user_agent else None

        try:
            response = await with_retries(
                self.client.get,
                url,
                headers=headers,
                timeout=self.timeout,
                max_attempts=self.max_attempts,
            )
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Timed out fetching {url}", details={"url": url}) from e
        except httpx.TooManyRedirects as e:
            raise NetworkError("Too many redirects", details={"url": url}) from e
        except httpx.HTTPError as e:
            raise NetworkError(str(e) or type(e).__name__, details={"url": url}) from e

        status = response.status_code
        if status in BLOCKED_STATUS_CODES:
            raise BlockedError(f"HTTP {status}", details={"url": url, "status": status})
        if status >= 400:
            raise HTTPStatusError(f"HTTP {status}", details={"url": url, "status": status})

        return FetchResponse(
            url=url,
            final_url=str(response.url),
            status_code=status,
            html=response.text,
        )

    async def fetch_or_none(self, url: str, user_agent: str | None = None) -> FetchResponse | None:
        """Like fetch(), but logs and returns None on any crawl failure."""
        try:
            return await self.fetch(url, user_agent=user_agent)
        except CrawlError as e:
            self.log.debug("Static fetch failed", url=url[:80], kind=e.kind, error=e.message)
            return None
