"""
URL Utilities for the EEI auditor.

Provides:
- normalize_input_url: validate and normalise user/dataset input
- resolve_href / same_origin / hostname_of: link classification helpers
- RobotsChecker: robots.txt compliance checker
"""

from urllib.parse import urljoin, urlparse
from urllib.robotparser import RobotFileParser

import httpx
import structlog

from eei.core.exceptions import InputError

logger = structlog.get_logger()


# Hrefs that never point at a crawlable page
SKIP_SCHEMES = ("javascript:", "mailto:", "tel:", "data:", "#")


# =============================================================================
# URL Normalization
# =============================================================================


def normalize_input_url(raw: str | None) -> str:
    """Normalise an audit target.

    - Strip whitespace
    - Default to https:// when no scheme is given
    - Reject anything without an http(s) scheme and a hostname

    Raises:
        InputError: if the input is missing or not a usable URL
    """
    url = (raw or "").strip()
    if not url:
        raise InputError("Missing URL")

    if "://" not in url:
        url = f"https://{url}"

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise InputError("Invalid URL format", details={"url": raw})
    if " " in parsed.netloc:
        raise InputError("Invalid URL format", details={"url": raw})

    path = parsed.path or "/"
    return parsed._replace(path=path, fragment="").geturl()


def strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def resolve_href(href: str | None, base_url: str) -> str | None:
    """Resolve an anchor href against a base URL.

    Returns None for empty, fragment-only and non-navigational hrefs.
    """
    if not href:
        return None
    href = href.strip()
    if not href or href.lower().startswith(SKIP_SCHEMES):
        return None
    try:
        absolute = urljoin(base_url, href)
    except ValueError:
        return None
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    return absolute


def origin_of(url: str) -> str | None:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return None
    return f"{parsed.scheme}://{parsed.netloc.lower()}"


def same_origin(url_a: str, url_b: str) -> bool:
    origin_a = origin_of(url_a)
    return origin_a is not None and origin_a == origin_of(url_b)


def hostname_of(url: str) -> str:
    """Hostname without a leading www., empty string if unparsable."""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    host = host.lower()
    return host[4:] if host.startswith("www.") else host


# =============================================================================
# Robots.txt Checker
# =============================================================================


class RobotsChecker:
    """Check robots.txt compliance for crawling.

    Caches robots.txt per origin to avoid repeated fetches.
    """

    def __init__(self, client: httpx.AsyncClient, user_agent: str):
        self.client = client
        self.user_agent = user_agent
        self._cache: dict[str, RobotFileParser | None] = {}
        self.log = logger.bind(component="RobotsChecker")

    async def can_fetch(self, url: str) -> bool:
        """Check if URL can be fetched according to robots.txt.

        A missing or unreadable robots.txt allows everything.
        """
        origin = origin_of(url)
        if origin is None:
            return True

        if origin not in self._cache:
            self._cache[origin] = await self._fetch_robots(origin)

        rp = self._cache[origin]
        if rp is None:
            return True
        return rp.can_fetch(self.user_agent, url)

    async def _fetch_robots(self, origin: str) -> RobotFileParser | None:
        """Fetch and parse robots.txt for an origin."""
        robots_url = f"{origin}/robots.txt"
        try:
            response = await self.client.get(robots_url, timeout=5.0)
        except httpx.HTTPError as e:
            self.log.debug("Failed to fetch robots.txt", origin=origin, error=str(e))
            return None

        if response.status_code != 200:
            return None

        rp = RobotFileParser()
        rp.parse(response.text.splitlines())
        self.log.debug("Loaded robots.txt", origin=origin)
        return rp
