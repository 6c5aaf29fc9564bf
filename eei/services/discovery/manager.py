"""
Discovery Module - Surface Discovery.

Samples an entity the way an AI system would: the homepage plus a few
identity surfaces linked from it (about, blog, investors, careers,
product). Static-only, one homepage fetch, bounded radius.
"""

from urllib.parse import urlparse

from bs4 import BeautifulSoup
import structlog

from eei.services.crawl.static import StaticFetcher
from eei.services.discovery.base import (
    HOME,
    SURFACE_PRIORITY,
    DiscoveryResult,
    SurfaceCategory,
)
from eei.services.url_utils import resolve_href, same_origin, strip_trailing_slash

logger = structlog.get_logger()


def match_surface(
    url: str,
    categories: tuple[SurfaceCategory, ...] = SURFACE_PRIORITY,
) -> str | None:
    """Return the first category key whose pattern occurs in the URL path."""
    path = urlparse(url).path.lower()
    for category in categories:
        for pattern in category.patterns:
            if pattern in path:
                return category.key
    return None


def classify_links(
    hrefs: list[str],
    base_url: str,
    max_surfaces: int = 4,
    categories: tuple[SurfaceCategory, ...] = SURFACE_PRIORITY,
) -> dict[str, str]:
    """
    Build the surface map from homepage hrefs.

    Same-origin links only; the first link seen for a category wins; stops
    as soon as `max_surfaces` (home included) is reached.
    """
    home = strip_trailing_slash(base_url)
    surfaces: dict[str, str] = {HOME: home}

    for href in hrefs:
        if len(surfaces) >= max_surfaces:
            break

        absolute = resolve_href(href, base_url)
        if absolute is None:
            continue
        absolute = strip_trailing_slash(absolute.split("#", 1)[0])
        if not same_origin(absolute, base_url):
            continue

        key = match_surface(absolute, categories)
        if key is None or key in surfaces:
            continue
        surfaces[key] = absolute

    return surfaces


class SurfaceDiscovery:
    """Finds identity surfaces for a base URL."""

    def __init__(self, fetcher: StaticFetcher, max_surfaces: int = 4):
        """
        Args:
            fetcher: static fetcher (configured with the discovery timeout)
            max_surfaces: cap on surfaces returned, home included
        """
        self.fetcher = fetcher
        self.max_surfaces = max_surfaces
        self.log = logger.bind(component="SurfaceDiscovery")

    async def discover(self, base_url: str) -> DiscoveryResult:
        """
        Discover identity surfaces.

        Never raises for fetch failures: a failed homepage fetch returns
        home only with `degraded=True`. Redirects are resolved first, so the
        result's `base_url` and every surface share the final origin.
        """
        response = await self.fetcher.fetch_or_none(base_url)
        if response is None:
            self.log.info("Homepage fetch failed, discovery degraded", base_url=base_url[:80])
            return DiscoveryResult(
                base_url=base_url,
                surfaces={HOME: strip_trailing_slash(base_url)},
                degraded=True,
            )

        # Links on a redirected homepage are relative to where it landed.
        final_url = response.final_url or base_url
        if final_url != base_url:
            self.log.debug("Homepage redirected", base_url=base_url[:80], final_url=final_url[:80])

        soup = BeautifulSoup(response.html, "lxml")
        hrefs = [a.get("href") for a in soup.find_all("a", href=True)]

        surfaces = classify_links(hrefs, final_url, self.max_surfaces)

        self.log.debug("Discovery complete", base_url=final_url[:80], surfaces=list(surfaces))
        return DiscoveryResult(base_url=final_url, surfaces=surfaces)
