"""
Crawl Module - Base Data Classes.

PageRecord is the single normalized crawl output. Static fetches, rendered
fetches and the lite-crawl delegate all produce it; `mode` tags which
producer ran.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class CrawlMode(str, Enum):
    """How a page was fetched."""
    STATIC = "static"
    RENDERED = "rendered"


class ErrorKind(str, Enum):
    TIMEOUT = "timeout"
    BLOCKED = "blocked"
    NETWORK = "network"
    UNKNOWN = "unknown"


@dataclass
class PageMeta:
    """Head-level evidence the scorer reads besides title/description."""
    robots: str = ""
    author: str = ""
    favicon_href: str = ""
    og_image: str = ""
    has_crawl_ping: bool = False


@dataclass
class PageDiagnostics:
    word_count: int = 0
    link_count: int = 0
    internal_link_count: int = 0
    external_link_count: int = 0
    schema_block_count: int = 0
    json_ld_error_count: int = 0
    script_count: int = 0
    has_noscript: bool = False
    html_bytes: int = 0
    error_kind: ErrorKind | None = None


@dataclass
class PageRecord:
    """Normalized crawl output for one fetched page."""
    url: str
    mode: CrawlMode = CrawlMode.STATIC
    http_status: int | None = None
    final_url: str | None = None
    title: str = ""
    description: str = ""
    canonical_href: str | None = None
    schema_objects: list[dict[str, Any]] = field(default_factory=list)
    page_links: list[str] = field(default_factory=list)
    latest_iso: str | None = None
    meta: PageMeta = field(default_factory=PageMeta)
    diagnostics: PageDiagnostics = field(default_factory=PageDiagnostics)
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def failed(
        cls,
        url: str,
        error: str,
        kind: ErrorKind,
        mode: CrawlMode = CrawlMode.STATIC,
        http_status: int | None = None,
    ) -> "PageRecord":
        """Error record: every content field empty, diagnostics carry the kind."""
        return cls(
            url=url,
            mode=mode,
            http_status=http_status,
            error=error,
            diagnostics=PageDiagnostics(error_kind=kind),
        )


@dataclass
class SurfaceCrawl:
    """One crawled identity surface of an entity."""
    surface: str
    url: str
    page: PageRecord

    @property
    def success(self) -> bool:
        return self.page.success
