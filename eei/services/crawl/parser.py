"""
HTML parsing for crawled pages.

Parses a document once and extracts everything a PageRecord carries:
title, meta description, canonical link, JSON-LD blocks, anchor hrefs,
head-level branding/robots hints and word count from visible text.

Malformed JSON-LD blocks are counted in diagnostics and skipped; they never
abort the page.
"""

import json
from datetime import UTC, datetime
from typing import Any

from bs4 import BeautifulSoup

from eei.services.crawl.base import CrawlMode, PageDiagnostics, PageMeta, PageRecord
from eei.services.url_utils import hostname_of, resolve_href

# Schema properties checked for the most recent content date
DATE_KEYS = ("dateModified", "datePublished", "uploadDate")

# Tags whose text is never visible
INVISIBLE_TAGS = ["script", "style", "noscript", "template"]


# =============================================================================
# JSON-LD
# =============================================================================


def _flatten(node: Any, out: list[dict[str, Any]]) -> None:
    if isinstance(node, list):
        for item in node:
            _flatten(item, out)
    elif isinstance(node, dict):
        graph = node.get("@graph")
        if isinstance(graph, list):
            _flatten(graph, out)
        else:
            out.append(node)


def _parse_date(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def parse_json_ld(raw_blocks: list[str]) -> tuple[list[dict[str, Any]], str | None, int]:
    """
    Parse raw JSON-LD script bodies.

    Arrays and `@graph` containers are flattened into individual nodes.

    Returns:
        (schema_objects, latest_iso, error_count)
    """
    objects: list[dict[str, Any]] = []
    errors = 0

    for raw in raw_blocks:
        try:
            parsed = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            errors += 1
            continue
        _flatten(parsed, objects)

    latest: datetime | None = None
    for obj in objects:
        for key in DATE_KEYS:
            found = _parse_date(obj.get(key))
            if found and (latest is None or found > latest):
                latest = found

    return objects, latest.isoformat() if latest else None, errors


# =============================================================================
# Page parsing
# =============================================================================


def _attr(tag: Any, name: str) -> str:
    if tag is None:
        return ""
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return (value or "").strip()


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    return _attr(soup.find("meta", attrs=attrs), "content")


def _count_links(links: list[str], base_url: str) -> tuple[int, int]:
    """Split hrefs into (internal, external) relative to the page host."""
    origin_host = hostname_of(base_url)
    internal = external = 0
    for href in links:
        absolute = resolve_href(href, base_url)
        if absolute is None:
            continue
        if hostname_of(absolute) == origin_host:
            internal += 1
        else:
            external += 1
    return internal, external


def parse_page(
    html: str,
    url: str,
    mode: CrawlMode = CrawlMode.STATIC,
    http_status: int | None = None,
    final_url: str | None = None,
) -> PageRecord:
    """Parse an HTML document into a PageRecord."""
    html = html or ""
    soup = BeautifulSoup(html, "lxml")
    base_url = final_url or url

    title = soup.title.get_text(strip=True) if soup.title else ""
    description = (
        _meta_content(soup, name="description")
        or _meta_content(soup, property="og:description")
    )
    canonical = _attr(soup.find("link", rel="canonical"), "href") or None

    ld_blocks = [
        tag.string or tag.get_text()
        for tag in soup.find_all("script", attrs={"type": "application/ld+json"})
    ]
    schema_objects, latest_iso, ld_errors = parse_json_ld(ld_blocks)

    page_links = [_attr(a, "href") for a in soup.find_all("a", href=True)]
    page_links = [href for href in page_links if href]
    internal, external = _count_links(page_links, base_url)

    author_link = soup.find("a", rel="author")
    meta = PageMeta(
        robots=_meta_content(soup, name="robots").lower(),
        author=_meta_content(soup, name="author")
        or (author_link.get_text(strip=True) if author_link else ""),
        favicon_href=_attr(soup.find("link", rel="icon"), "href")
        or _attr(soup.find("link", rel="shortcut icon"), "href"),
        og_image=_meta_content(soup, property="og:image"),
        has_crawl_ping=any(
            "crawl-ping" in _attr(img, "src") for img in soup.find_all("img", src=True)
        ),
    )

    script_count = len(soup.find_all("script"))
    has_noscript = soup.find("noscript") is not None

    for tag in soup.find_all(INVISIBLE_TAGS):
        tag.decompose()
    body = soup.body or soup
    text = " ".join(body.get_text(" ").split())
    word_count = len(text.split(" ")) if text else 0

    return PageRecord(
        url=url,
        mode=mode,
        http_status=http_status,
        final_url=final_url,
        title=title,
        description=description,
        canonical_href=canonical,
        schema_objects=schema_objects,
        page_links=page_links,
        latest_iso=latest_iso,
        meta=meta,
        diagnostics=PageDiagnostics(
            word_count=word_count,
            link_count=len(page_links),
            internal_link_count=internal,
            external_link_count=external,
            schema_block_count=len(schema_objects),
            json_ld_error_count=ld_errors,
            script_count=script_count,
            has_noscript=has_noscript,
            html_bytes=len(html),
        ),
    )
