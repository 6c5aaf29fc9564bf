"""Promotion Gate: decides whether a lite crawl earns a full audit."""

from eei.services.crawl.base import PageRecord

MIN_SCHEMA_OBJECTS = 2


def should_promote(lite: PageRecord | None, min_schema_objects: int = MIN_SCHEMA_OBJECTS) -> bool:
    """True iff the lite crawl succeeded and exposes enough structured data."""
    if lite is None or not lite.success:
        return False
    return len(lite.schema_objects) >= min_schema_objects
