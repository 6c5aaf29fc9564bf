"""
Discovery Module for the EEI auditor.

Usage:
    discovery = SurfaceDiscovery(StaticFetcher(client, timeout=15.0))
    result = await discovery.discover("https://example.com")

    for key, url in result.surfaces.items():
        print(f"{key}: {url}")
"""

from eei.services.discovery.base import (
    HOME,
    SURFACE_PRIORITY,
    DiscoveryResult,
    SurfaceCategory,
)
from eei.services.discovery.manager import SurfaceDiscovery, classify_links, match_surface

__all__ = [
    "SurfaceDiscovery",
    "DiscoveryResult",
    "SurfaceCategory",
    "SURFACE_PRIORITY",
    "HOME",
    "classify_links",
    "match_surface",
]
