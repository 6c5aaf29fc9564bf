"""
Discovery Module - Base Data Classes.

Identity surface categories and the discovery result type.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SurfaceCategory:
    key: str
    patterns: tuple[str, ...]


# Priority order matters: a link is classified by the first category whose
# pattern it contains.
SURFACE_PRIORITY: tuple[SurfaceCategory, ...] = (
    SurfaceCategory("about", ("/about", "/company", "/who-we-are")),
    SurfaceCategory("blog", ("/blog", "/news", "/insights", "/articles")),
    SurfaceCategory("investors", ("/investors", "/investor")),
    SurfaceCategory("careers", ("/careers", "/jobs")),
    SurfaceCategory("product", ("/product", "/products", "/menu", "/order")),
)

HOME = "home"


@dataclass
class DiscoveryResult:
    """
    Identity surfaces found for an entity.

    `surfaces` maps surface key -> URL in discovery order and always starts
    with "home".
    """
    base_url: str
    surfaces: dict[str, str] = field(default_factory=dict)
    degraded: bool = False

    @property
    def urls(self) -> list[str]:
        return list(self.surfaces.values())
