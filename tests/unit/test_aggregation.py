"""
Unit tests for entity-level surface aggregation.
"""

from eei.services.aggregation import aggregate_surfaces, same_as_hosts
from eei.services.crawl.base import PageDiagnostics, SurfaceCrawl
from tests.factories import ORG_SCHEMA, make_page


def _surface(name, url, **fields) -> SurfaceCrawl:
    return SurfaceCrawl(surface=name, url=url, page=make_page(url, **fields))


class TestAggregateSurfaces:
    """Test aggregation across identity surfaces."""

    def test_empty_input(self):
        result = aggregate_surfaces([])

        assert result.signals.surface_count == 0
        assert result.signals.content_depth == 0
        assert result.signals.canonical_consistency is False
        assert result.signals.title_consistency == 1.0
        assert result.confidence["coverage"] == 0.0
        assert result.confidence["multi_surface"] is False

    def test_totals_across_surfaces(self):
        surfaces = [
            _surface(
                "home",
                "https://example.com",
                title="Example",
                canonical_href="https://example.com/",
                schema_objects=[ORG_SCHEMA, {"@type": "WebSite"}],
                diagnostics=PageDiagnostics(word_count=300, internal_link_count=6, external_link_count=2),
            ),
            _surface(
                "about",
                "https://example.com/about",
                title="About Example",
                canonical_href="https://example.com/",
                schema_objects=[{"@type": ["AboutPage", "WebPage"]}],
                diagnostics=PageDiagnostics(word_count=200, internal_link_count=2, external_link_count=0),
            ),
        ]
        result = aggregate_surfaces(surfaces)
        signals = result.signals

        assert signals.surface_count == 2
        assert signals.content_depth == 500
        assert signals.schema_coverage == 3
        assert signals.schema_diversity == 4
        assert signals.canonical_consistency is True
        assert signals.canonical_count == 1
        assert signals.internal_link_strength == 0.8
        assert signals.social_authority_count == 3
        assert signals.title_consistency == 1.0
        assert result.confidence["multi_surface"] is True
        assert set(result.summary["surfaces"]) == {"home", "about"}

    def test_failed_surfaces_are_skipped(self):
        ok = _surface("home", "https://example.com", diagnostics=PageDiagnostics(word_count=120))
        bad = _surface("blog", "https://example.com/blog", success=False)
        result = aggregate_surfaces([ok, bad])

        assert result.signals.surface_count == 1
        assert result.signals.content_depth == 120
        assert result.confidence["surfaces_attempted"] == 2
        assert result.confidence["surfaces_failed"] == ["blog"]
        assert result.confidence["coverage"] == 0.5
        assert "blog" not in result.summary["surfaces"]

    def test_title_consistency_is_distinct_ratio(self):
        surfaces = [
            _surface("home", "https://example.com", title="Example"),
            _surface("about", "https://example.com/about", title="Example"),
            _surface("blog", "https://example.com/blog", title="Example Blog"),
            _surface("careers", "https://example.com/careers", title="Example"),
        ]
        assert aggregate_surfaces(surfaces).signals.title_consistency == 0.5

    def test_conflicting_canonicals(self):
        surfaces = [
            _surface("home", "https://example.com", canonical_href="https://example.com/"),
            _surface("about", "https://example.com/about", canonical_href="https://example.com/about"),
        ]
        signals = aggregate_surfaces(surfaces).signals
        assert signals.canonical_consistency is False
        assert signals.canonical_count == 2

    def test_deterministic(self):
        surfaces = [
            _surface("home", "https://example.com", schema_objects=[ORG_SCHEMA]),
            _surface("about", "https://example.com/about", schema_objects=[{"@type": "AboutPage"}]),
        ]
        assert aggregate_surfaces(surfaces) == aggregate_surfaces(surfaces)


class TestSameAsHosts:
    """Test sameAs host extraction."""

    def test_list_and_string(self):
        assert same_as_hosts(ORG_SCHEMA) == ["twitter.com", "www.linkedin.com", "github.com"]
        assert same_as_hosts({"sameAs": "https://X.com/ex"}) == ["x.com"]

    def test_garbage_ignored(self):
        assert same_as_hosts({"sameAs": [None, 42, "not a url", "http://[bad"]}) == []
        assert same_as_hosts({}) == []
