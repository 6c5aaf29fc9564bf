"""
Services layer for the EEI auditor.

MODULES:
- crawl/: PageRecord types, parser, static fetcher, renderer, escalation engine
- discovery/: identity surface discovery
- scoring/: signal rules, tiers, bands, scorer

STANDALONE SERVICES:
- aggregation: entity-level signals across surfaces
- promotion: lite crawl -> full audit gate
- audit: single-URL audit pipeline (full and promoted)
- pool: bounded concurrent audits without a persisted job
- datasets: dataset loader
- url_utils / user_agent / retry_utils: shared helpers

ARCHITECTURE:
1. Discovery: SurfaceDiscovery -> home + up to 3 identity surfaces
2. Crawl: CrawlEngine per surface -> static, escalate to rendered when needed
3. Aggregation: aggregate_surfaces -> entity signals
4. Scoring: score(home, entity=aggregate) -> entity score, tiers, band
"""
