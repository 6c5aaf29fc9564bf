"""
User-Agent selection for crawling.

Static fetches use one fixed browser-like identity. Rendered fetches draw a
random identity from the AI-crawler pool so repeated audits sample how
different AI crawlers see a page.
"""

import random

from eei.core.config import Settings, get_settings


def random_ai_user_agent(
    settings: Settings | None = None,
    rng: random.Random | None = None,
) -> str:
    """
    Pick a User-Agent from the AI-crawler pool.

    Falls back to the static identity when the pool is empty.

    Args:
        settings: settings to read the pool from
        rng: optional random source (tests pass a seeded one)
    """
    settings = settings or get_settings()
    pool = settings.ai_user_agents
    if not pool:
        return settings.static_user_agent
    return (rng or random).choice(pool)
