"""
Bounded worker pool for ad-hoc multi-URL audits (no persisted job).

A fixed number of workers pull from a shared index. A failure in one task
becomes a failed outcome for that URL and never cancels siblings. Results
come back in input order.
"""

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from eei.core.exceptions import EEIError, classify_error
from eei.core.models import AuditOutcome

logger = structlog.get_logger()

AuditFunc = Callable[[str], Awaitable[AuditOutcome]]


def failed_outcome(url: str, exc: BaseException) -> AuditOutcome:
    message = exc.message if isinstance(exc, EEIError) else (str(exc) or type(exc).__name__)
    return AuditOutcome(success=False, url=url, error=message, error_kind=classify_error(exc))


async def audit_many(
    urls: list[str],
    audit: AuditFunc,
    concurrency: int = 6,
) -> list[AuditOutcome]:
    """
    Audit URLs with at most `concurrency` in flight.

    Args:
        urls: targets, audited in order of pickup
        audit: coroutine function auditing one URL
        concurrency: pool size (independent of len(urls))
    """
    log = logger.bind(component="AuditPool")
    results: list[AuditOutcome | None] = [None] * len(urls)
    next_index = 0

    async def worker() -> None:
        nonlocal next_index
        while next_index < len(urls):
            index = next_index
            next_index += 1
            url = urls[index]
            try:
                results[index] = await audit(url)
            except Exception as e:
                log.warning("Pooled audit failed", url=url[:80], error=str(e))
                results[index] = failed_outcome(url, e)

    workers = [asyncio.create_task(worker()) for _ in range(max(1, concurrency))]
    await asyncio.gather(*workers)

    return [r for r in results if r is not None]


def summarize(outcomes: list[AuditOutcome]) -> dict[str, Any]:
    """Totals, success/failure counts, average score and band counts."""
    scored = [o.entity_score for o in outcomes if o.success and o.entity_score is not None]
    bands = Counter(o.band for o in outcomes if o.success and o.band)
    return {
        "total": len(outcomes),
        "succeeded": sum(1 for o in outcomes if o.success),
        "failed": sum(1 for o in outcomes if not o.success),
        "average_score": round(sum(scored) / len(scored), 2) if scored else None,
        "bands": dict(bands),
    }
