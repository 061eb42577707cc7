# =============================================================================
# Observability — Pipeline Checkpoint Logging
# =============================================================================
#
# The orchestrator reports progress only through these helpers, at fixed
# checkpoints: stage start/finish (with duration) and cache hit/miss.
# Business logic never logs timing itself.
# =============================================================================

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger("finquery.pipeline")


@asynccontextmanager
async def stage(name: str, tenant_id: str) -> AsyncIterator[None]:
    """Log entry, exit and duration of one pipeline stage."""
    start = time.monotonic()
    logger.debug("stage=%s tenant=%s status=started", name, tenant_id)
    try:
        yield
    except Exception as e:
        logger.warning(
            "stage=%s tenant=%s status=failed elapsed_ms=%d error=%s",
            name, tenant_id, _elapsed_ms(start), type(e).__name__,
        )
        raise
    logger.info(
        "stage=%s tenant=%s status=ok elapsed_ms=%d",
        name, tenant_id, _elapsed_ms(start),
    )


def record_cache_lookup(tenant_id: str, hit: bool) -> None:
    logger.info("cache=%s tenant=%s", "hit" if hit else "miss", tenant_id)


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
