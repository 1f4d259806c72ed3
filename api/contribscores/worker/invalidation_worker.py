"""Invalidation worker: polls for new revisions and drops their authors' cached scores.

For hosts that cannot call POST /api/v1/hooks/edit-committed. The highest
revision id already handled (the watermark) is kept in Redis, so restarts
resume where they left off. A fresh deployment starts at the current
maximum id: edits older than that are already reflected in whatever the
cache holds after at most one TTL.
"""
import asyncio

import redis.asyncio as aioredis
import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contribscores.config import settings
from contribscores.database import async_session_factory
from contribscores.logging_config import configure_logging
from contribscores.models.revision import Revision
from contribscores.services.cache import ResultCache, on_edit_committed

log = structlog.get_logger(__name__)

WATERMARK_KEY = "contribscores:invalidation:last_rev_id"


async def _read_watermark(db: AsyncSession, redis_client) -> int:
    raw = await redis_client.get(WATERMARK_KEY)
    if raw is not None:
        return int(raw)

    result = await db.execute(select(func.coalesce(func.max(Revision.id), 0)))
    watermark = int(result.scalar_one())
    await redis_client.set(WATERMARK_KEY, str(watermark))
    log.info("invalidation_watermark_initialized", last_rev_id=watermark)
    return watermark


async def process_batch(
    db: AsyncSession,
    redis_client,
    cache: ResultCache,
    batch_size: int = settings.invalidation_batch_size,
) -> int:
    """Invalidate the authors of up to batch_size revisions above the watermark.

    Returns:
        Number of revisions consumed in this batch.
    """
    watermark = await _read_watermark(db, redis_client)

    result = await db.execute(
        select(Revision.id, Revision.user_id)
        .where(Revision.id > watermark)
        .order_by(Revision.id)
        .limit(batch_size)
    )
    rows = result.all()
    if not rows:
        return 0

    for user_id in sorted({row.user_id for row in rows}):
        await on_edit_committed(cache, user_id, source="worker")

    # Advance only after every author was invalidated
    await redis_client.set(WATERMARK_KEY, str(rows[-1].id))
    return len(rows)


async def run_worker() -> None:
    """Main polling loop: consumes new revisions every invalidation_poll_interval_seconds."""
    configure_logging()
    redis_client = aioredis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
    cache = ResultCache(redis_client)
    log.info(
        "invalidation_worker_started",
        poll_interval=settings.invalidation_poll_interval_seconds,
        batch_size=settings.invalidation_batch_size,
    )

    try:
        while True:
            try:
                async with async_session_factory() as db:
                    count = await process_batch(db, redis_client, cache)
                    if count > 0:
                        log.info("batch_processed", count=count)
                        # Full batch: more revisions are likely waiting
                        if count >= settings.invalidation_batch_size:
                            continue
            except Exception as exc:
                log.error("worker_loop_error", error=str(exc))

            await asyncio.sleep(settings.invalidation_poll_interval_seconds)
    finally:
        await redis_client.aclose()


if __name__ == "__main__":
    asyncio.run(run_worker())
