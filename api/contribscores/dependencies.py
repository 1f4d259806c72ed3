from typing import Annotated, Optional

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from contribscores.config import settings
from contribscores.database import get_db
from contribscores.models.metric import InvalidMetricError, MetricKind, parse_metric
from contribscores.services.cache import ResultCache

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_redis(request: Request) -> aioredis.Redis:
    """Inject the Redis client from app.state (set during lifespan startup)."""
    return request.app.state.redis


RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]


async def get_result_cache(redis_client: RedisClient) -> Optional[ResultCache]:
    """Result cache over the shared Redis client; None when caching is disabled."""
    if settings.contrib_score_disable_cache:
        return None
    return ResultCache(redis_client)


Cache = Annotated[Optional[ResultCache], Depends(get_result_cache)]


def validated_metric(raw: str) -> MetricKind:
    """Map an invalid metric name to 422 instead of silently defaulting."""
    try:
        return parse_metric(raw)
    except InvalidMetricError as exc:
        raise HTTPException(
            status_code=422,
            detail={"error": "invalid_metric", "detail": str(exc)},
        )
