from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from fastapi import FastAPI

from contribscores.config import settings
from contribscores.logging_config import configure_logging
from contribscores.metrics import metrics_endpoint
from contribscores.middleware.logging_middleware import RequestLoggingMiddleware
from contribscores.routers import hooks, leaderboards, scores


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    # Startup: shared Redis client backs the result cache
    app.state.redis = aioredis.from_url(
        settings.redis_url, encoding="utf-8", decode_responses=True
    )
    try:
        yield
    finally:
        await app.state.redis.aclose()


app = FastAPI(title="Contribution Scores API", version="0.1.0", lifespan=lifespan)

app.add_middleware(RequestLoggingMiddleware)

app.include_router(scores.router)
app.include_router(leaderboards.router)
app.include_router(hooks.router)

# Prometheus metrics endpoint
app.get("/metrics")(metrics_endpoint)


@app.get("/health")
async def health_check():
    return {"status": "ok"}
