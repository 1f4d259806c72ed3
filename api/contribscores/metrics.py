from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from fastapi.responses import Response

# Metric evaluator
metric_evaluations = Counter(
    "contribscores_metric_evaluations_total",
    "Metric values served to callers",
    ["metric", "cache"],  # cache: hit | miss | bypass
)

metric_computation_duration = Histogram(
    "contribscores_metric_computation_seconds",
    "Time to compute one metric value from the edit history",
    ["metric"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5],
)

cache_invalidations = Counter(
    "contribscores_cache_invalidations_total",
    "Per-user cache invalidations",
    ["source"],  # source: hook | worker
)

# Leaderboard ranker
leaderboard_duration = Histogram(
    "contribscores_leaderboard_duration_seconds",
    "End-to-end leaderboard generation latency",
    ["metric"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

# HTTP request metrics (from middleware)
http_requests = Counter(
    "contribscores_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status_code"],
)

http_request_duration = Histogram(
    "contribscores_http_request_duration_seconds",
    "HTTP request duration",
    ["method", "path"],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)


async def metrics_endpoint():
    """FastAPI endpoint handler that returns Prometheus metrics."""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
