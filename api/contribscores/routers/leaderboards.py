"""Contribution score leaderboards.

GET /api/v1/contribution-scores                -- one leaderboard (days, limit, metric)
GET /api/v1/contribution-scores/reports        -- the configured multi-report view
GET /api/v1/contribution-scores/embed/{par}    -- inline embed, "limit/days/options"
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Query

from contribscores.config import settings
from contribscores.dependencies import Cache, DbSession, validated_metric
from contribscores.models.metric import MetricKind
from contribscores.schemas.leaderboard import LeaderboardResponse, ReportsResponse
from contribscores.services.leaderboard import generate_leaderboard
from contribscores.services.reports import default_reports, parse_embed_params

router = APIRouter(prefix="/api/v1", tags=["leaderboards"])

# Upper bound for explicitly requested leaderboards (not embeds)
MAX_REPORT_LIMIT = 500


async def _build_report(
    db, cache, days: int, limit: int, metric: MetricKind, options=()
) -> LeaderboardResponse:
    entries = await generate_leaderboard(db, cache, days, limit, metric)
    return LeaderboardResponse(
        days=days,
        limit=limit,
        metric=metric,
        all_revisions=days <= 0,
        generated_at=datetime.now(timezone.utc),
        options=sorted(options),
        entries=entries,
    )


@router.get("/contribution-scores", response_model=LeaderboardResponse)
async def get_leaderboard(
    db: DbSession,
    cache: Cache,
    days: int = Query(7, ge=0, description="Window in days (0 = all history)"),
    limit: int = Query(50, ge=1, le=MAX_REPORT_LIMIT, description="Max entries"),
    metric: Optional[str] = Query(None, description="Ranking metric (default from settings)"),
) -> LeaderboardResponse:
    """Rank contributors over the last `days` days."""
    metric_kind = validated_metric(metric) if metric is not None else settings.contrib_score_metric
    return await _build_report(db, cache, days, limit, metric_kind)


@router.get("/contribution-scores/reports", response_model=ReportsResponse)
async def get_default_reports(db: DbSession, cache: Cache) -> ReportsResponse:
    """Generate every (days, limit) report configured in contrib_score_reports."""
    metric_kind = settings.contrib_score_metric
    reports = [
        await _build_report(db, cache, days, limit, metric_kind)
        for days, limit in default_reports()
    ]
    return ReportsResponse(reports=reports)


@router.get("/contribution-scores/embed/{par:path}", response_model=LeaderboardResponse)
async def get_embedded_leaderboard(par: str, db: DbSession, cache: Cache) -> LeaderboardResponse:
    """Leaderboard for inline embedding; bad parameters are clamped, never rejected."""
    params = parse_embed_params(par)
    return await _build_report(
        db, cache, params.days, params.limit, settings.contrib_score_metric, params.options
    )
