"""Inline contribution score lookup.

GET /api/v1/contributors/{user_name}/scores/{metric} -- one metric value for one user
"""

from fastapi import APIRouter, Query

from contribscores.dependencies import Cache, DbSession, validated_metric
from contribscores.schemas.leaderboard import MetricValueResponse
from contribscores.services.evaluator import find_registered_user, get_metric_value
from contribscores.services.filters import TimeRange

router = APIRouter(prefix="/api/v1", tags=["scores"])


@router.get(
    "/contributors/{user_name}/scores/{metric}",
    response_model=MetricValueResponse,
)
async def get_contributor_score(
    user_name: str,
    metric: str,
    db: DbSession,
    cache: Cache,
    start: int = Query(0, ge=0, description="Exclusive lower bound, unix seconds (0 = unbounded)"),
    end: int = Query(0, ge=0, description="Inclusive upper bound, unix seconds (0 = unbounded)"),
) -> MetricValueResponse:
    """Return a single metric value for a registered user.

    An invalid metric is a 422. An unknown or unregistered user is not an
    error: the response carries available=false and the renderer decides
    what to display.
    """
    metric_kind = validated_metric(metric)
    time_range = TimeRange.between(start, end)

    user = await find_registered_user(db, user_name)
    if user is None:
        return MetricValueResponse(
            user_name=user_name,
            metric=metric_kind,
            available=False,
            reason="invalid_username",
            start=time_range.start,
            end=time_range.end,
        )

    value = await get_metric_value(db, cache, user, metric_kind, start=start, end=end)
    return MetricValueResponse(
        user_name=user.name,
        metric=metric_kind,
        available=True,
        value=value,
        start=time_range.start,
        end=time_range.end,
    )
