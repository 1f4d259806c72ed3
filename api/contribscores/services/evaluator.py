"""Metric evaluator: one numeric contribution value per (user, metric, range).

Every metric is an aggregate over the same subset of revisions: those
authored by the user, inside the time range, and surviving the configured
FilterSet. Formulas:

    changes              COUNT(revisions)
    pages                COUNT(DISTINCT page)
    creations            COUNT(revisions WHERE parent IS NULL)
    score                round(pages + sqrt(changes - pages) * 2)
    characters           SUM(length of creations, when > 0)
                         + SUM(length - parent length of other edits, when > 0)
    changeswithcomments  COUNT(revisions WITH a non-empty comment)
    score2               round(0.5 * creations
                               + 0.1 * (changes + pages + 0.1 * changeswithcomments)
                               + 0.001 * characters)

score rewards breadth (distinct pages) and adds a square-root bonus for
depth, so repeated edits to the same pages earn sub-linear credit.
characters only ever adds: removals are skipped, not subtracted.

get_metric_value() is the entry point. Unbounded lookups go through the
ResultCache; ranged lookups and lookups with caching disabled are computed
directly every time.
"""

import math
import time
from typing import Optional

import structlog
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from contribscores.config import Settings, settings
from contribscores.metrics import metric_computation_duration, metric_evaluations
from contribscores.models.metric import MetricKind, parse_metric
from contribscores.models.revision import EMPTY_COMMENT_ID, Revision
from contribscores.models.user import User
from contribscores.services.cache import ResultCache
from contribscores.services.filters import UNBOUNDED, Bound, FilterSet, TimeRange

log = structlog.get_logger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (not banker's rounding)."""
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def wiki_rank(page_count: int, rev_count: int) -> float:
    """Unrounded score: distinct pages plus twice the root of the extra edits."""
    return page_count + math.sqrt(max(rev_count - page_count, 0)) * 2


def _user_revisions(columns, user: User, time_range: TimeRange, filters: FilterSet, rev=Revision):
    stmt = select(*columns).select_from(rev).where(rev.user_id == user.id)
    stmt = time_range.apply(stmt, rev)
    return filters.apply(stmt, rev)


async def _scalar(db: AsyncSession, stmt) -> int:
    result = await db.execute(stmt)
    return int(result.scalar_one() or 0)


async def _characters_added(
    db: AsyncSession, user: User, time_range: TimeRange, filters: FilterSet
) -> int:
    created = _user_revisions(
        [func.coalesce(func.sum(Revision.length), 0)], user, time_range, filters
    ).where(Revision.parent_id.is_(None), Revision.length > 0)
    total = await _scalar(db, created)

    current = aliased(Revision, name="current")
    previous = aliased(Revision, name="previous")
    delta = current.length - previous.length
    stmt = (
        select(func.coalesce(func.sum(delta), 0))
        .select_from(current)
        .join(previous, current.parent_id == previous.id)
        .where(current.user_id == user.id, delta > 0)
    )
    stmt = filters.apply(time_range.apply(stmt, current), current)
    return total + await _scalar(db, stmt)


async def compute_metric(
    db: AsyncSession,
    user: User,
    metric: MetricKind,
    time_range: TimeRange = UNBOUNDED,
    filters: Optional[FilterSet] = None,
    cache: Optional[ResultCache] = None,
    app_settings: Settings = settings,
) -> int:
    """Compute a metric from the edit history, without consulting the cache.

    score2 is composed from its five components through get_metric_value(),
    so unbounded components may still be served from the cache.
    """
    metric = parse_metric(metric)
    if filters is None:
        filters = FilterSet.from_settings(app_settings)
    start = time.monotonic()

    if metric is MetricKind.score:
        result = await db.execute(
            _user_revisions(
                [func.count(distinct(Revision.page_id)), func.count(Revision.id)],
                user, time_range, filters,
            )
        )
        page_count, rev_count = result.one()
        value = round_half_up(wiki_rank(page_count or 0, rev_count or 0))
    elif metric is MetricKind.changes:
        value = await _scalar(
            db, _user_revisions([func.count(Revision.id)], user, time_range, filters)
        )
    elif metric is MetricKind.pages:
        value = await _scalar(
            db,
            _user_revisions([func.count(distinct(Revision.page_id))], user, time_range, filters),
        )
    elif metric is MetricKind.creations:
        value = await _scalar(
            db,
            _user_revisions([func.count(Revision.id)], user, time_range, filters)
            .where(Revision.parent_id.is_(None)),
        )
    elif metric is MetricKind.characters:
        value = await _characters_added(db, user, time_range, filters)
    elif metric is MetricKind.changeswithcomments:
        value = await _scalar(
            db,
            _user_revisions([func.count(Revision.id)], user, time_range, filters)
            .where(Revision.comment_id > EMPTY_COMMENT_ID),
        )
    else:  # score2
        components = {}
        for part in (
            MetricKind.creations,
            MetricKind.changes,
            MetricKind.pages,
            MetricKind.changeswithcomments,
            MetricKind.characters,
        ):
            components[part] = await get_metric_value(
                db, cache, user, part,
                start=time_range.start, end=time_range.end,
                filters=filters, app_settings=app_settings,
            )
        value = round_half_up(score2_formula(**{k.value: v for k, v in components.items()}))

    metric_computation_duration.labels(metric=metric.value).observe(time.monotonic() - start)
    log.info(
        "metric_value_computed",
        metric=metric.value,
        user=user.name,
        ranged=not time_range.is_unbounded,
        value=value,
    )
    return value


def score2_formula(
    creations: int,
    changes: int,
    pages: int,
    changeswithcomments: int,
    characters: int,
) -> float:
    """Unrounded score2 composite."""
    return (
        0.5 * creations
        + 0.1 * (changes + pages + 0.1 * changeswithcomments)
        + 0.001 * characters
    )


async def get_metric_value(
    db: AsyncSession,
    cache: Optional[ResultCache],
    user: Optional[User],
    metric: MetricKind | str = MetricKind.score,
    start: Bound = 0,
    end: Bound = 0,
    filters: Optional[FilterSet] = None,
    app_settings: Settings = settings,
) -> Optional[int]:
    """Return the metric value for a user, or None when the user is unknown.

    Args:
        db: Async SQLAlchemy session over the edit history.
        cache: Result cache; None behaves like a disabled cache.
        user: The registered user, or None for an unknown/anonymous name.
        metric: A MetricKind (raw strings are validated).
        start: Exclusive lower bound (datetime or unix seconds, 0 = unbounded).
        end: Inclusive upper bound (datetime or unix seconds, 0 = unbounded).

    Raises:
        InvalidMetricError: metric is not one of MetricKind.
    """
    metric = parse_metric(metric)
    if user is None:
        return None

    time_range = TimeRange.between(start, end)
    if filters is None:
        filters = FilterSet.from_settings(app_settings)

    async def compute() -> int:
        return await compute_metric(
            db, user, metric, time_range, filters, cache=cache, app_settings=app_settings
        )

    if cache is None or app_settings.contrib_score_disable_cache or not time_range.is_unbounded:
        value = await compute()
        outcome = "bypass"
    else:
        value, hit = await cache.get_or_compute(user.id, metric, compute)
        outcome = "hit" if hit else "miss"

    metric_evaluations.labels(metric=metric.value, cache=outcome).inc()
    log.info("metric_value_served", metric=metric.value, user=user.name, cache=outcome)
    return value


async def find_registered_user(db: AsyncSession, name: str) -> Optional[User]:
    """Look up a registered user by exact name; None for unknown names."""
    if not name:
        return None
    result = await db.execute(select(User).where(User.name == name))
    return result.scalar_one_or_none()
