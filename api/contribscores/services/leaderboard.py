"""Leaderboard ranker: approximate top-K contributors for a reporting window.

Algorithm:
1. cutoff = now - days (no cutoff when days == 0).
2. Two candidate pools over the filtered revisions, grouped by author and
   truncated to `limit`: the authors with the most distinct pages, and the
   authors with the most edits.
3. The union of both pools (deduplicated by user) gets its counts and the
   primary score, wiki_rank = pages + sqrt(edits - pages) * 2.
4. With the default `score` metric the rounded wiki_rank is the final score.
   Any other metric is recomputed per candidate through the evaluator, over
   the same cutoff.
5. Sort by final score descending, ties broken by the larger raw activity
   (pages + creations + edits), truncate to `limit` and number the ranks.

The two pools only approximate the true top-K: an author with moderate page
and edit counts outside both pools is never considered. Scanning the whole
log to close that gap is deliberately not done.
"""

import time
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog
from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contribscores.config import Settings, settings
from contribscores.metrics import leaderboard_duration
from contribscores.models.metric import MetricKind, parse_metric
from contribscores.models.revision import Revision
from contribscores.models.user import User
from contribscores.schemas.leaderboard import ScoredEntry
from contribscores.services.cache import ResultCache
from contribscores.services.evaluator import get_metric_value, round_half_up, wiki_rank
from contribscores.services.filters import FilterSet, TimeRange

log = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400

_page_count = func.count(distinct(Revision.page_id)).label("page_count")
_creation_count = func.count(case((Revision.parent_id.is_(None), 1))).label("creation_count")
_rev_count = func.count(Revision.id).label("rev_count")


def window_cutoff(days: int, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of the reporting window, or None for all history."""
    if days <= 0:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    return now - timedelta(seconds=SECONDS_PER_DAY * days)


def candidate_query(order_by, window: TimeRange, filters: FilterSet, limit: int):
    """Per-author counts over the filtered window, best `limit` authors by order_by."""
    stmt = (
        select(Revision.user_id, _page_count, _creation_count, _rev_count)
        .select_from(Revision)
        .group_by(Revision.user_id)
    )
    stmt = filters.apply(window.apply(stmt))
    return stmt.order_by(order_by.desc(), Revision.user_id).limit(limit)


async def _collect_candidates(
    db: AsyncSession, window: TimeRange, filters: FilterSet, limit: int
) -> dict[int, tuple[int, int, int]]:
    """Union of the most-pages and most-edits pools, first occurrence wins."""
    candidates: dict[int, tuple[int, int, int]] = {}
    for order_by in (_page_count, _rev_count):
        result = await db.execute(candidate_query(order_by, window, filters, limit))
        for row in result.all():
            candidates.setdefault(
                row.user_id, (row.page_count, row.creation_count, row.rev_count)
            )
    return candidates


def rank_entries(entries: list[ScoredEntry], limit: int) -> list[ScoredEntry]:
    """Sort by score, then raw activity, both descending; keep `limit` and number them."""
    ranked = sorted(entries, key=lambda e: (e.score, e.activity), reverse=True)[:limit]
    for position, entry in enumerate(ranked, start=1):
        entry.rank = position
    return ranked


async def generate_leaderboard(
    db: AsyncSession,
    cache: Optional[ResultCache],
    days: int,
    limit: int,
    metric: Optional[MetricKind | str] = None,
    filters: Optional[FilterSet] = None,
    app_settings: Settings = settings,
    now: Optional[datetime] = None,
) -> list[ScoredEntry]:
    """Build the ranked contributor list for the last `days` days (0 = all time).

    Args:
        db: Async SQLAlchemy session over the edit history.
        cache: Result cache used when a non-default metric is recomputed.
        days: Window length in days; 0 or less means all history.
        limit: Maximum number of entries, must be positive.
        metric: Ranking metric; defaults to settings.contrib_score_metric.

    Returns:
        At most `limit` entries, ranked 1..n. Empty when nobody qualifies.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    metric = parse_metric(metric if metric is not None else app_settings.contrib_score_metric)
    if filters is None:
        filters = FilterSet.from_settings(app_settings)

    start = time.monotonic()
    if now is None:
        now = datetime.now(timezone.utc)
    # One clock for candidate pools and per-candidate recomputes
    filters = replace(filters, as_of=now)
    cutoff = window_cutoff(days, now)
    window = TimeRange(start=cutoff)

    candidates = await _collect_candidates(db, window, filters, limit)
    if not candidates:
        leaderboard_duration.labels(metric=metric.value).observe(time.monotonic() - start)
        log.info("leaderboard_generated", days=days, limit=limit, metric=metric.value,
                 candidates=0, entries=0)
        return []

    result = await db.execute(select(User).where(User.id.in_(list(candidates))))
    users = {user.id: user for user in result.scalars().all()}

    entries: list[ScoredEntry] = []
    for user_id, (page_count, creation_count, rev_count) in candidates.items():
        user = users.get(user_id)
        if user is None:
            continue
        primary = wiki_rank(page_count, rev_count)
        if metric is MetricKind.score:
            final = round_half_up(primary)
        else:
            final = await get_metric_value(
                db, cache, user, metric, start=cutoff,
                filters=filters, app_settings=app_settings,
            )

        display_name = user.name
        if app_settings.contrib_scores_use_real_name and user.real_name:
            display_name = user.real_name

        entries.append(
            ScoredEntry(
                user_id=user.id,
                user_name=user.name,
                display_name=display_name,
                page_count=page_count,
                creation_count=creation_count,
                rev_count=rev_count,
                wiki_rank=primary,
                score=final,
            )
        )

    # Candidates enter the final sort in primary-score order
    entries.sort(key=lambda e: e.wiki_rank, reverse=True)
    ranked = rank_entries(entries, limit)

    leaderboard_duration.labels(metric=metric.value).observe(time.monotonic() - start)
    log.info(
        "leaderboard_generated",
        days=days,
        limit=limit,
        metric=metric.value,
        candidates=len(candidates),
        entries=len(ranked),
    )
    return ranked
