"""Shared query predicates for metric lookups and leaderboards.

Both the metric evaluator and the leaderboard's candidate queries restrict
the revisions table the same way. The predicates live here, built once per
call into an immutable FilterSet, so the two call sites cannot drift apart:
a leaderboard score and the inline score shown for the same user must come
from the same subset of edits.

Design notes:
- Exclusions are expressed as NOT IN subqueries and the namespace allow-list
  as a join on pages. Nothing is filtered in Python after the fact.
- Every apply method takes the revision entity to constrain, so queries that
  alias the revisions table (the characters metric self-joins it) reuse the
  same predicates.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Select, or_, select
from sqlalchemy.orm import aliased

from contribscores.config import Settings, settings
from contribscores.models.block import Block
from contribscores.models.page import Page
from contribscores.models.revision import Revision
from contribscores.models.user import BOT_GROUP, User, UserGroup


Bound = Optional[int | float | datetime]


def _to_datetime(value: Bound) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


@dataclass(frozen=True)
class TimeRange:
    """Half-open window (start, end]; None leaves that side unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def between(cls, start: Bound = 0, end: Bound = 0) -> "TimeRange":
        """Build a range from datetimes or unix seconds; 0 or None means unbounded."""
        return cls(start=_to_datetime(start), end=_to_datetime(end))

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def apply(self, stmt: Select, rev=Revision) -> Select:
        if self.start is not None:
            stmt = stmt.where(rev.timestamp > self.start)
        if self.end is not None:
            stmt = stmt.where(rev.timestamp <= self.end)
        return stmt


UNBOUNDED = TimeRange()


@dataclass(frozen=True)
class FilterSet:
    """Exclusion filters read from settings at call time."""

    ignore_bots: bool = False
    ignore_blocked_users: bool = False
    ignore_usernames: frozenset[str] = field(default_factory=frozenset)
    include_namespaces: frozenset[int] = field(default_factory=frozenset)
    # Clock for bot membership expiry; None reads the wall clock at query time
    as_of: Optional[datetime] = None

    @classmethod
    def from_settings(cls, app_settings: Settings = settings) -> "FilterSet":
        return cls(
            ignore_bots=app_settings.contrib_score_ignore_bots,
            ignore_blocked_users=app_settings.contrib_score_ignore_blocked_users,
            ignore_usernames=frozenset(app_settings.contrib_score_ignore_usernames),
            include_namespaces=frozenset(app_settings.contrib_score_include_namespaces),
        )

    def apply(self, stmt: Select, rev=Revision) -> Select:
        """Append every configured predicate to a statement over revisions."""
        if self.ignore_blocked_users:
            blocked = select(Block.user_id).where(Block.user_id != 0)
            stmt = stmt.where(rev.user_id.not_in(blocked))

        if self.ignore_bots:
            now = self.as_of or datetime.now(timezone.utc)
            bots = select(UserGroup.user_id).where(
                UserGroup.group == BOT_GROUP,
                or_(UserGroup.expires_at.is_(None), UserGroup.expires_at >= now),
            )
            stmt = stmt.where(rev.user_id.not_in(bots))

        if self.ignore_usernames:
            ignored = select(User.id).where(User.name.in_(sorted(self.ignore_usernames)))
            stmt = stmt.where(rev.user_id.not_in(ignored))

        if self.include_namespaces:
            # Aliased so callers that already join pages are unaffected
            filter_page = aliased(Page, name="filter_page")
            stmt = stmt.join(filter_page, filter_page.id == rev.page_id).where(
                filter_page.namespace.in_(sorted(self.include_namespaces))
            )

        return stmt
