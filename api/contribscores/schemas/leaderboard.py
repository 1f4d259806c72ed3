"""Pydantic schemas for contribution score lookups and leaderboards."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from contribscores.models.metric import MetricKind


class ScoredEntry(BaseModel):
    """One leaderboard row. Built fresh for every report, never stored."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    user_name: str
    display_name: str
    page_count: int
    creation_count: int
    rev_count: int
    wiki_rank: float  # primary (fast) score before rounding
    score: int        # final score under the ranking metric
    rank: int = 0     # 1-based, assigned after sorting

    @property
    def activity(self) -> int:
        """Raw activity sum used to break score ties."""
        return self.page_count + self.creation_count + self.rev_count


class LeaderboardResponse(BaseModel):
    days: int
    limit: int
    metric: MetricKind
    all_revisions: bool  # True when days == 0 (no time window)
    generated_at: datetime
    options: list[str] = Field(default_factory=list)  # renderer hints: nosort, notools
    entries: list[ScoredEntry]


class ReportsResponse(BaseModel):
    reports: list[LeaderboardResponse]


class MetricValueResponse(BaseModel):
    user_name: str
    metric: MetricKind
    available: bool
    value: Optional[int] = None
    reason: Optional[str] = None  # "invalid_username" when unavailable
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class EditCommitted(BaseModel):
    """Edit-ingestion hook payload."""

    user_name: str = Field(min_length=1, max_length=255)


class EditCommittedAccepted(BaseModel):
    user_id: int
    invalidated_keys: int
