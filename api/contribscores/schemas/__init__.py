"""Contribution score Pydantic schemas package.

Re-exports the request and response schemas for convenient importing:

    from contribscores.schemas import LeaderboardResponse, ScoredEntry, ...
"""

from contribscores.schemas.leaderboard import (
    EditCommitted,
    EditCommittedAccepted,
    LeaderboardResponse,
    MetricValueResponse,
    ReportsResponse,
    ScoredEntry,
)

__all__ = [
    # Leaderboards
    "ScoredEntry",
    "LeaderboardResponse",
    "ReportsResponse",
    # Inline lookups
    "MetricValueResponse",
    # Edit hook
    "EditCommitted",
    "EditCommittedAccepted",
]
