"""Report parameters: the default multi-report view and inline embeds.

Embedded leaderboards take their parameters from a "limit/days/options"
path segment typed by wiki editors, so malformed values are clamped to safe
defaults instead of rejected.
"""

import re
from dataclasses import dataclass, field

from contribscores.config import Settings, settings

MAX_INCLUDE_LIMIT = 50
DEFAULT_INCLUDE_LIMIT = 10
DEFAULT_INCLUDE_DAYS = 7

# Display options understood by renderers
KNOWN_OPTIONS = frozenset({"nosort", "notools"})

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class EmbedParams:
    limit: int = DEFAULT_INCLUDE_LIMIT
    days: int = DEFAULT_INCLUDE_DAYS
    options: frozenset[str] = field(default_factory=frozenset)


def _leading_int(raw: str) -> int | None:
    """Parse the leading integer of a string ("12abc" -> 12); None if there is none."""
    match = _LEADING_INT.match(raw)
    if match is None:
        return None
    return int(match.group(1))


def parse_embed_params(par: str | None) -> EmbedParams:
    """Parse and clamp an embed parameter string such as "25/30/nosort,notools".

    - limit: missing, non-numeric, below 1 or above MAX_INCLUDE_LIMIT -> 10
    - days: missing, non-numeric or negative -> 7 (0 means all history)
    - options: comma-separated, case-insensitive; unknown values are dropped
    """
    if not par:
        return EmbedParams()

    parts = par.split("/")

    limit = _leading_int(parts[0])
    if limit is None or limit < 1 or limit > MAX_INCLUDE_LIMIT:
        limit = DEFAULT_INCLUDE_LIMIT

    days = _leading_int(parts[1]) if len(parts) > 1 else None
    if days is None or days < 0:
        days = DEFAULT_INCLUDE_DAYS

    options: frozenset[str] = frozenset()
    if len(parts) > 2:
        requested = {opt.strip().lower() for opt in parts[2].split(",")}
        options = frozenset(requested & KNOWN_OPTIONS)

    return EmbedParams(limit=limit, days=days, options=options)


def default_reports(app_settings: Settings = settings) -> list[tuple[int, int]]:
    """(days, limit) pairs of the full report page, in display order."""
    return [(int(days), int(limit)) for days, limit in app_settings.contrib_score_reports]
