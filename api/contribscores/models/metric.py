"""Closed set of contribution metrics.

MetricKind is the only way a metric name reaches the evaluator: raw strings
from URLs, settings or callers go through parse_metric() first.
"""

import enum


class MetricKind(str, enum.Enum):
    score = "score"
    changes = "changes"
    pages = "pages"
    creations = "creations"
    characters = "characters"
    changeswithcomments = "changeswithcomments"
    score2 = "score2"


class InvalidMetricError(ValueError):
    """Raised when a metric name is not one of MetricKind."""

    def __init__(self, raw: str) -> None:
        self.raw = raw
        super().__init__(
            f"Invalid metric {raw!r}; expected one of: "
            f"{', '.join(m.value for m in MetricKind)}"
        )


def parse_metric(raw: "str | MetricKind") -> MetricKind:
    """Validate a metric name against the closed enumeration.

    Matching is exact (case-sensitive), never defaulting silently.
    """
    if isinstance(raw, MetricKind):
        return raw
    try:
        return MetricKind(raw)
    except ValueError:
        raise InvalidMetricError(raw) from None
