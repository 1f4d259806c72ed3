from .base import Base
from .block import Block
from .metric import InvalidMetricError, MetricKind, parse_metric
from .page import Page
from .revision import EMPTY_COMMENT_ID, Revision
from .user import BOT_GROUP, User, UserGroup

__all__ = [
    "Base",
    "Block",
    "InvalidMetricError",
    "MetricKind",
    "parse_metric",
    "Page",
    "EMPTY_COMMENT_ID",
    "Revision",
    "BOT_GROUP",
    "User",
    "UserGroup",
]
