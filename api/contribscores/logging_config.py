import logging
import sys

import structlog

from contribscores.config import settings


def configure_logging(level: int | None = None):
    """Configure structlog JSON output on top of stdlib logging.

    Every metric evaluation is logged at INFO, so the stdlib root logger is
    set up here as well; otherwise its default WARNING level drops them.
    """
    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # must stay first
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
