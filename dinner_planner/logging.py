"""Process-wide logging setup.

Log lines are pipe-delimited and carry key=value pairs in the message
(``llm.call.end stage=week_plan latency_ms=812``).  The level comes from
LOG_LEVEL unless the caller passes one.
"""

import logging
import sys
from typing import Optional

from dinner_planner.config import get_log_level

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# HTTP client libraries that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "anthropic")


def configure_logging(level: Optional[str] = None) -> None:
    """Attach a stdout handler to the root logger unless one is already present."""
    root = logging.getLogger()
    if root.handlers:
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level or get_log_level())
    if root.level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "dinner_planner")
