"""
Logging setup for the catalog API.
Called once at startup; modules log through logging.getLogger(__name__).
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger.

    Args:
        level: Log level name, e.g. "INFO" or "DEBUG"
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Replace our own handler on re-run instead of stacking another one
    for handler in list(root_logger.handlers):
        if getattr(handler, "_catalog_handler", False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler._catalog_handler = True
    root_logger.addHandler(console_handler)

    # Keep SQLAlchemy quiet unless it has something to warn about
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
