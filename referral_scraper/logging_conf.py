"""Logging configuration."""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logging(level: Optional[str] = None, dev: bool = False) -> None:
    """Configure root logging once; DEBUG in dev mode, otherwise LOG_LEVEL."""
    from referral_scraper.config import config

    level_name = "DEBUG" if dev else (level or config.LOG_LEVEL)
    log_level = getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=LOG_FORMAT, stream=sys.stdout)
    logging.getLogger().setLevel(log_level)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
