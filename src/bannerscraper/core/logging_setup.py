"""
Logging setup shared by the scraper entry points.
"""

import logging
from typing import Optional

from .config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once for a scrape run."""
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
    # aiohttp logs every dropped connection at INFO during large runs
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
