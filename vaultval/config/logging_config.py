"""Logging configuration."""

import logging
import sys
from typing import Optional

from .settings import settings


def setup_logging(level: Optional[str] = None) -> None:
    """Configure logging for hosts embedding the engine."""
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
