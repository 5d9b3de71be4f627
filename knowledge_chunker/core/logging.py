"""
Logging Configuration

Centralized logging setup with structured output.
"""

import logging
import sys

from knowledge_chunker.core.config import settings


def setup_logging() -> None:
    """
    Configure application logging.

    Sets up:
    - Log level from settings
    - Console handler with ISO timestamp format

    Leaves an already configured root logger untouched.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
