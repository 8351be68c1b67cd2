"""Logging configuration utilities for processes embedding piloted."""
import logging
import os


def setup_logging(level: str | None = None) -> None:
    """Configure root logging based on ``level`` or the LOG_LEVEL environment variable.

    piloted itself only emits through named loggers (``piloted.*``); calling
    this is left to the hosting process.
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
    )
