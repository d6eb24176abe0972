"""Logging setup for the github-docs CLI and scheduler."""

import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Libraries that log every HTTP call or model load at INFO
NOISY_LOGGERS = ("httpx", "urllib3", "github", "sentence_transformers", "apscheduler")


def configure_logging(level: int | str | None = None) -> None:
    """Send app logs to stdout. level defaults to LOG_LEVEL from settings."""
    if level is None:
        from github_docs.config import settings

        level = settings.log_level
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
