"""Logging setup for the CLI.

User-facing output goes through the rich console; loguru carries
diagnostics to stderr.
"""

import sys

from loguru import logger

DEFAULT_LEVEL = "WARNING"


def configure_logging(verbose: bool = False, level: str | None = None) -> None:
    """Replace loguru's default sink with a stderr sink at the chosen level.

    Args:
        verbose: Log at DEBUG
        level: Explicit level name (e.g. from MESHSTACK_LOG_LEVEL); wins over
            the default but not over ``verbose``
    """
    chosen = "DEBUG" if verbose else (level or DEFAULT_LEVEL).upper()
    logger.remove()
    logger.add(
        sys.stderr,
        level=chosen,
        format="<level>{level: <8}</level> | <cyan>{name}</cyan> - {message}",
    )
