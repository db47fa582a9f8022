from __future__ import annotations

import logging

PACKAGE_LOGGER = "gantt_cpm"


def setup_logging(level: str | int = logging.WARNING) -> logging.Logger:
    """
    Configure console logging for the package logger.

    Safe to call more than once: existing handlers are replaced, so repeated
    CLI invocations in one process do not duplicate output.
    """

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.handlers.clear()

    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    logger.addHandler(console)

    logger.debug("Logging initialized at level %s", logging.getLevelName(logger.level))
    return logger
