from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_LEVEL_ENV = "EPI_DASHBOARD_LOG_LEVEL"
NOISY_LOGGERS = ("matplotlib", "PIL")


def configure_logging(level: str | None = None) -> None:
    """Root logging for CLI runs; ``EPI_DASHBOARD_LOG_LEVEL`` wins over the default."""
    resolved = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()
    if not isinstance(logging.getLevelName(resolved), int):
        resolved = "INFO"
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    # Font-cache and image plugin chatter drowns pipeline output at DEBUG.
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
