"""Observability layer: centralized logger setup for API, job runner and progress events."""

from __future__ import annotations

import logging

PROGRESS_LOGGER = "app.progress"


def setup_logging(level: str = "INFO", *, progress_level: str | None = None) -> None:
    """Configure root logger once for single-line console output.

    Progress events mirrored from the bus go to `app.progress`, which can be
    tuned separately from the rest of the process.
    """
    normalized = level.upper()
    logging.basicConfig(
        level=normalized,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        force=True,
    )
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(name)
        logger.handlers.clear()
        logger.setLevel(normalized)
        logger.propagate = True
    logging.getLogger(PROGRESS_LOGGER).setLevel((progress_level or normalized).upper())


def get_logger(name: str) -> logging.Logger:
    """Return a module-level logger instance."""
    return logging.getLogger(name)
