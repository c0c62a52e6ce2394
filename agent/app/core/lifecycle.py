"""Lifecycle hooks for startup diagnostics and worker shutdown."""

from __future__ import annotations

from app.core.container import AppContainer
from app.infra.observability.logger import get_logger

logger = get_logger(__name__)


def on_startup(container: AppContainer) -> None:
    settings = container.settings
    logger.info(
        "Service ready: mode=%s llm=%s slack=%s buffer=%s stream_timeout_s=%s",
        "demo" if settings.demo_mode else "live",
        settings.llm_configured,
        settings.slack_enabled,
        settings.log_buffer_size,
        settings.stream_timeout_seconds,
    )
    problems = settings.configuration_problems()
    if problems:
        logger.warning("Configuration incomplete, workflow triggers will be rejected: missing=%s", problems)


def on_shutdown(container: AppContainer) -> None:
    container.job_runner.shutdown()
    logger.info("Call summary agent shutdown complete.")
