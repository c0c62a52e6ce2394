"""Job runtime: run workflows on worker threads and guarantee one terminal event per run."""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from threading import Lock
from typing import Protocol
from uuid import uuid4

from app.agent.events.event_logger import EventLogger
from app.agent.events.log_bus import LogBus
from app.infra.observability.logger import get_logger
from app.protocol.gong import GongWebhook
from app.protocol.messages import WorkflowResult

logger = get_logger(__name__)


class Workflow(Protocol):
    def run(self, webhook: GongWebhook, events: EventLogger) -> WorkflowResult: ...


@dataclass(frozen=True)
class JobHandle:
    run_id: str
    future: Future


class JobRunner:
    """Fire-and-forget execution of workflow runs. Sessions never cancel jobs."""

    def __init__(self, *, bus: LogBus, workflow: Workflow, max_workers: int = 2) -> None:
        self._bus = bus
        self._workflow = workflow
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers),
            thread_name_prefix="workflow",
        )
        self._lock = Lock()
        self._active: set[str] = set()

    @property
    def running(self) -> bool:
        with self._lock:
            return bool(self._active)

    def start(self, webhook: GongWebhook) -> JobHandle:
        """Submit one run. Raises RuntimeError when the runner is shut down."""
        run_id = f"run_{uuid4().hex[:12]}"
        with self._lock:
            self._active.add(run_id)
        try:
            future = self._executor.submit(self._run, run_id, webhook)
        except RuntimeError:
            with self._lock:
                self._active.discard(run_id)
            raise
        logger.info("job.started run_id=%s call_id=%s", run_id, webhook.call_id)
        return JobHandle(run_id=run_id, future=future)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    def _run(self, run_id: str, webhook: GongWebhook) -> WorkflowResult | None:
        events = EventLogger(self._bus, "workflow")
        try:
            result = self._workflow.run(webhook, events)
            logger.info(
                "job.finished run_id=%s call_id=%s success=%s",
                run_id,
                webhook.call_id,
                result.success,
            )
            return result
        except Exception as exc:
            logger.exception("job.failed run_id=%s call_id=%s", run_id, webhook.call_id)
            if events.terminal is not None:
                # The step that failed already ended the run on the bus.
                return None
            events.error(
                f"Workflow failed: {exc}",
                {"error": type(exc).__name__, "runId": run_id},
                terminal="failure",
            )
            return None
        finally:
            with self._lock:
                self._active.discard(run_id)
