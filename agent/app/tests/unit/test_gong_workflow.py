"""Unit tests for the Gong workflow steps using demo data and stubbed integrations."""

from __future__ import annotations

from pathlib import Path

from app.agent.context.context_builder import ContextBuilder
from app.agent.events.event_logger import EventLogger
from app.agent.events.log_bus import LogBus
from app.agent.runtime.gong_workflow import GongWorkflow, WorkflowOptions
from app.agent.tools.permission import ToolPermissionChecker
from app.infra.demo.mock_data import DemoDataStore
from app.infra.gong.gong_client import GongApiError
from app.infra.slack.slack_client import SlackPostResult
from app.protocol.gong import GongWebhook

APP_ROOT = Path(__file__).resolve().parents[2]


class _DisabledLLM:
    enabled = False
    model = "none"


class _FailingGong:
    def fetch_transcript(self, call_id: str):
        raise GongApiError(f"Failed to fetch Gong transcript: 401 Unauthorized ({call_id})")


class _RecordingSlack:
    def __init__(self, *, enabled: bool, success: bool = True) -> None:
        self.enabled = enabled
        self._success = success
        self.posts: list[tuple[str, str | None]] = []

    def send_summary(self, summary: str, recording_url: str | None = None) -> SlackPostResult:
        self.posts.append((summary, recording_url))
        if self._success:
            return SlackPostResult(success=True, thread_ts="1700000000.000100")
        return SlackPostResult(success=False, error="channel_not_found")


def _workflow(demo_store: DemoDataStore, *, demo_mode: bool, slack: _RecordingSlack) -> GongWorkflow:
    return GongWorkflow(
        options=WorkflowOptions(
            demo_mode=demo_mode,
            company_name="Initech",
            max_steps=4,
            max_command_failures=3,
            sandbox_command_timeout_seconds=5,
        ),
        gong_client=_FailingGong(),  # type: ignore[arg-type]
        demo_store=demo_store,
        llm_client=_DisabledLLM(),  # type: ignore[arg-type]
        slack_client=slack,  # type: ignore[arg-type]
        permission_checker=ToolPermissionChecker(
            policy_file=APP_ROOT / "agent" / "nodes" / "profiles" / "tool_policies.yaml"
        ),
        context_builder=ContextBuilder(prompt_root=APP_ROOT / "agent" / "context" / "prompts", company_name="Initech"),
    )


def test_demo_run_publishes_every_step(bus: LogBus, demo_store: DemoDataStore, demo_webhook: GongWebhook) -> None:
    slack = _RecordingSlack(enabled=False)

    result = _workflow(demo_store, demo_mode=True, slack=slack).run(demo_webhook, EventLogger(bus, "workflow"))

    assert result.success is True
    events = bus.snapshot()
    assert events[0].message == "Workflow started"
    assert events[0].data is not None and events[0].data["callId"] == "demo-call-001"
    assert events[-1].message == "Workflow complete"
    assert events[-1].terminal == "success"
    contexts = [event.context for event in events]
    for context in ("gong", "sandbox", "agent", "bash", "bash-output", "result", "slack"):
        assert context in contexts
    result_event = next(event for event in events if event.context == "result")
    assert result_event.message == result.output.summary
    assert result_event.data is not None and result_event.data["tasks"] == len(result.output.tasks)
    assert any(event.message == "Slack not enabled, skipping notification" for event in events)
    assert any(event.message == "Salesforce account linked" for event in events)


def test_slack_failure_is_a_warning(bus: LogBus, demo_store: DemoDataStore, demo_webhook: GongWebhook) -> None:
    slack = _RecordingSlack(enabled=True, success=False)

    result = _workflow(demo_store, demo_mode=True, slack=slack).run(demo_webhook, EventLogger(bus, "workflow"))

    assert result.success is True
    assert slack.posts[0][1] == "https://app.gong.io/call?id=demo-call-001"
    warning = next(event for event in bus.snapshot() if event.context == "slack" and event.level == "warn")
    assert warning.message == "Slack notification failed: channel_not_found"
    assert bus.snapshot()[-1].message == "Workflow complete"


def test_live_transcript_failure_ends_workflow(bus: LogBus, demo_store: DemoDataStore, demo_webhook: GongWebhook) -> None:
    slack = _RecordingSlack(enabled=True)

    result = _workflow(demo_store, demo_mode=False, slack=slack).run(demo_webhook, EventLogger(bus, "workflow"))

    assert result.success is False
    assert result.reason == "No transcript available"
    events = bus.snapshot()
    assert any(event.context == "gong" and event.message == "No transcript available" for event in events)
    assert events[-1].message == "Workflow failed: No transcript available"
    assert events[-1].terminal == "failure"
    assert slack.posts == []
