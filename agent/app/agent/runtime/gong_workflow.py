"""Workflow runtime: transcript -> sandboxed summary agent -> result -> Slack, published as progress events."""

from __future__ import annotations

from dataclasses import dataclass

from app.agent.context.context_builder import ContextBuilder
from app.agent.context.sandbox_context import generate_files_for_sandbox, transcript_filename
from app.agent.events.event_logger import EventLogger
from app.agent.runtime.react_runtime import ReactRuntime
from app.agent.tools.builtin.execute_command_tool import ExecuteCommandTool
from app.agent.tools.builtin.summary_tool import SummaryTool
from app.agent.tools.permission import ToolPermissionChecker
from app.agent.tools.registry import ToolRegistry
from app.infra.demo.mock_data import DemoDataStore
from app.infra.gong.gong_client import GongApiError, GongClient, transcript_to_markdown
from app.infra.llm.openai_compatible_client import OpenAICompatibleClient
from app.infra.observability.logger import get_logger
from app.infra.sandbox.local_sandbox import LocalSandbox
from app.infra.slack.slack_client import SlackClient
from app.protocol.gong import GongTranscriptResponse, GongWebhook
from app.protocol.messages import AgentOutput, WorkflowResult

logger = get_logger(__name__)

NO_TRANSCRIPT = "No transcript available"


@dataclass(frozen=True)
class WorkflowOptions:
    demo_mode: bool
    company_name: str
    max_steps: int
    max_command_failures: int
    sandbox_command_timeout_seconds: float


class GongWorkflow:
    """Summarize one Gong call. Every step reports through the event logger."""

    def __init__(
        self,
        *,
        options: WorkflowOptions,
        gong_client: GongClient,
        demo_store: DemoDataStore,
        llm_client: OpenAICompatibleClient,
        slack_client: SlackClient,
        permission_checker: ToolPermissionChecker,
        context_builder: ContextBuilder,
    ) -> None:
        self._options = options
        self._gong_client = gong_client
        self._demo_store = demo_store
        self._llm_client = llm_client
        self._slack_client = slack_client
        self._permission_checker = permission_checker
        self._context_builder = context_builder
        self._summary_tool = SummaryTool()

    def run(self, webhook: GongWebhook, events: EventLogger) -> WorkflowResult:
        workflow_events = events.bind("workflow")
        meta = webhook.call_data.meta_data
        workflow_events.info(
            "Workflow started",
            {
                "callId": meta.id,
                "title": meta.title,
                "url": meta.url,
                "scheduled": meta.scheduled,
                "duration": meta.duration,
                "demoMode": self._options.demo_mode,
            },
        )
        account_id = webhook.salesforce_account_id()
        if account_id:
            workflow_events.info("Salesforce account linked", {"accountId": account_id})
        else:
            workflow_events.info("No Salesforce account found in call context")

        transcript = self._load_transcript(webhook, events.bind("gong"))
        if transcript is None:
            workflow_events.error(f"Workflow failed: {NO_TRANSCRIPT}", terminal="failure")
            return WorkflowResult(success=False, call_id=meta.id, reason=NO_TRANSCRIPT)
        markdown = transcript_to_markdown(transcript, webhook)

        output = self._run_agent(webhook=webhook, transcript_markdown=markdown, events=events)
        events.bind("result").info(
            output.summary,
            {
                "tasks": len(output.tasks),
                "objections": len(output.objections),
                "output": output.model_dump(mode="json"),
            },
        )
        self._notify_slack(output=output, recording_url=meta.url or None, events=events.bind("slack"))

        workflow_events.info("Workflow complete", {"callId": meta.id}, terminal="success")
        return WorkflowResult(success=True, call_id=meta.id, output=output)

    def _load_transcript(self, webhook: GongWebhook, events: EventLogger) -> GongTranscriptResponse | None:
        call_id = webhook.call_id
        if self._options.demo_mode:
            events.info("Loading demo transcript", {"callId": call_id})
            transcript = self._demo_store.transcript()
        else:
            events.info("Fetching transcript from Gong", {"callId": call_id})
            try:
                transcript = self._gong_client.fetch_transcript(call_id)
            except GongApiError as exc:
                logger.warning("workflow.transcript_failed call_id=%s error=%s", call_id, exc)
                events.warn(NO_TRANSCRIPT, {"error": str(exc)})
                return None
        if not transcript.call_transcripts:
            events.warn(NO_TRANSCRIPT, {"callId": call_id})
            return None
        segments = sum(len(item.transcript) for item in transcript.call_transcripts)
        events.info("Transcript loaded", {"segments": segments})
        return transcript

    def _run_agent(self, *, webhook: GongWebhook, transcript_markdown: str, events: EventLogger) -> AgentOutput:
        agent_events = events.bind("agent")
        sandbox_events = events.bind("sandbox")
        extra_files = self._demo_store.context_files() if self._options.demo_mode else []
        files = generate_files_for_sandbox(
            webhook=webhook,
            transcript_markdown=transcript_markdown,
            extra_files=extra_files,
        )
        with LocalSandbox(command_timeout_seconds=self._options.sandbox_command_timeout_seconds) as sandbox:
            sandbox_events.info("Sandbox created")
            sandbox.write_files(files)
            agent_events.info("Files ready", {"files": sorted(files)})

            tool_registry = ToolRegistry(
                execute_command_tool=ExecuteCommandTool(
                    sandbox=sandbox,
                    permission_checker=self._permission_checker,
                    events=events,
                ),
                permission_checker=self._permission_checker,
            )
            runtime = ReactRuntime(
                tool_registry=tool_registry,
                llm_client=self._llm_client,
                summary_tool=self._summary_tool,
                max_steps=self._options.max_steps,
                max_command_failures=self._options.max_command_failures,
                company_name=self._options.company_name,
            )
            context = self._context_builder.build(webhook=webhook, file_paths=sorted(files))
            output = runtime.run(
                context=context,
                webhook=webhook,
                transcript_path=f"gong-calls/{transcript_filename(webhook)}",
                events=events,
            )
        sandbox_events.info("Sandbox closed")
        return output

    def _notify_slack(self, *, output: AgentOutput, recording_url: str | None, events: EventLogger) -> None:
        if not self._slack_client.enabled:
            events.info("Slack not enabled, skipping notification")
            return
        events.info("Posting summary to Slack")
        result = self._slack_client.send_summary(output.summary, recording_url)
        if result.success:
            events.info("Summary posted to Slack", {"threadTs": result.thread_ts})
        else:
            events.warn(f"Slack notification failed: {result.error}")
