"""Composition layer: build and hold long-lived service objects for dependency injection."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from app.agent.context.context_builder import ContextBuilder
from app.agent.events.log_bus import LogBus
from app.agent.runtime.gong_workflow import GongWorkflow, WorkflowOptions
from app.agent.runtime.job_runner import JobRunner, Workflow
from app.agent.tools.permission import ToolPermissionChecker
from app.core.config import Settings
from app.infra.demo.mock_data import DemoDataStore
from app.infra.gong.gong_client import GongClient, GongConfig
from app.infra.llm.openai_compatible_client import OpenAICompatibleClient, OpenAICompatibleConfig
from app.infra.slack.slack_client import SlackClient, SlackConfig


@dataclass
class AppContainer:
    """Container object attached to FastAPI app state."""

    settings: Settings
    bus: LogBus
    demo_store: DemoDataStore
    workflow: Workflow
    job_runner: JobRunner


def build_container(settings: Settings, *, workflow: Workflow | None = None) -> AppContainer:
    """Construct runtime dependencies in one place; `workflow` overrides the Gong workflow."""
    bus = LogBus(capacity=settings.log_buffer_size)
    demo_store = DemoDataStore(settings.demo_files_dir)
    if workflow is None:
        workflow = _build_gong_workflow(settings, demo_store)
    job_runner = JobRunner(bus=bus, workflow=workflow)
    return AppContainer(
        settings=settings,
        bus=bus,
        demo_store=demo_store,
        workflow=workflow,
        job_runner=job_runner,
    )


def _build_gong_workflow(settings: Settings, demo_store: DemoDataStore) -> GongWorkflow:
    llm_client = OpenAICompatibleClient(
        OpenAICompatibleConfig(
            api_key=settings.llm_api_key,
            base_url=settings.llm_base_url,
            model=settings.llm_model,
            timeout_seconds=settings.llm_timeout_seconds,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
        )
    )
    gong_client = GongClient(
        GongConfig(
            base_url=settings.gong_base_url,
            access_key=settings.gong_access_key,
            secret_key=settings.gong_secret_key,
            timeout_seconds=settings.gong_timeout_seconds,
        )
    )
    slack_client = SlackClient(
        SlackConfig(bot_token=settings.slack_bot_token, channel_id=settings.slack_channel_id)
    )
    project_root = Path(__file__).resolve().parents[1]
    context_builder = ContextBuilder(
        prompt_root=project_root / "agent" / "context" / "prompts",
        company_name=settings.company_name,
    )
    return GongWorkflow(
        options=WorkflowOptions(
            demo_mode=settings.demo_mode,
            company_name=settings.company_name,
            max_steps=settings.agent_max_steps,
            max_command_failures=settings.agent_max_command_failures,
            sandbox_command_timeout_seconds=settings.sandbox_command_timeout_seconds,
        ),
        gong_client=gong_client,
        demo_store=demo_store,
        llm_client=llm_client,
        slack_client=slack_client,
        permission_checker=ToolPermissionChecker(policy_file=settings.agent_tool_policy_file),
        context_builder=context_builder,
    )
