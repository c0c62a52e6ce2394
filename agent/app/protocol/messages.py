"""Protocol layer: agent output and HTTP response DTOs."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

RunMode = Literal["demo", "live"]


class CallTask(BaseModel):
    """Action item extracted from the call."""

    description: str
    owner: str | None = None
    due: str | None = None


class CallObjection(BaseModel):
    """Objection raised on the call and how well it was handled."""

    description: str
    response: str | None = None
    handled_score: int = Field(default=50, ge=0, le=100)


class AgentOutput(BaseModel):
    """Structured result produced by the summary agent."""

    summary: str
    tasks: list[CallTask] = Field(default_factory=list)
    objections: list[CallObjection] = Field(default_factory=list)


class WorkflowResult(BaseModel):
    """Return value of one workflow run."""

    success: bool
    call_id: str
    reason: str | None = None
    output: AgentOutput | None = None


class ConfiguredFlags(BaseModel):
    gong: bool
    llm: bool
    slack: bool


class WebhookStatusResponse(BaseModel):
    """Status payload for requests without streaming intent."""

    status: str = "ok"
    demoMode: bool
    mode: RunMode
    configured: ConfiguredFlags
    valid: bool
    missing: list[str] = Field(default_factory=list)
    jobRunning: bool


class WorkflowTriggeredResponse(BaseModel):
    message: str = "Workflow triggered"
    callId: str
    runId: str
    demoMode: bool


class ErrorResponse(BaseModel):
    error: str
    message: str | None = None
    missing: list[str] | None = None
