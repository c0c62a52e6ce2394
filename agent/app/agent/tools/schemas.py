"""Tool argument schemas and function definition builders."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.protocol.messages import CallObjection, CallTask


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ExecuteCommandArgs(_StrictModel):
    command: str = Field(..., min_length=1, description="The shell command to execute, e.g. `grep`.")
    args: list[str] = Field(
        default_factory=list,
        description="Arguments to pass to the command, e.g. `[\"-ri\", \"pricing\", \"gong-calls/\"]`.",
    )


class SubmitSummaryArgs(_StrictModel):
    summary: str = Field(..., min_length=1, description="Slack-ready call summary.")
    tasks: list[CallTask] = Field(default_factory=list, description="Action items with owners.")
    objections: list[CallObjection] = Field(
        default_factory=list,
        description="Objections with a 0-100 score of how well each was handled.",
    )


TOOL_ARG_MODELS: dict[str, type[_StrictModel]] = {
    "execute_command": ExecuteCommandArgs,
    "submit_summary": SubmitSummaryArgs,
}

TOOL_DESCRIPTIONS: dict[str, str] = {
    "execute_command": (
        "Execute shell commands to search and explore call transcript files.\n\n"
        "Available commands: {commands}\n\n"
        "Example commands:\n"
        "- ls gong-calls/ - List all available call transcripts\n"
        "- grep -r \"pricing\" gong-calls/ - Search for pricing discussions across all calls\n"
        "- grep -i \"competitor\" gong-calls/ -r - Find competitor mentions\n"
        "- cat gong-calls/metadata.json - View call metadata\n"
        "- head -50 gong-calls/<file>.md - View first 50 lines of a transcript"
    ),
    "submit_summary": (
        "Submit the final call summary, action items and scored objections. "
        "Call exactly once, after exploring the files."
    ),
}


def build_tool_definitions(
    tool_names: list[str],
    *,
    allowed_commands: list[str] | None = None,
) -> list[dict[str, Any]]:
    """Build OpenAI-compatible function tool definitions."""
    commands = ", ".join(allowed_commands or [])
    definitions: list[dict[str, Any]] = []
    for name in tool_names:
        model = TOOL_ARG_MODELS.get(name)
        if model is None:
            continue
        description = TOOL_DESCRIPTIONS.get(name, name).replace("{commands}", commands)
        definitions.append(
            {
                "type": "function",
                "function": {
                    "name": name,
                    "description": description,
                    "parameters": model.model_json_schema(),
                },
            }
        )
    return definitions
