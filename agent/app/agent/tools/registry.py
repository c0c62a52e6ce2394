"""Unified tool registry with schema validation and execution dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from app.agent.tools.builtin.execute_command_tool import ExecuteCommandTool
from app.agent.tools.permission import ToolPermissionChecker, ToolPermissionError
from app.agent.tools.schemas import (
    ExecuteCommandArgs,
    SubmitSummaryArgs,
    TOOL_ARG_MODELS,
    build_tool_definitions,
)
from app.infra.observability.logger import get_logger

logger = get_logger(__name__)

TERMINAL_TOOLS = frozenset({"submit_summary"})


@dataclass(frozen=True)
class ToolExecutionResult:
    """Normalized tool execution output."""

    call_id: str
    tool_name: str
    status: str
    output: dict[str, Any]
    error_message: str | None = None

    @property
    def terminal(self) -> bool:
        return self.status == "completed" and self.tool_name in TERMINAL_TOOLS


class ToolRegistry:
    """Schema-first runtime entrypoint for the agent's tools."""

    def __init__(
        self,
        *,
        execute_command_tool: ExecuteCommandTool,
        permission_checker: ToolPermissionChecker,
    ) -> None:
        self._execute_command_tool = execute_command_tool
        self._permission_checker = permission_checker

    def tool_definitions(self, *, allowed_tools: list[str]) -> list[dict[str, Any]]:
        return build_tool_definitions(
            allowed_tools,
            allowed_commands=self._permission_checker.allowed_commands,
        )

    def execute(
        self,
        *,
        call_id: str,
        tool_name: str,
        raw_arguments: dict[str, Any],
        allowed_tools: list[str],
    ) -> ToolExecutionResult:
        try:
            self._permission_checker.ensure_allowed(tool_name=tool_name, allowed_tools=allowed_tools)
            validated = self._validate_arguments(tool_name=tool_name, raw_arguments=raw_arguments)
            output = self._dispatch(tool_name=tool_name, validated=validated)
        except ToolPermissionError as exc:
            return self._failed(
                call_id=call_id,
                tool_name=tool_name,
                error_type="permission_error",
                message=str(exc),
            )
        except ValidationError as exc:
            return self._failed(
                call_id=call_id,
                tool_name=tool_name,
                error_type="validation_error",
                message=str(exc),
                details=exc.errors(include_url=False, include_context=False),
            )
        except Exception as exc:
            logger.exception("tool.runtime_error tool=%s call_id=%s", tool_name, call_id)
            return self._failed(
                call_id=call_id,
                tool_name=tool_name,
                error_type="runtime_error",
                message=str(exc),
            )

        if tool_name == "execute_command" and output.get("exitCode") != 0:
            return ToolExecutionResult(
                call_id=call_id,
                tool_name=tool_name,
                status="failed",
                output=output,
                error_message=str(output.get("stderr") or "") or f"exit code {output.get('exitCode')}",
            )
        return ToolExecutionResult(
            call_id=call_id,
            tool_name=tool_name,
            status="completed",
            output=output,
        )

    def _validate_arguments(self, *, tool_name: str, raw_arguments: dict[str, Any]) -> Any:
        model = TOOL_ARG_MODELS.get(tool_name)
        if model is None:
            raise ToolPermissionError(f"unknown_tool:{tool_name}")
        return model.model_validate(raw_arguments)

    def _dispatch(self, *, tool_name: str, validated: Any) -> dict[str, Any]:
        if tool_name == "execute_command":
            assert isinstance(validated, ExecuteCommandArgs)
            return self._execute_command_tool.execute(command=validated.command, args=validated.args)
        if tool_name == "submit_summary":
            assert isinstance(validated, SubmitSummaryArgs)
            return validated.model_dump(mode="json")
        raise ToolPermissionError(f"unknown_tool:{tool_name}")

    def _failed(
        self,
        *,
        call_id: str,
        tool_name: str,
        error_type: str,
        message: str,
        details: Any = None,
    ) -> ToolExecutionResult:
        output: dict[str, Any] = {"error": {"type": error_type, "message": message}}
        if details is not None:
            output["error"]["details"] = details
        logger.warning(
            "tool.failed tool=%s call_id=%s error_type=%s message=%s",
            tool_name,
            call_id,
            error_type,
            message[:200],
        )
        return ToolExecutionResult(
            call_id=call_id,
            tool_name=tool_name,
            status="failed",
            output=output,
            error_message=message,
        )
