"""Tool layer: run allow-listed read-only commands inside the call sandbox."""

from __future__ import annotations

import shlex
from typing import Any

from app.agent.events.event_logger import EventLogger
from app.agent.tools.permission import ToolPermissionChecker
from app.infra.sandbox.local_sandbox import LocalSandbox

_EVENT_OUTPUT_LIMIT = 2000


def _clip(text: str, limit: int = _EVENT_OUTPUT_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "\n..."


class ExecuteCommandTool:
    """Shell access for the agent, reported live as `bash` / `bash-output` events."""

    def __init__(
        self,
        *,
        sandbox: LocalSandbox,
        permission_checker: ToolPermissionChecker,
        events: EventLogger,
    ) -> None:
        self._sandbox = sandbox
        self._permission_checker = permission_checker
        self._bash_events = events.bind("bash")
        self._output_events = events.bind("bash-output")

    def execute(self, *, command: str, args: list[str]) -> dict[str, Any]:
        printable = " ".join([command, *(shlex.quote(arg) for arg in args)])
        self._bash_events.info(f"$ {printable}")
        self._permission_checker.ensure_command_allowed(command=command, args=args)

        result = self._sandbox.run_command(command, args)
        output = result.stdout.rstrip() or "(no output)"
        if result.ok:
            self._output_events.info(_clip(output), {"exitCode": result.exit_code})
        else:
            self._output_events.warn(
                _clip(result.stderr.rstrip() or output),
                {"exitCode": result.exit_code},
            )
        return {
            "stdout": result.stdout or "(no output)",
            "stderr": result.stderr,
            "exitCode": result.exit_code,
        }
