"""Tool permission checks for runtime execution chain and sandbox commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_ALLOWED_COMMANDS: tuple[str, ...] = (
    "grep", "cat", "ls", "find", "head", "tail", "wc", "sort", "uniq", "awk", "sed",
)


class ToolPermissionError(RuntimeError):
    """Raised when a tool call violates policy or allowed list."""


class SandboxCommandError(ToolPermissionError):
    """Raised when a sandbox command or one of its arguments is outside the policy."""


@dataclass(frozen=True)
class ToolPolicy:
    read_only: bool = True
    concurrency_safe: bool = True


@dataclass(frozen=True)
class CommandPolicy:
    denied_args: tuple[str, ...] = ()
    denied_patterns: tuple[str, ...] = field(default_factory=tuple)


class ToolPermissionChecker:
    """Validate tool calls and sandbox commands against policy config."""

    def __init__(self, *, policy_file: Path) -> None:
        self._policies, self._commands = self._load_policies(policy_file)

    @property
    def allowed_commands(self) -> list[str]:
        return sorted(self._commands)

    def ensure_allowed(self, *, tool_name: str, allowed_tools: list[str]) -> None:
        if tool_name not in allowed_tools:
            raise ToolPermissionError(f"tool_not_allowed:{tool_name}")
        policy = self._policies.get(tool_name)
        if policy is not None and not policy.read_only:
            raise ToolPermissionError(f"tool_not_read_only:{tool_name}")

    def ensure_command_allowed(self, *, command: str, args: list[str]) -> None:
        policy = self._commands.get(command)
        if policy is None:
            raise SandboxCommandError(f"command_not_allowed:{command}")
        for arg in args:
            for denied in policy.denied_args:
                if arg == denied or (denied.startswith("-") and arg.startswith(denied + "=")):
                    raise SandboxCommandError(f"argument_not_allowed:{command} {arg}")
                if denied == "-i" and arg.startswith("-i"):
                    raise SandboxCommandError(f"argument_not_allowed:{command} {arg}")
            for pattern in policy.denied_patterns:
                if pattern in arg:
                    raise SandboxCommandError(f"argument_not_allowed:{command} {arg}")

    def _load_policies(
        self,
        policy_file: Path,
    ) -> tuple[dict[str, ToolPolicy], dict[str, CommandPolicy]]:
        defaults = {name: CommandPolicy() for name in DEFAULT_ALLOWED_COMMANDS}
        if not policy_file.exists():
            return {}, defaults
        try:
            raw = yaml.safe_load(policy_file.read_text(encoding="utf-8"))
        except yaml.YAMLError:
            return {}, defaults
        if not isinstance(raw, dict):
            return {}, defaults

        tools: dict[str, ToolPolicy] = {}
        tool_policies = raw.get("tool_policies")
        if isinstance(tool_policies, dict):
            for name, payload in tool_policies.items():
                if not isinstance(name, str) or not isinstance(payload, dict):
                    continue
                tools[name] = ToolPolicy(
                    read_only=bool(payload.get("read_only", True)),
                    concurrency_safe=bool(payload.get("concurrency_safe", True)),
                )

        command_policies = raw.get("command_policies")
        if not isinstance(command_policies, dict):
            return tools, defaults
        commands: dict[str, CommandPolicy] = {}
        for name, payload in command_policies.items():
            if not isinstance(name, str):
                continue
            payload = payload if isinstance(payload, dict) else {}
            commands[name] = CommandPolicy(
                denied_args=tuple(str(item) for item in payload.get("denied_args") or ()),
                denied_patterns=tuple(str(item) for item in payload.get("denied_patterns") or ()),
            )
        return tools, commands
