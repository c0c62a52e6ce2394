"""Sandbox infra: throwaway working directory where the agent runs read-only shell commands."""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class LocalSandbox:
    """Temporary directory holding the call context files.

    Commands run without a shell, inside the sandbox root, with a trimmed
    environment and a wall-clock timeout.
    """

    def __init__(self, *, command_timeout_seconds: float, max_output_chars: int = 12000) -> None:
        self._root = Path(tempfile.mkdtemp(prefix="call-sandbox-"))
        self._timeout = max(1.0, command_timeout_seconds)
        self._max_output_chars = max(200, max_output_chars)
        self._closed = False

    @property
    def root(self) -> Path:
        return self._root

    def write_files(self, files: dict[str, str]) -> None:
        for relative, content in files.items():
            target = (self._root / relative).resolve()
            if self._root.resolve() not in target.parents:
                raise ValueError(f"path escapes sandbox: {relative}")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")

    def run_command(self, command: str, args: list[str]) -> CommandResult:
        if self._closed:
            raise RuntimeError("sandbox is closed")
        env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "LC_ALL": "C.UTF-8"}
        try:
            completed = subprocess.run(
                [command, *args],
                cwd=self._root,
                env=env,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError:
            return CommandResult(stdout="", stderr=f"{command}: command not found", exit_code=127)
        except subprocess.TimeoutExpired:
            return CommandResult(stdout="", stderr=f"{command}: timed out after {self._timeout:g}s", exit_code=124)
        return CommandResult(
            stdout=self._clip(completed.stdout),
            stderr=self._clip(completed.stderr),
            exit_code=completed.returncode,
        )

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        shutil.rmtree(self._root, ignore_errors=True)

    def __enter__(self) -> "LocalSandbox":
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    def _clip(self, text: str) -> str:
        if len(text) <= self._max_output_chars:
            return text
        return text[: self._max_output_chars] + "\n...[truncated]"
