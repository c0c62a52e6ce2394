"""Context assembly for the call summary agent: instructions, task prompt and file tree."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from app.protocol.gong import GongWebhook


@dataclass(frozen=True)
class BuiltContext:
    """Prepared prompt payload for the model client."""

    instructions: str
    messages: list[dict[str, Any]]


def generate_file_tree(paths: list[str]) -> str:
    """Render sandbox paths as an indented tree rooted at `.`."""
    tree: dict[str, Any] = {}
    for path in sorted(paths):
        node = tree
        for part in path.split("/"):
            node = node.setdefault(part, {})

    lines = ["."]

    def walk(node: dict[str, Any], prefix: str) -> None:
        # Directories first, then files, each alphabetical.
        names = sorted(node, key=lambda name: (not node[name], name))
        for index, name in enumerate(names):
            last = index == len(names) - 1
            lines.append(f"{prefix}{'└── ' if last else '├── '}{name}")
            if node[name]:
                walk(node[name], prefix + ("    " if last else "│   "))

    walk(tree, "")
    return "\n".join(lines)


def _format_minutes(duration: float | None) -> str:
    if not duration:
        return "Unknown"
    return f"{round(duration / 60)} minutes"


class ContextBuilder:
    """Build model instructions and the opening message for one call."""

    def __init__(self, *, prompt_root: Path, company_name: str) -> None:
        self._prompt_root = prompt_root
        self._company_name = company_name
        self._prompt_cache: dict[str, str] = {}

    def build(self, *, webhook: GongWebhook, file_paths: list[str]) -> BuiltContext:
        meta = webhook.call_data.meta_data
        participants = "\n".join(
            f"- {party.name or 'Unknown'} ({party.affiliation or 'Unknown'})"
            + (f" - {party.title}" if party.title else "")
            for party in webhook.call_data.parties
        )
        sections = (
            self._load_prompt("system_base.md").strip(),
            "## Call Context",
            "\n".join(
                (
                    f"**Call:** {meta.title or 'Untitled Call'}",
                    f"**Date:** {meta.scheduled or meta.started or 'Unknown'}",
                    f"**Duration:** {_format_minutes(meta.duration)}",
                    f"**System:** {meta.system or 'Unknown'}",
                )
            ),
            "**Participants:**\n" + (participants or "- Unknown"),
            "## Filesystem Structure\n```\n" + generate_file_tree(file_paths) + "\n```",
            "\n".join(
                (
                    "## Instructions",
                    "",
                    "1. First, explore the call transcript using the execute_command tool",
                    "2. Search for key topics, objections, and action items",
                    "3. Analyze how objections were handled",
                    "4. Submit a comprehensive summary with submit_summary",
                )
            ),
            "\n".join(
                (
                    "## Metadata",
                    f"- Current date: {datetime.now(timezone.utc).isoformat()}",
                    f"- Company: {self._company_name}",
                )
            ),
        )
        instructions = "\n\n".join(sections)
        messages = [
            {"role": "system", "content": instructions},
            {"role": "user", "content": self._load_prompt("task.md").strip()},
        ]
        return BuiltContext(instructions=instructions, messages=messages)

    def _load_prompt(self, filename: str) -> str:
        if filename in self._prompt_cache:
            return self._prompt_cache[filename]
        path = self._prompt_root / filename
        content = path.read_text(encoding="utf-8") if path.exists() else ""
        self._prompt_cache[filename] = content
        return content
