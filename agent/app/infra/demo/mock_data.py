"""Demo infra: packaged webhook, transcript and context files used instead of live Gong data."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from app.protocol.gong import GongTranscriptResponse, GongWebhook


@dataclass(frozen=True)
class DemoContextFile:
    path: str
    content: str
    description: str


_DEMO_CONTEXT_FILES: tuple[tuple[str, str, str], ...] = (
    (
        "gong-calls/previous/demo-call-000-discovery-call.md",
        "context/gong-calls/previous/demo-call-000-discovery-call.md",
        "Previous discovery call",
    ),
    ("salesforce/account.md", "context/salesforce/account.md", "Salesforce account"),
    ("salesforce/opportunity.md", "context/salesforce/opportunity.md", "Salesforce opportunity"),
    ("research/competitive-intel.md", "context/research/competitive-intel.md", "Competitive intel"),
    ("playbooks/sales-playbook.md", "context/playbooks/sales-playbook.md", "Sales playbook"),
)


class DemoDataStore:
    """Read demo fixtures from one directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def webhook(self) -> GongWebhook:
        return GongWebhook.model_validate_json(self._read("webhook-data.json"))

    def transcript(self) -> GongTranscriptResponse:
        return GongTranscriptResponse.model_validate_json(self._read("transcript.json"))

    def context_files(self) -> list[DemoContextFile]:
        return [
            DemoContextFile(path=sandbox_path, content=self._read(demo_path), description=description)
            for sandbox_path, demo_path, description in _DEMO_CONTEXT_FILES
        ]

    def _read(self, relative: str) -> str:
        return (self._root / relative).read_text(encoding="utf-8")
