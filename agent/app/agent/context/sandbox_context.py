"""Context assembly: files written into the agent sandbox for one call."""

from __future__ import annotations

import json
import re

from app.infra.demo.mock_data import DemoContextFile
from app.protocol.gong import GongWebhook


def transcript_filename(webhook: GongWebhook) -> str:
    meta = webhook.call_data.meta_data
    slug = re.sub(r"[^a-z0-9]", "-", (meta.title or "call").lower())
    return f"{meta.id}-{slug}.md"


def generate_files_for_sandbox(
    *,
    webhook: GongWebhook,
    transcript_markdown: str,
    extra_files: list[DemoContextFile] | None = None,
) -> dict[str, str]:
    """Map sandbox-relative paths to file contents."""
    meta = webhook.call_data.meta_data
    files: dict[str, str] = {
        f"gong-calls/{transcript_filename(webhook)}": transcript_markdown,
        "gong-calls/metadata.json": json.dumps(
            {
                "callId": meta.id,
                "title": meta.title,
                "scheduled": meta.scheduled,
                "duration": meta.duration,
                "system": meta.system,
                "participants": [
                    {
                        "name": party.name,
                        "email": party.email_address,
                        "affiliation": party.affiliation,
                        "title": party.title,
                    }
                    for party in webhook.call_data.parties
                ],
            },
            indent=2,
        ),
    }
    for extra in extra_files or []:
        files[extra.path] = extra.content
    return files
