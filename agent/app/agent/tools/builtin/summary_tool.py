"""Tool layer: template-based call summary used when no model is configured."""

from __future__ import annotations

import re

from app.protocol.gong import GongWebhook
from app.protocol.messages import AgentOutput, CallObjection, CallTask

_GREP_LINE = re.compile(r"^(?P<path>[\w./-]+\.\w+):(?:(?P<line>\d+):)?(?P<text>.*)$")
_QUOTE_PREFIX = re.compile(r"^>\s*(\[\d{2}:\d{2}\]\s*)?")


def _clean_hit(raw: str) -> str:
    match = _GREP_LINE.match(raw)
    text = match.group("text") if match else raw
    return _QUOTE_PREFIX.sub("", text.strip()).strip()


def _unique(items: list[str], *, limit: int) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for item in items:
        if not item or item in seen:
            continue
        seen.add(item)
        result.append(item)
        if len(result) >= limit:
            break
    return result


class SummaryTool:
    """Build an AgentOutput from grep findings over the transcript files."""

    def summarize(
        self,
        *,
        webhook: GongWebhook,
        concerns: list[str],
        commitments: list[str],
        company_name: str,
    ) -> AgentOutput:
        meta = webhook.call_data.meta_data
        external = [party for party in webhook.call_data.parties if party.affiliation == "External"]
        internal = [party for party in webhook.call_data.parties if party.affiliation == "Internal"]
        concern_lines = _unique([_clean_hit(line) for line in concerns], limit=4)
        commitment_lines = _unique([_clean_hit(line) for line in commitments], limit=4)

        headline = (
            f"{company_name} met with {len(external)} external participant(s) on "
            f"*{meta.title or 'Untitled Call'}*."
        )
        parts = [headline]
        if concern_lines:
            parts.append("*Concerns raised*\n" + "\n".join(f"- {line}" for line in concern_lines))
        if commitment_lines:
            parts.append("*Next Steps*\n" + "\n".join(f"- {line}" for line in commitment_lines))
        else:
            parts.append("*Next Steps*\n- No explicit next steps found in the transcript.")

        owner = internal[0].name if internal and internal[0].name else None
        return AgentOutput(
            summary="\n\n".join(parts),
            tasks=[CallTask(description=line, owner=owner) for line in commitment_lines],
            objections=[CallObjection(description=line, handled_score=50) for line in concern_lines],
        )
