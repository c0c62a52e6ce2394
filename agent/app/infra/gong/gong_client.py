"""Gong infra: fetch call transcripts and render them as Markdown."""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from urllib import error, request

from pydantic import ValidationError

from app.protocol.gong import GongTranscriptResponse, GongWebhook, Party


class GongApiError(RuntimeError):
    """Raised when the Gong API cannot be reached or returns an unusable body."""


@dataclass(frozen=True)
class GongConfig:
    base_url: str
    access_key: str
    secret_key: str
    timeout_seconds: float


class GongClient:
    """Minimal sync client for the Gong v2 REST API (Basic auth)."""

    def __init__(self, config: GongConfig) -> None:
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.access_key.strip() and self._config.secret_key.strip())

    def _headers(self) -> dict[str, str]:
        if not self.enabled:
            raise GongApiError("Gong API credentials not configured")
        token = f"{self._config.access_key}:{self._config.secret_key}".encode("utf-8")
        return {
            "Authorization": "Basic " + base64.b64encode(token).decode("ascii"),
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def fetch_transcript(self, call_id: str) -> GongTranscriptResponse:
        endpoint = self._config.base_url.rstrip("/") + "/v2/calls/transcript"
        body = json.dumps({"filter": {"callIds": [call_id]}}).encode("utf-8")
        req = request.Request(endpoint, data=body, headers=self._headers(), method="POST")
        try:
            with request.urlopen(req, timeout=self._config.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except error.HTTPError as exc:
            raise GongApiError(f"Failed to fetch Gong transcript: {exc.code} {exc.reason}") from exc
        except (error.URLError, TimeoutError) as exc:
            raise GongApiError(f"Failed to fetch Gong transcript: {exc}") from exc

        try:
            return GongTranscriptResponse.model_validate_json(raw)
        except ValidationError as exc:
            raise GongApiError("Gong transcript response has unexpected shape") from exc


def format_timestamp(ms: int) -> str:
    total_seconds = max(0, ms) // 1000
    return f"{total_seconds // 60:02d}:{total_seconds % 60:02d}"


def format_duration(seconds: float) -> str:
    whole = int(seconds)
    hours, rest = divmod(whole, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {secs}s"
    if minutes > 0:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def _speaker_info(speaker: Party) -> str:
    parts = [item for item in (speaker.affiliation, speaker.email_address, speaker.title) if item]
    return f"_({', '.join(parts)})_" if parts else ""


def transcript_to_markdown(response: GongTranscriptResponse, webhook: GongWebhook) -> str:
    """Render call info, participants and topic-grouped sentences."""
    if not response.call_transcripts:
        return "# No transcript available"
    call_transcript = response.call_transcripts[0]
    call = webhook.call_data
    speakers = {party.speaker_id: party for party in call.parties if party.speaker_id}

    meta = call.meta_data
    lines = ["# Call Transcript", "", "## Call Information", "", f"- **Call ID:** {meta.id}"]
    if meta.title:
        lines.append(f"- **Title:** {meta.title}")
    if meta.scheduled:
        lines.append(f"- **Scheduled:** {meta.scheduled}")
    if meta.started:
        lines.append(f"- **Started:** {meta.started}")
    if meta.duration:
        lines.append(f"- **Duration:** {format_duration(meta.duration)}")
    if meta.system:
        lines.append(f"- **System:** {meta.system}")
    lines.extend(["", "## Participants", ""])
    for party in call.parties:
        entry = f"- **{party.name or 'Unknown'}** ({party.affiliation or 'Unknown'})"
        if party.email_address:
            entry += f" - {party.email_address}"
        if party.title:
            entry += f" - {party.title}"
        lines.append(entry)
    lines.extend(["", "## Transcript", ""])

    current_topic: str | None = None
    for segment in call_transcript.transcript:
        topic = segment.topic or ""
        if topic != current_topic:
            current_topic = topic
            lines.extend([f"### {topic or 'Conversation'}", ""])
        speaker = speakers.get(segment.speaker_id)
        if speaker is not None:
            name = speaker.name or f"Speaker {segment.speaker_id}"
            header = f"**{name}** {_speaker_info(speaker)}".rstrip()
        else:
            header = f"**Speaker {segment.speaker_id}** (ID: {segment.speaker_id})"
        lines.extend([header, ""])
        for sentence in segment.sentences:
            lines.extend([f"> [{format_timestamp(sentence.start)}] {sentence.text}", ""])
    return "\n".join(lines)
