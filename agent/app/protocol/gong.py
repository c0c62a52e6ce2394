"""Protocol layer: Gong webhook and transcript payloads (camelCase on the wire)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel


class _GongModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class MetaData(_GongModel):
    """Call metadata."""

    id: str
    url: str = ""
    title: str | None = None
    scheduled: str | None = None
    started: str | None = None
    duration: float | None = Field(default=None, description="Call duration in seconds.")
    primary_user_id: str | None = None
    direction: str | None = None
    system: str | None = None
    scope: str | None = None
    media: str | None = None
    language: str | None = None
    purpose: str | None = None
    meeting_url: str | None = None
    is_private: bool | None = None


class ContextField(_GongModel):
    name: str
    value: Any = None


class CallContextObject(_GongModel):
    object_type: str
    object_id: str | None = None
    fields: list[ContextField] = Field(default_factory=list)
    timing: str | None = None


class CallContextEntry(_GongModel):
    """CRM context entry, e.g. Salesforce objects linked to the call."""

    system: str
    objects: list[CallContextObject] = Field(default_factory=list)


class Party(_GongModel):
    """A participant on the call."""

    id: str
    email_address: str | None = None
    name: str | None = None
    title: str | None = None
    user_id: str | None = None
    speaker_id: str | None = None
    affiliation: str | None = None
    phone_number: str | None = None
    methods: list[str] = Field(default_factory=list)


class CallData(_GongModel):
    meta_data: MetaData
    context: list[CallContextEntry] = Field(default_factory=list)
    parties: list[Party] = Field(default_factory=list)


class GongWebhook(_GongModel):
    """Webhook body posted by Gong when a call is processed."""

    call_data: CallData
    is_test: bool = False
    is_private: bool = False

    @property
    def call_id(self) -> str:
        return self.call_data.meta_data.id

    def salesforce_account_id(self) -> str | None:
        for entry in self.call_data.context:
            if entry.system != "Salesforce":
                continue
            for obj in entry.objects:
                if obj.object_type == "Account" and obj.object_id:
                    return obj.object_id
        return None


class TranscriptSentence(_GongModel):
    start: int
    end: int
    text: str


class TranscriptSegment(_GongModel):
    speaker_id: str
    topic: str | None = None
    sentences: list[TranscriptSentence] = Field(default_factory=list)


class CallTranscript(_GongModel):
    call_id: str
    transcript: list[TranscriptSegment] = Field(default_factory=list)


class GongTranscriptResponse(_GongModel):
    """Body returned by `POST /v2/calls/transcript`."""

    call_transcripts: list[CallTranscript] = Field(default_factory=list)


class WebhookPayloadError(ValueError):
    """Raised when a webhook body is not valid JSON or fails validation."""


def parse_webhook(raw: bytes | str) -> GongWebhook:
    """Validate a raw webhook body into a GongWebhook."""
    if not raw or not raw.strip():
        raise WebhookPayloadError("Request body is empty")
    try:
        return GongWebhook.model_validate_json(raw)
    except ValidationError as exc:
        first = exc.errors(include_url=False)[0] if exc.error_count() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "invalid payload")
        raise WebhookPayloadError(
            f"Invalid webhook payload: {location}: {message}" if location else f"Invalid webhook payload: {message}"
        ) from exc
