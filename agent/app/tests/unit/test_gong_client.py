"""Unit tests for Gong transcript formatting and webhook parsing."""

from __future__ import annotations

import pytest

from app.infra.demo.mock_data import DemoDataStore
from app.infra.gong.gong_client import format_duration, format_timestamp, transcript_to_markdown
from app.protocol.gong import GongTranscriptResponse, GongWebhook, WebhookPayloadError, parse_webhook


def test_format_timestamp() -> None:
    assert format_timestamp(0) == "00:00"
    assert format_timestamp(61000) == "01:01"
    assert format_timestamp(1712000) == "28:32"


def test_format_duration() -> None:
    assert format_duration(3) == "3s"
    assert format_duration(123) == "2m 3s"
    assert format_duration(3723) == "1h 2m 3s"


def test_transcript_markdown_groups_by_topic(demo_store: DemoDataStore, demo_webhook: GongWebhook) -> None:
    markdown = transcript_to_markdown(demo_store.transcript(), demo_webhook)

    assert markdown.startswith("# Call Transcript")
    assert "- **Call ID:** demo-call-001" in markdown
    assert "- **Duration:** 30m 45s" in markdown
    assert "- **Jordan Lee** (Internal) - jordan.lee@example.com - Account Executive" in markdown
    assert markdown.count("### Security") == 1
    assert markdown.count("### Pricing") == 1
    assert "> [01:01] My main concern is data residency." in markdown


def test_unknown_speaker_is_labelled_by_id(demo_webhook: GongWebhook) -> None:
    transcript = GongTranscriptResponse.model_validate(
        {
            "callTranscripts": [
                {
                    "callId": "demo-call-001",
                    "transcript": [
                        {"speakerId": "spk-9", "sentences": [{"start": 0, "end": 1, "text": "Hello"}]}
                    ],
                }
            ]
        }
    )

    markdown = transcript_to_markdown(transcript, demo_webhook)

    assert "### Conversation" in markdown
    assert "**Speaker spk-9** (ID: spk-9)" in markdown


def test_empty_transcript(demo_webhook: GongWebhook) -> None:
    assert transcript_to_markdown(GongTranscriptResponse(), demo_webhook) == "# No transcript available"


def test_webhook_exposes_call_id_and_salesforce_account(demo_webhook: GongWebhook) -> None:
    assert demo_webhook.call_id == "demo-call-001"
    assert demo_webhook.salesforce_account_id() == "001DEMO0000000001"


def test_parse_webhook_rejects_bad_bodies() -> None:
    with pytest.raises(WebhookPayloadError):
        parse_webhook(b"")
    with pytest.raises(WebhookPayloadError):
        parse_webhook(b"{not json")
    with pytest.raises(WebhookPayloadError, match="callData"):
        parse_webhook(b'{"isTest": true}')


def test_parse_webhook_accepts_minimal_body() -> None:
    webhook = parse_webhook(b'{"callData": {"metaData": {"id": "c-1"}}}')

    assert webhook.call_id == "c-1"
    assert webhook.salesforce_account_id() is None
