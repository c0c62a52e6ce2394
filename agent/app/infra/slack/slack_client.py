"""Slack infra: post call summaries through the Web API `chat.postMessage`."""

from __future__ import annotations

import json
from dataclasses import dataclass
from urllib import error, request


@dataclass(frozen=True)
class SlackConfig:
    bot_token: str
    channel_id: str
    base_url: str = "https://slack.com/api"
    timeout_seconds: float = 10.0


@dataclass(frozen=True)
class SlackPostResult:
    success: bool
    thread_ts: str | None = None
    error: str | None = None


class SlackClient:
    """Optional notifier; disabled unless both token and channel are set."""

    def __init__(self, config: SlackConfig) -> None:
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.bot_token.strip() and self._config.channel_id.strip())

    def send_summary(self, summary: str, recording_url: str | None = None) -> SlackPostResult:
        if not self.enabled:
            return SlackPostResult(success=True)
        text = f"{summary}\n\n*Recording:* {recording_url}" if recording_url else summary
        return self.post_message(self._config.channel_id, text)

    def post_message(
        self,
        channel_id: str,
        text: str,
        *,
        thread_ts: str | None = None,
        tag_users: list[str] | None = None,
    ) -> SlackPostResult:
        if tag_users:
            text = " ".join(f"<@{user_id}>" for user_id in tag_users) + f" {text}"
        payload: dict[str, str] = {"channel": channel_id, "text": text}
        if thread_ts:
            payload["thread_ts"] = thread_ts
        req = request.Request(
            self._config.base_url.rstrip("/") + "/chat.postMessage",
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self._config.bot_token}",
                "Content-Type": "application/json; charset=utf-8",
            },
        )
        try:
            with request.urlopen(req, timeout=self._config.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except (error.URLError, error.HTTPError, TimeoutError) as exc:
            return SlackPostResult(success=False, error=str(exc))

        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return SlackPostResult(success=False, error="invalid_json_response")
        if not isinstance(decoded, dict):
            return SlackPostResult(success=False, error="invalid_json_response")
        return SlackPostResult(
            success=bool(decoded.get("ok")),
            thread_ts=decoded.get("ts"),
            error=decoded.get("error"),
        )
