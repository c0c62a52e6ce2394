"""LLM infra: OpenAI-compatible chat.completions client with function calling via standard HTTP payload."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from urllib import error, request
from uuid import uuid4


def _safe_json_loads(raw: str | bytes | None) -> dict[str, Any]:
    if raw is None:
        return {}
    try:
        decoded = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return {}
    return decoded if isinstance(decoded, dict) else {}


@dataclass(frozen=True)
class OpenAICompatibleConfig:
    """Runtime config for OpenAI-compatible API endpoints."""

    api_key: str
    base_url: str
    model: str
    timeout_seconds: float
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class ModelToolCall:
    """Normalized function call emitted by provider model."""

    call_id: str
    name: str
    arguments: dict[str, Any]


@dataclass(frozen=True)
class ModelResponse:
    """Normalized model response with optional tool calls."""

    text: str | None = None
    tool_calls: list[ModelToolCall] = field(default_factory=list)
    finish_reason: str | None = None

    def as_assistant_message(self) -> dict[str, Any]:
        """Echo the turn back into the conversation so tool results can reference it."""
        message: dict[str, Any] = {"role": "assistant", "content": self.text or ""}
        if self.tool_calls:
            message["tool_calls"] = [
                {
                    "id": call.call_id,
                    "type": "function",
                    "function": {
                        "name": call.name,
                        "arguments": json.dumps(call.arguments, ensure_ascii=False),
                    },
                }
                for call in self.tool_calls
            ]
        return message


class OpenAICompatibleClient:
    """Minimal sync client for `/v1/chat/completions` compatible providers."""

    def __init__(self, config: OpenAICompatibleConfig) -> None:
        self._config = config

    @property
    def enabled(self) -> bool:
        return bool(self._config.api_key.strip())

    @property
    def model(self) -> str:
        return self._config.model

    def chat_completion(
        self,
        *,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        tool_choice: str | dict[str, Any] = "auto",
    ) -> tuple[ModelResponse | None, str | None]:
        """Run one model turn; return `(response, None)` or `(None, error)`."""
        if not self.enabled:
            return None, "llm provider missing api key. set LLM_API_KEY."

        payload: dict[str, Any] = {
            "model": self._config.model,
            "messages": messages,
            "temperature": self._config.temperature,
            "max_tokens": self._config.max_tokens,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice

        decoded, request_error = self._post_json(payload)
        if decoded is None:
            return None, request_error

        choices = decoded.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None, "chat completions api returned empty choices"
        first = choices[0]
        message = first.get("message")
        if not isinstance(message, dict):
            return None, "chat completions api returned invalid message payload"

        content = message.get("content")
        text = content.strip() if isinstance(content, str) and content.strip() else None
        tool_calls: list[ModelToolCall] = []
        raw_tool_calls = message.get("tool_calls")
        if isinstance(raw_tool_calls, list):
            for raw_call in raw_tool_calls:
                parsed = self._parse_tool_call(raw_call)
                if parsed:
                    tool_calls.append(parsed)

        if text is None and not tool_calls:
            return None, "chat completions api returned no text or tool_calls"
        finish_reason = first.get("finish_reason")
        return (
            ModelResponse(
                text=text,
                tool_calls=tool_calls,
                finish_reason=str(finish_reason) if finish_reason is not None else None,
            ),
            None,
        )

    def _post_json(self, payload: dict[str, Any]) -> tuple[dict[str, Any] | None, str | None]:
        endpoint = self._config.base_url.rstrip("/") + "/chat/completions"
        req = request.Request(
            endpoint,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Authorization": f"Bearer {self._config.api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )
        try:
            with request.urlopen(req, timeout=self._config.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8", errors="replace")
        except error.HTTPError as exc:
            details = ""
            try:
                body = exc.read()
                if body:
                    details = " ".join(body.decode("utf-8", errors="replace").split())
            except OSError:
                details = ""
            suffix = f"; body={details[:280]}" if details else ""
            return None, f"http_error status={exc.code} reason={exc.reason}{suffix}"
        except error.URLError as exc:
            return None, f"url_error reason={exc.reason}"
        except TimeoutError:
            return None, "timeout_error request timed out"

        decoded = _safe_json_loads(raw)
        if not decoded:
            return None, "response body is not a JSON object"
        return decoded, None

    def _parse_tool_call(self, raw_call: Any) -> ModelToolCall | None:
        if not isinstance(raw_call, dict):
            return None
        function = raw_call.get("function")
        if not isinstance(function, dict):
            return None
        name = function.get("name")
        if not isinstance(name, str) or not name:
            return None
        raw_args = function.get("arguments")
        if isinstance(raw_args, dict):
            args = raw_args
        else:
            args = _safe_json_loads(raw_args)
        call_id = raw_call.get("id") or f"call_{uuid4().hex[:12]}"
        return ModelToolCall(call_id=str(call_id), name=name, arguments=args)
