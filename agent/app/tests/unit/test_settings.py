"""Unit tests for environment-driven settings and run-mode derivation."""

from __future__ import annotations

from pathlib import Path

from app.core.config import Settings


def test_settings_reads_env(monkeypatch) -> None:
    monkeypatch.setenv("LLM_API_KEY", "test-key")
    monkeypatch.setenv("LLM_BASE_URL", "https://api.example.com/v1")
    monkeypatch.setenv("AI_MODEL", "gpt-test")
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "9")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.4")
    monkeypatch.setenv("LLM_MAX_TOKENS", "321")
    monkeypatch.setenv("AGENT_MAX_STEPS", "7")
    monkeypatch.setenv("AGENT_MAX_COMMAND_FAILURES", "2")
    monkeypatch.setenv("AGENT_TOOL_POLICY_FILE", "custom/policy.yaml")
    monkeypatch.setenv("LOG_BUFFER_SIZE", "50")
    monkeypatch.setenv("STREAM_TIMEOUT_SECONDS", "30")
    monkeypatch.setenv("COMPANY_NAME", "Initech")

    settings = Settings.from_env()

    assert settings.llm_api_key == "test-key"
    assert settings.llm_base_url == "https://api.example.com/v1"
    assert settings.llm_model == "gpt-test"
    assert settings.llm_timeout_seconds == 9
    assert settings.llm_temperature == 0.4
    assert settings.llm_max_tokens == 321
    assert settings.agent_max_steps == 7
    assert settings.agent_max_command_failures == 2
    assert settings.agent_tool_policy_file == Path("custom/policy.yaml")
    assert settings.log_buffer_size == 50
    assert settings.stream_timeout_seconds == 30
    assert settings.company_name == "Initech"


def test_missing_gong_credentials_force_demo_mode(monkeypatch) -> None:
    monkeypatch.delenv("GONG_ACCESS_KEY", raising=False)
    monkeypatch.delenv("GONG_SECRET_KEY", raising=False)
    monkeypatch.setenv("DEMO_MODE", "false")

    settings = Settings.from_env()

    assert settings.demo_mode is True
    assert settings.configuration_problems() == []


def test_live_mode_requires_llm_key() -> None:
    settings = Settings(gong_access_key="ak", gong_secret_key="sk")

    assert settings.demo_mode is False
    assert settings.configuration_problems() == ["LLM_API_KEY"]
    assert Settings(gong_access_key="ak", gong_secret_key="sk", llm_api_key="k").configuration_problems() == []


def test_demo_flag_overrides_credentials() -> None:
    settings = Settings(demo_mode_flag=True, gong_access_key="ak", gong_secret_key="sk")

    assert settings.demo_mode is True


def test_slack_needs_token_and_channel() -> None:
    assert Settings(slack_bot_token="xoxb").slack_enabled is False
    assert Settings(slack_bot_token="xoxb", slack_channel_id="C1").slack_enabled is True
