"""Configuration layer: load runtime settings from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


def _resolve_path(path_like: str) -> Path:
    candidate = Path(path_like)
    if candidate.is_absolute():
        return candidate
    if candidate.exists():
        return candidate
    project_root = Path(__file__).resolve().parents[2]
    rooted = project_root / candidate
    if rooted.exists():
        return rooted
    return candidate


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable application settings used across API/runtime layers."""

    app_name: str = "Sales Call Summary Agent"
    app_version: str = "0.1.0"
    env: str = "dev"
    log_level: str = "INFO"
    progress_log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    log_buffer_size: int = 200
    stream_timeout_seconds: float = 120.0
    demo_mode_flag: bool = False
    company_name: str = "Your Company"
    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 60.0
    llm_temperature: float = 0.2
    llm_max_tokens: int = 1500
    agent_max_steps: int = 12
    agent_max_command_failures: int = 3
    agent_tool_policy_file: Path = Path("app/agent/nodes/profiles/tool_policies.yaml")
    gong_base_url: str = "https://api.gong.io"
    gong_access_key: str = ""
    gong_secret_key: str = ""
    gong_timeout_seconds: float = 20.0
    slack_bot_token: str = ""
    slack_channel_id: str = ""
    sandbox_command_timeout_seconds: float = 15.0
    demo_files_dir: Path = Path("app/infra/demo/files")

    @property
    def gong_configured(self) -> bool:
        return bool(self.gong_access_key.strip() and self.gong_secret_key.strip())

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_api_key.strip())

    @property
    def slack_enabled(self) -> bool:
        return bool(self.slack_bot_token.strip() and self.slack_channel_id.strip())

    @property
    def demo_mode(self) -> bool:
        """Demo mode substitutes packaged data for Gong; forced when credentials are missing."""
        return self.demo_mode_flag or not self.gong_configured

    def configuration_problems(self) -> list[str]:
        """List settings that keep live mode from running."""
        if self.demo_mode:
            return []
        problems: list[str] = []
        if not self.llm_configured:
            problems.append("LLM_API_KEY")
        return problems

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from process env with deterministic defaults."""
        return cls(
            app_name=os.getenv("APP_NAME", cls.app_name),
            app_version=os.getenv("APP_VERSION", cls.app_version),
            env=os.getenv("APP_ENV", cls.env),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
            progress_log_level=os.getenv("PROGRESS_LOG_LEVEL", cls.progress_log_level),
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", str(cls.port))),
            cors_allow_origins=os.getenv("CORS_ALLOW_ORIGINS", cls.cors_allow_origins),
            log_buffer_size=int(os.getenv("LOG_BUFFER_SIZE", str(cls.log_buffer_size))),
            stream_timeout_seconds=float(
                os.getenv("STREAM_TIMEOUT_SECONDS", str(cls.stream_timeout_seconds))
            ),
            demo_mode_flag=_env_bool("DEMO_MODE", cls.demo_mode_flag),
            company_name=os.getenv("COMPANY_NAME", cls.company_name),
            llm_api_key=os.getenv("LLM_API_KEY", cls.llm_api_key),
            llm_base_url=os.getenv("LLM_BASE_URL", cls.llm_base_url),
            llm_model=os.getenv("AI_MODEL", cls.llm_model),
            llm_timeout_seconds=float(
                os.getenv("LLM_TIMEOUT_SECONDS", str(cls.llm_timeout_seconds))
            ),
            llm_temperature=float(
                os.getenv("LLM_TEMPERATURE", str(cls.llm_temperature))
            ),
            llm_max_tokens=int(
                os.getenv("LLM_MAX_TOKENS", str(cls.llm_max_tokens))
            ),
            agent_max_steps=int(
                os.getenv("AGENT_MAX_STEPS", str(cls.agent_max_steps))
            ),
            agent_max_command_failures=int(
                os.getenv("AGENT_MAX_COMMAND_FAILURES", str(cls.agent_max_command_failures))
            ),
            agent_tool_policy_file=_resolve_path(
                os.getenv("AGENT_TOOL_POLICY_FILE", str(cls.agent_tool_policy_file))
            ),
            gong_base_url=os.getenv("GONG_BASE_URL", cls.gong_base_url),
            gong_access_key=os.getenv("GONG_ACCESS_KEY", cls.gong_access_key),
            gong_secret_key=os.getenv("GONG_SECRET_KEY", cls.gong_secret_key),
            gong_timeout_seconds=float(
                os.getenv("GONG_TIMEOUT_SECONDS", str(cls.gong_timeout_seconds))
            ),
            slack_bot_token=os.getenv("SLACK_BOT_TOKEN", cls.slack_bot_token),
            slack_channel_id=os.getenv("SLACK_CHANNEL_ID", cls.slack_channel_id),
            sandbox_command_timeout_seconds=float(
                os.getenv(
                    "SANDBOX_COMMAND_TIMEOUT_SECONDS",
                    str(cls.sandbox_command_timeout_seconds),
                )
            ),
            demo_files_dir=_resolve_path(os.getenv("DEMO_FILES_DIR", str(cls.demo_files_dir))),
        )
