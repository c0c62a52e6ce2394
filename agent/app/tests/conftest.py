"""Test fixtures shared by unit/integration tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from app.agent.events.log_bus import LogBus
from app.core.config import Settings
from app.infra.demo.mock_data import DemoDataStore
from app.protocol.gong import GongWebhook

APP_ROOT = Path(__file__).resolve().parents[1]
DEMO_FILES_DIR = APP_ROOT / "infra" / "demo" / "files"
POLICY_FILE = APP_ROOT / "agent" / "nodes" / "profiles" / "tool_policies.yaml"


@pytest.fixture
def bus() -> LogBus:
    return LogBus(capacity=50)


@pytest.fixture
def demo_store() -> DemoDataStore:
    return DemoDataStore(DEMO_FILES_DIR)


@pytest.fixture
def demo_webhook(demo_store: DemoDataStore) -> GongWebhook:
    return demo_store.webhook()


@pytest.fixture
def demo_settings() -> Settings:
    return Settings(
        demo_mode_flag=True,
        stream_timeout_seconds=5.0,
        agent_tool_policy_file=POLICY_FILE,
        demo_files_dir=DEMO_FILES_DIR,
    )
