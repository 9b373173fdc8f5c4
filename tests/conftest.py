"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Optional

import pytest

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from chat_relay.config import Settings  # noqa: E402


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """The shipped config/default.yaml."""
    return project_root / "config" / "default.yaml"


@pytest.fixture(scope="function")
def tmp_data_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for persisted chat history."""
    d = tmp_path / "data"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Run with a clean environment (no leftover vars, no stray .env)."""
    for var in ["STUDYX_CONFIG", "GEMINI_API_KEY", "PORT", "HOST", "APP_ENV"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("STUDYX__"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="test-key")


class SpyGenerator:
    """Generator double that records prompts and returns a canned reply."""

    def __init__(self, reply: str = "ok", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def spy_generator() -> SpyGenerator:
    return SpyGenerator()
