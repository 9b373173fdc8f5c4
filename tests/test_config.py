from __future__ import annotations

from pathlib import Path

import pytest

from chat_relay.config import PACKAGE_DIR, load_config, load_settings
from chat_relay.errors import ConfigError


def test_missing_api_key_is_config_error(clean_env):
    with pytest.raises(ConfigError, match="GEMINI_API_KEY"):
        load_settings()


def test_blank_api_key_is_config_error(clean_env, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "   ")
    with pytest.raises(ConfigError):
        load_settings()


def test_defaults_without_config_file(clean_env, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    s = load_settings()
    assert s.api_key == "abc"
    assert s.model == "gemini-pro"
    assert s.port == 3000
    assert s.timeout is None
    assert s.persona_name == "StudyxAi"
    assert s.persona_directive.startswith("You are StudyxAi,")
    assert "{name}" not in s.persona_directive
    assert "LLM" in s.denylist
    assert s.placeholder == "..."
    assert s.static_dir == PACKAGE_DIR / "static"


def test_shipped_default_yaml_loads(clean_env, monkeypatch, config_path: Path):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    s = load_settings(str(config_path))
    assert s.model == "gemini-pro"
    assert s.denylist == ("Gemini", "Bard", "large language model", "LLM", "I am an AI")
    assert s.cors_origins == ("*",)


def test_yaml_file_and_env_overrides(clean_env, monkeypatch, tmp_path: Path):
    cfg = tmp_path / "relay.yaml"
    cfg.write_text(
        "model:\n  name: gemini-1.5-flash\n  timeout: 30\n"
        "persona:\n  name: Tutor\n  directive: 'You are {name}.'\n  denylist: [Gemini]\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("STUDYX_CONFIG", str(cfg))
    monkeypatch.setenv("STUDYX__SERVER__PORT", "8080")
    monkeypatch.setenv("STUDYX__PERSONA__PLACEHOLDER", "(quiet)")

    s = load_settings()
    assert s.model == "gemini-1.5-flash"
    assert s.timeout == 30.0
    assert s.persona_name == "Tutor"
    assert s.persona_directive == "You are Tutor."
    assert s.denylist == ("Gemini",)
    assert s.port == 8080
    assert s.placeholder == "(quiet)"
    # untouched sections keep their defaults
    assert s.api_base is None
    assert s.temperature is None


def test_port_env_wins(clean_env, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("STUDYX__SERVER__PORT", "8080")
    monkeypatch.setenv("PORT", "10000")
    assert load_settings().port == 10000


def test_env_override_coerces_scalars(clean_env, monkeypatch):
    monkeypatch.setenv("STUDYX__FLAGS__ON", "true")
    monkeypatch.setenv("STUDYX__FLAGS__RATIO", "0.5")
    monkeypatch.setenv("STUDYX__FLAGS__NAME", "x")
    cfg = load_config()
    assert cfg["flags"] == {"on": True, "ratio": 0.5, "name": "x"}


def test_invalid_yaml_is_config_error(clean_env, tmp_path: Path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("model: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(bad))


def test_non_mapping_yaml_is_config_error(clean_env, tmp_path: Path):
    bad = tmp_path / "list.yaml"
    bad.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(bad))


def test_dotenv_file_supplies_key(clean_env, monkeypatch, tmp_path: Path):
    # record the variable so whatever load_dotenv sets is undone afterwards
    monkeypatch.setenv("GEMINI_API_KEY", "unset")
    monkeypatch.delenv("GEMINI_API_KEY")
    (tmp_path / ".env").write_text("GEMINI_API_KEY=from-dotenv\n", encoding="utf-8")
    assert load_settings().api_key == "from-dotenv"


def test_generation_section_and_env_overrides(clean_env, monkeypatch, tmp_path: Path):
    cfg = tmp_path / "relay.yaml"
    cfg.write_text(
        "model:\n  generation:\n    temperature: 0.3\n    top_k: 40\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("STUDYX__MODEL__GENERATION__MAX_OUTPUT_TOKENS", "512")

    s = load_settings(str(cfg))
    assert s.temperature == 0.3
    assert s.top_k == 40
    assert s.top_p is None
    assert s.max_output_tokens == 512


def test_non_numeric_port_is_config_error(clean_env, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("PORT", "abc")
    with pytest.raises(ConfigError, match="PORT"):
        load_settings()


def test_non_numeric_generation_value_is_config_error(clean_env, monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "abc")
    monkeypatch.setenv("STUDYX__MODEL__GENERATION__TOP_K", "many")
    with pytest.raises(ConfigError, match="top_k"):
        load_settings()
