"""Configuration loading utilities for the chat relay.

This module handles layered configuration:
1. Explicit path argument (highest precedence)
2. Environment variable STUDYX_CONFIG
3. Fallback to "config/default.yaml"

It also supports optional overrides from environment variables with prefix
``STUDYX__`` (e.g., STUDYX__MODEL__NAME=gemini-1.5-flash).

The provider credential is never read from YAML: it comes from
``GEMINI_API_KEY`` (a local ``.env`` file is honoured outside production).
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "STUDYX__"
API_KEY_ENV = "GEMINI_API_KEY"
PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_PERSONA_DIRECTIVE = (
    "You are {name}, an AI assistant designed to help users study and learn.\n"
    "You will never reveal your underlying model, creator, or mention names like "
    "Gemini, Bard, or state that you are a large language model.\n"
    "If asked about your identity or who created you, state clearly that you are {name}.\n"
    "Focus on providing helpful, informative, and relevant responses based on the "
    "user's queries related to studying, learning, or general knowledge."
)

DEFAULTS: Dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 3000, "cors_origins": ["*"], "static_dir": None},
    "model": {
        "name": "gemini-pro",
        "api_base": None,
        "timeout": None,
        "generation": {
            "temperature": None,
            "top_p": None,
            "top_k": None,
            "max_output_tokens": None,
        },
    },
    "persona": {
        "name": "StudyxAi",
        "directive": DEFAULT_PERSONA_DIRECTIVE,
        "denylist": ["Gemini", "Bard", "large language model", "LLM", "I am an AI"],
        "placeholder": "...",
    },
}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup."""

    api_key: str
    model: str = "gemini-pro"
    api_base: Optional[str] = None
    timeout: Optional[float] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None
    persona_name: str = "StudyxAi"
    persona_directive: str = DEFAULT_PERSONA_DIRECTIVE.replace("{name}", "StudyxAi")
    denylist: Tuple[str, ...] = ("Gemini", "Bard", "large language model", "LLM", "I am an AI")
    placeholder: str = "..."
    static_dir: Path = field(default_factory=lambda: PACKAGE_DIR / "static")
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: Tuple[str, ...] = ("*",)


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides with prefix STUDYX__."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        # e.g., STUDYX__SERVER__PORT -> cfg["server"]["port"]
        parts = key[len(ENV_PREFIX):].lower().split("__")
        sub = cfg
        for p in parts[:-1]:
            if p not in sub or not isinstance(sub[p], dict):
                sub[p] = {}
            sub = sub[p]
        leaf = parts[-1]
        if value.lower() in {"true", "false"}:
            sub[leaf] = value.lower() == "true"
        else:
            try:
                if "." in value:
                    sub[leaf] = float(value)
                else:
                    sub[leaf] = int(value)
            except ValueError:
                sub[leaf] = value
    return cfg


def _merge(base: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in extra.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_config(path: str | None = None) -> Dict[str, Any]:
    """Load YAML configuration for the chat relay.

    Parameters
    ----------
    path : str | None
        Optional path to a configuration file. If not provided, the
        environment variable ``STUDYX_CONFIG`` is consulted. As a
        last resort ``config/default.yaml`` is used.

    Returns
    -------
    Dict[str, Any]
        Built-in defaults, overlaid with the file, overlaid with
        environment overrides.
    """
    if path is None:
        path = os.environ.get("STUDYX_CONFIG", "config/default.yaml")

    path_obj = Path(path)
    if not path_obj.exists():
        logger.warning("Config file not found at %s. Using defaults.", path_obj)
        return _apply_env_overrides(copy.deepcopy(DEFAULTS))

    with path_obj.open("r", encoding="utf-8") as f:
        try:
            raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file {path_obj}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid config format in {path_obj}, expected dict.")

    return _apply_env_overrides(_merge(DEFAULTS, raw))


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return tuple(s.strip() for s in value.split(",") if s.strip())
    return tuple(str(v) for v in value if str(v))


def _number(value: Any, cast: Callable[[Any], Any], name: str) -> Any:
    """Cast an optional numeric setting; blank means unset."""
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


def load_settings(config_path: str | None = None) -> Settings:
    """Build :class:`Settings` from config + environment.

    Raises :class:`ConfigError` when ``GEMINI_API_KEY`` is not set or a
    numeric setting cannot be parsed.
    """
    if os.environ.get("APP_ENV", "development").lower() != "production":
        load_dotenv(find_dotenv(usecwd=True))

    api_key = (os.environ.get(API_KEY_ENV) or "").strip()
    if not api_key:
        raise ConfigError(f"{API_KEY_ENV} environment variable not set.")

    cfg = load_config(config_path)
    server: Dict[str, Any] = cfg.get("server") or {}
    model: Dict[str, Any] = cfg.get("model") or {}
    generation: Dict[str, Any] = model.get("generation") or {}
    persona: Dict[str, Any] = cfg.get("persona") or {}

    # PORT / HOST win over the file, the way hosting platforms expect
    port = _number(os.environ.get("PORT") or server.get("port") or 3000, int, "PORT")
    host = str(os.environ.get("HOST") or server.get("host") or "0.0.0.0")

    timeout = _number(model.get("timeout"), float, "model.timeout")
    api_base = model.get("api_base")
    static_dir = server.get("static_dir")
    name = str(persona.get("name") or "StudyxAi")
    directive = str(persona.get("directive") or DEFAULT_PERSONA_DIRECTIVE)
    denylist: List[str] = list(_as_tuple(persona.get("denylist")))

    return Settings(
        api_key=api_key,
        model=str(model.get("name") or "gemini-pro"),
        api_base=str(api_base).rstrip("/") if api_base else None,
        timeout=timeout or None,
        temperature=_number(generation.get("temperature"), float, "model.generation.temperature"),
        top_p=_number(generation.get("top_p"), float, "model.generation.top_p"),
        top_k=_number(generation.get("top_k"), int, "model.generation.top_k"),
        max_output_tokens=_number(
            generation.get("max_output_tokens"), int, "model.generation.max_output_tokens"
        ),
        persona_name=name,
        persona_directive=directive.replace("{name}", name).strip(),
        denylist=tuple(denylist),
        placeholder=str(persona.get("placeholder") or "..."),
        static_dir=Path(static_dir) if static_dir else PACKAGE_DIR / "static",
        host=host,
        port=port,
        cors_origins=_as_tuple(server.get("cors_origins")) or ("*",),
    )
