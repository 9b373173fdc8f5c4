"""Wrapper around the Google Gen AI SDK for one-shot text generation."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Protocol

from .config import Settings
from .errors import UpstreamError

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Anything that turns a prompt into a full text reply."""

    async def generate(self, prompt: str) -> str:
        ...


# -----------------------------
# Types & defaults
# -----------------------------

@dataclass
class GenerationConfig:
    """Optional sampling knobs; ``None`` leaves the provider default."""
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None
    max_output_tokens: Optional[int] = None

    def to_kwargs(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# -----------------------------
# Gemini client
# -----------------------------

class GeminiClient:
    """Thin async wrapper around ``client.aio.models.generate_content``.

    One request per call, full response awaited, no streaming and no
    retry. Every failure surfaces as :class:`UpstreamError`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gemini-pro",
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        generation: Optional[GenerationConfig] = None,
        client: Any = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required")
        self.model = model
        self.generation = generation or GenerationConfig()

        if client is None:
            # Lazy import so the rest of the package loads without the SDK.
            from google import genai  # type: ignore
            from google.genai import types  # type: ignore

            http_options = None
            if api_base or timeout:
                http_options = types.HttpOptions(
                    base_url=api_base or None,
                    # SDK timeout is in milliseconds
                    timeout=int(timeout * 1000) if timeout else None,
                )
            client = genai.Client(api_key=api_key, http_options=http_options)
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings, client: Any = None) -> "GeminiClient":
        return cls(
            settings.api_key,
            model=settings.model,
            api_base=settings.api_base,
            timeout=settings.timeout,
            generation=GenerationConfig(
                temperature=settings.temperature,
                top_p=settings.top_p,
                top_k=settings.top_k,
                max_output_tokens=settings.max_output_tokens,
            ),
            client=client,
        )

    def _config(self) -> Any:
        kwargs = self.generation.to_kwargs()
        if not kwargs:
            return None
        from google.genai import types  # type: ignore

        return types.GenerateContentConfig(**kwargs)

    async def generate(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._config(),
            )
        except Exception as e:
            raise UpstreamError(f"Provider request failed: {e}") from e

        try:
            text = response.text
        except (AttributeError, ValueError):
            text = None
        if not text:
            # Blocked prompt or empty candidate: nothing to relay.
            feedback = getattr(response, "prompt_feedback", None)
            raise UpstreamError(f"Provider returned no text (prompt_feedback={feedback}).")
        return text
