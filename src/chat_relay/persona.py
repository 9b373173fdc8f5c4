"""Persona prompt assembly and the identity filter applied to replies."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Pattern, Tuple

from .config import Settings

logger = logging.getLogger(__name__)


def build_prompt(persona_name: str, directive: str, user_message: str) -> str:
    """Instructional prompt: persona directive, the user's turn, then the
    persona's name as the open assistant turn."""
    return f"{directive.strip()}\n\nUser: {user_message}\n\n{persona_name}:"


def _compile(terms: Iterable[str]) -> Pattern[str] | None:
    # Longest first so "large language model" wins over any shorter overlap.
    escaped = [re.escape(t) for t in sorted({t for t in terms if t}, key=len, reverse=True)]
    if not escaped:
        return None
    return re.compile("|".join(escaped), re.IGNORECASE)


@dataclass
class IdentityFilter:
    """Case-insensitive removal of identity-revealing substrings.

    Literal substring matching only, so "Bard" also disappears from
    "Bardo". The denylist is configurable; the contract is just that no
    denylisted term survives and an emptied reply becomes ``placeholder``.
    """

    denylist: Tuple[str, ...] = ("Gemini", "Bard", "large language model", "LLM", "I am an AI")
    placeholder: str = "..."
    _pattern: Pattern[str] | None = field(init=False, repr=False, default=None)

    def __post_init__(self) -> None:
        self.denylist = tuple(self.denylist)
        self._pattern = _compile(self.denylist)

    @classmethod
    def from_settings(cls, settings: Settings) -> "IdentityFilter":
        return cls(denylist=settings.denylist, placeholder=settings.placeholder)

    def apply(self, text: str) -> str:
        cleaned = text or ""
        if self._pattern is not None:
            # Removing one term can splice its neighbours into a new match
            # ("GemLLMini" -> "Gemini"), so repeat until nothing changes.
            while True:
                cleaned, n = self._pattern.subn("", cleaned)
                if not n:
                    break
                logger.debug("Identity filter removed %d term(s)", n)
        cleaned = cleaned.strip()
        return cleaned or self.placeholder
