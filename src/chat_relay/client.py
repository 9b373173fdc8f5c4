"""Terminal chat client: history repository plus the send/render session."""
from __future__ import annotations

import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from .errors import ClientNetworkError

logger = logging.getLogger(__name__)

STORAGE_KEY = "studyxaiChatHistory"
GREETING = "Hello! I'm StudyxAi. How can I help you study today?"
FALLBACK_REPLY = "Sorry, I encountered an error. Please try again."
SENDERS = ("user", "ai")


@dataclass(frozen=True)
class Message:
    text: str
    sender: str  # "user" | "ai"

    def __post_init__(self) -> None:
        if self.sender not in SENDERS:
            raise ValueError(f"sender must be one of {SENDERS}, got {self.sender!r}")

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Message":
        return cls(text=str(d.get("text", "")), sender=str(d.get("sender", "")))


# -----------------------------
# Helpers
# -----------------------------
def _safe_key(name: str) -> str:
    s = re.sub(r"[^\w.\-@]+", "_", name.strip() or STORAGE_KEY)
    return s[:128]


def _atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", delete=False, dir=str(path.parent)) as tmp:
        tmp.write(text)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_name = tmp.name
    os.replace(tmp_name, path)


# -----------------------------
# HistoryStore
# -----------------------------
class HistoryStore:
    """History repository over a directory of JSON values, one file per key.

    The value under ``key`` is the JSON-encoded list of ``{text, sender}``
    objects. ``append`` rewrites the whole list; nothing is ever removed.
    """

    def __init__(self, data_dir: str | Path, key: str = STORAGE_KEY) -> None:
        self.root = Path(data_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self.key = key
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self.root / f"{_safe_key(self.key)}.json"

    def get(self) -> List[Message]:
        path = self.path
        if not path.exists():
            return []
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise ValueError("history must be a list")
            return [Message.from_dict(m) for m in raw]
        except (ValueError, TypeError, AttributeError) as e:
            # Corruption fallback: keep a backup and start fresh.
            logger.warning("Corrupt history at %s (%s); moving it aside.", path, e)
            with self._lock:
                try:
                    path.replace(path.with_suffix(".corrupt.json"))
                except OSError:
                    logger.exception("Could not move corrupt history %s", path)
            return []

    def append(self, message: Message) -> None:
        with self._lock:
            history = self.get()
            history.append(message)
            self._write(history)

    def extend(self, messages: List[Message]) -> None:
        """Append several messages in a single rewrite."""
        with self._lock:
            history = self.get()
            history.extend(messages)
            self._write(history)

    def _write(self, history: List[Message]) -> None:
        payload = [m.to_dict() for m in history]
        _atomic_write_text(self.path, json.dumps(payload, ensure_ascii=False))


# -----------------------------
# ChatSession
# -----------------------------
@dataclass
class ChatSession:
    """Client-side conversation: what is rendered, what is persisted.

    ``rendered`` mirrors the chat box. The relay is hit with exactly one
    POST per :meth:`send`; failures become :data:`FALLBACK_REPLY`.
    """

    store: HistoryStore
    http: httpx.Client
    endpoint: str = "/api/chat"
    backfill_greeting: bool = True
    rendered: List[Message] = field(default_factory=list)
    busy: bool = False

    def load(self) -> List[Message]:
        history = self.store.get()
        if history:
            self.rendered = list(history)
        else:
            self.rendered = [Message(GREETING, "ai")]
        return self.rendered

    def _save(self, message: Message) -> None:
        if (
            self.backfill_greeting
            and not self.store.get()
            and self.rendered
            and self.rendered[0] == Message(GREETING, "ai")
        ):
            self.store.extend([self.rendered[0], message])
            return
        self.store.append(message)

    def _show(self, message: Message) -> None:
        self.rendered.append(message)
        self._save(message)

    def _post(self, text: str) -> str:
        try:
            r = self.http.post(self.endpoint, json={"message": text})
        except httpx.HTTPError as e:
            raise ClientNetworkError(f"Request failed: {e}") from e
        if not r.is_success:
            raise ClientNetworkError(f"HTTP error! status: {r.status_code}")
        try:
            return str(r.json()["message"])
        except (ValueError, KeyError, TypeError) as e:
            raise ClientNetworkError("Malformed relay response.") from e

    def send(self, text: str) -> Optional[Message]:
        """Send one user message; return the AI message appended, or None
        when the input was empty or another send is still in flight."""
        message = (text or "").strip()
        if not message or self.busy:
            return None

        self._show(Message(message, "user"))
        self.busy = True
        try:
            reply = Message(self._post(message), "ai")
        except ClientNetworkError as e:
            logger.error("Error sending message: %s", e)
            reply = Message(FALLBACK_REPLY, "ai")
        finally:
            self.busy = False
        self._show(reply)
        return reply
