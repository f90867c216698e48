"""Resumable client-side session handle.

The customer's device keeps ``{chat_id, customer_id, subject, display_name}``
under a single key so a reload resumes the same chat without re-validating.
Absence of the key means "no session".
"""

import json
import logging
from pathlib import Path
from typing import Protocol
from uuid import UUID

from pydantic import BaseModel, ValidationError

from tsupport.configs import configs

logger = logging.getLogger(__name__)

HANDLE_KEY = "tsupport_session"


class LocalSessionHandle(BaseModel):
    chat_id: UUID
    customer_id: str
    subject: str
    display_name: str


class SessionHandleStore(Protocol):
    def load(self) -> LocalSessionHandle | None: ...

    def save(self, handle: LocalSessionHandle) -> None: ...

    def clear(self) -> None: ...


class FileSessionHandleStore:
    """Keeps the handle in a small JSON file (``{"tsupport_session": {...}}``)."""

    def __init__(self, path: str | Path | None = None) -> None:
        self.path = Path(path or configs.Chat.HandleStorePath)

    def load(self) -> LocalSessionHandle | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            stored = json.loads(raw).get(HANDLE_KEY)
            if stored is None:
                return None
            return LocalSessionHandle.model_validate_json(stored)
        except (json.JSONDecodeError, AttributeError, TypeError, ValidationError):
            logger.warning("Ignoring unreadable session handle at %s", self.path)
            return None

    def save(self, handle: LocalSessionHandle) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({HANDLE_KEY: handle.model_dump_json()}), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
