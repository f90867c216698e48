"""Attachment storage collaborator.

The core only needs ``upload(path, data, content_type) -> public URL``; the
size ceiling is enforced by the caller before anything is uploaded.
"""

import asyncio
import logging
from pathlib import Path
from typing import Protocol

from tsupport.configs import configs

logger = logging.getLogger(__name__)


class AttachmentStore(Protocol):
    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str: ...


class LocalAttachmentStore:
    """Writes files under a directory that is served at ``public_base_url``."""

    def __init__(self, root: str | Path | None = None, public_base_url: str | None = None) -> None:
        self.root = Path(root or configs.Attachments.StorageDir)
        self.public_base_url = (public_base_url or configs.Attachments.PublicBaseUrl).rstrip("/")

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        target = (self.root / path).resolve()
        if not target.is_relative_to(self.root.resolve()):
            raise ValueError(f"attachment path escapes storage root: {path}")
        await asyncio.to_thread(self._write, target, data)
        logger.debug("Stored attachment %s (%d bytes, %s)", path, len(data), content_type)
        return f"{self.public_base_url}/{path}"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
