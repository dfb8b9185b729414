"""
quotedesk/storage.py

File custodian for uploaded artifacts (original, correction and technical
drawing files).

Files are stored flat under UPLOAD_FOLDER with a generated storage key:

    [<prefix>-]<epoch millis>-<random>-<secure original name>

The original filename is kept on the owning row for display/download.
Size and type filtering happens in quotedesk/forms.py, before a file
reaches the lifecycle engine.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

from flask import current_app
from werkzeug.utils import secure_filename

from .errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingFile:
    """An upload that passed boundary filtering."""

    filename: str
    data: bytes

    @classmethod
    def from_storage(cls, file_storage) -> "IncomingFile":
        """Build from a werkzeug FileStorage (form field data)."""
        return cls(filename=file_storage.filename or "upload", data=file_storage.read())


class FileStore:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        # keys are generated by save(); anything else (separators, "..") is unknown
        if not key or secure_filename(key) != key:
            raise NotFoundError("File not found")
        return self.root / key

    def save(self, data: bytes, suggested_name: str, prefix: str | None = None) -> str:
        """Persist `data` and return its storage key."""
        self._ensure_root()
        safe_name = secure_filename(suggested_name) or "file"
        parts = [str(int(time.time() * 1000)), str(secrets.randbelow(10**9)), safe_name]
        if prefix:
            parts.insert(0, prefix)
        key = "-".join(parts)
        (self.root / key).write_bytes(data)
        return key

    def delete(self, key: str | None) -> None:
        """
        Remove a stored file. Idempotent: a missing file is not an error.

        Other OS failures are logged and swallowed; cleanup must never block
        the state transition that triggered it.
        """
        if not key:
            return
        try:
            self._path_for(key).unlink()
        except (FileNotFoundError, NotFoundError):
            return
        except OSError:
            logger.warning("Could not remove stored file %s", key, exc_info=True)

    def read(self, key: str) -> bytes:
        path = self._path_for(key)
        if not path.is_file():
            raise NotFoundError("File not found")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        try:
            return self._path_for(key).is_file()
        except NotFoundError:
            return False


def get_file_store() -> FileStore:
    """File store bound to the current application (set up in create_app)."""
    return current_app.extensions["file_store"]
