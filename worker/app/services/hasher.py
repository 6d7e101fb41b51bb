from __future__ import annotations

import hashlib
from pathlib import Path

_CHUNK = 1024 * 1024


def file_digest(path: str | Path) -> str:
    """SHA-256 of the file bytes as 64 lowercase hex chars (OSError if unreadable)."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(_CHUNK), b""):
            h.update(chunk)
    return h.hexdigest()


def bytes_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
