"""Temp-file-then-rename writes.

Both the per-directory change log and compressed images are swapped into
place with `os.replace` from a temp file created in the destination's own
directory (same filesystem, so the rename is atomic). Readers see either the
old content or the new content, never a partial file. A failure before the
rename removes the temp file and leaves the destination untouched.
"""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from worker.app.services.discovery import TEMP_SUFFIX


def _default_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def _fsync_dir(directory: Path) -> None:
    # not supported everywhere (e.g. Windows); durability is best-effort there
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def write_bytes_atomic(
    target: str | Path, data: bytes, mode_from: str | Path | None = None
) -> None:
    """Replace `target` with `data` via a sibling temp file and os.replace.

    `mode_from` copies permission bits from another file (usually the file
    being replaced) onto the temp file before the swap.
    """
    target = Path(target)
    fd, tmp = tempfile.mkstemp(
        prefix=f".{target.name}.", suffix=TEMP_SUFFIX, dir=target.parent
    )
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode_from is not None:
            shutil.copymode(mode_from, tmp)
        else:
            # mkstemp creates 0600; give new files the usual umask-based mode
            os.chmod(tmp, _default_mode())
        os.replace(tmp, target)
    except BaseException:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise
    _fsync_dir(target.parent)


def write_text_atomic(target: str | Path, text: str) -> None:
    target = Path(target)
    mode_from = target if target.exists() else None
    write_bytes_atomic(target, text.encode("utf-8"), mode_from=mode_from)


__all__ = ["write_bytes_atomic", "write_text_atomic"]
