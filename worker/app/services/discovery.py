"""Image discovery utilities.

Provides the directory index used by the tree walker and by pruning.

Contract:
    list_eligible(directory: Path, backup_suffix: str) -> set[str]
    discover_tree(root: Path, backup_suffix: str, log_name: str | None) -> list[tuple[Path, list[str]]]

Behavior:
    * `list_eligible` looks at immediate children only (non-recursive).
    * A child is eligible when it is a regular file, its extension is one of
      IMAGE_EXTS (case-insensitive), and it is not a backup or temp artifact
      written by this tool.
    * `discover_tree` composes `list_eligible` over every directory below
      `root` and returns (directory, sorted names) pairs ordered by directory
      path, one pair per directory. Directories with neither images nor a
      change log are omitted.
    * Symlinked directories are not followed (no cycles).

Names containing a tab or newline cannot be stored in a change log and are
skipped with a warning.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Set, Tuple

log = logging.getLogger(__name__)

IMAGE_EXTS = {".png", ".jpg", ".jpeg", ".webp", ".avif"}

# Temp files written next to originals/logs during atomic swaps
TEMP_SUFFIX = ".tmp"

_UNSUPPORTED_CHARS = ("\t", "\n", "\r")


def is_eligible_name(name: str, backup_suffix: str = ".bak") -> bool:
    lowered = name.lower()
    if backup_suffix and lowered.endswith(backup_suffix.lower()):
        return False
    if lowered.endswith(TEMP_SUFFIX):
        return False
    return os.path.splitext(lowered)[1] in IMAGE_EXTS


def list_eligible(directory: str | Path, backup_suffix: str = ".bak") -> Set[str]:
    """Return names of eligible images directly inside `directory`."""
    out: Set[str] = set()
    with os.scandir(directory) as it:
        for entry in it:
            if not is_eligible_name(entry.name, backup_suffix):
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            if any(c in entry.name for c in _UNSUPPORTED_CHARS):
                log.warning(f"[discovery] unsupported filename skipped: {entry.path!r}")
                continue
            out.add(entry.name)
    return out


def discover_tree(
    root: str | Path, backup_suffix: str = ".bak", log_name: Optional[str] = None
) -> List[Tuple[Path, List[str]]]:
    """Return [(directory, sorted eligible names)] ordered by directory path.

    Directories holding a `log_name` file are kept even with no images left,
    so their stale entries still get pruned.
    """
    root = Path(root)
    groups: List[Tuple[Path, List[str]]] = []

    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        # sort in place so os.walk descends deterministically
        dirnames.sort()
        names = list_eligible(dirpath, backup_suffix)
        if names or (log_name and log_name in filenames):
            groups.append((Path(dirpath), sorted(names)))

    groups.sort(key=lambda g: str(g[0]))
    return groups


__all__ = [
    "IMAGE_EXTS",
    "TEMP_SUFFIX",
    "is_eligible_name",
    "list_eligible",
    "discover_tree",
]
