"""Per-directory change log.

One log file lives inside each directory it describes and maps image names
(relative to that directory) to the SHA-256 of their content after the last
successful run:

    <64 hex digest>\t<filename>\n

Lines are sorted by filename. Lines missing a digest or a name are ignored
on load. Writes go through a temp file + os.replace, so a crash mid-write
leaves the previous log intact.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, ItemsView, Iterable, List, Optional

from worker.app.models import RunOptions
from worker.app.utils.atomic import write_text_atomic

log = logging.getLogger(__name__)


def parse(text: str) -> Dict[str, str]:
    """Parse log text into {name: digest}; malformed lines are skipped."""
    entries: Dict[str, str] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        digest, sep, name = line.partition("\t")
        digest = digest.strip()
        if not sep or not digest or not name:
            if line.strip():
                log.debug(f"[changelog] skipping malformed line {lineno}: {line!r}")
            continue
        entries[name] = digest
    return entries


def serialize(entries: Dict[str, str]) -> str:
    return "".join(f"{entries[name]}\t{name}\n" for name in sorted(entries))


class ChangeLog:
    """In-memory view of one directory's log.

    `enabled=False` makes update/persist no-ops (change logs switched off).
    """

    def __init__(
        self,
        directory: str | Path,
        entries: Optional[Dict[str, str]] = None,
        *,
        log_name: str = ".tinycrush.log",
        enabled: bool = True,
    ) -> None:
        self.directory = Path(directory)
        self.entries: Dict[str, str] = dict(entries or {})
        self.log_name = log_name
        self.enabled = enabled

    @property
    def path(self) -> Path:
        return self.directory / self.log_name

    @classmethod
    def load(cls, directory: str | Path, options: RunOptions) -> "ChangeLog":
        """Read the directory's log, or start empty when logs are off or rebuilt.

        A missing file is an empty log. OSError on an unreadable file propagates.
        """
        clog = cls(directory, log_name=options.log_name, enabled=options.use_change_log)
        if not options.use_change_log or options.rebuild_log or options.rebuild_log_only:
            return clog
        try:
            text = clog.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return clog
        clog.entries = parse(text)
        log.debug(f"[changelog] loaded {len(clog.entries)} entries from {clog.path}")
        return clog

    def lookup(self, name: str) -> Optional[str]:
        return self.entries.get(name)

    def update(self, name: str, digest: str) -> None:
        if not self.enabled:
            return
        if not name or os.sep in name or "/" in name:
            raise ValueError(f"log entries are per-directory names, got: {name!r}")
        self.entries[name] = digest

    def prune(self, present: Iterable[str]) -> List[str]:
        """Drop entries whose file is no longer present; return dropped names."""
        keep = set(present)
        stale = sorted(name for name in self.entries if name not in keep)
        for name in stale:
            del self.entries[name]
        if stale:
            log.debug(f"[changelog] pruned {len(stale)} stale entries in {self.directory}")
        return stale

    def serialize(self) -> str:
        return serialize(self.entries)

    def persist(self, options: RunOptions) -> bool:
        """Atomically write the log; returns True when the file was changed.

        An empty log is removed rather than written (same meaning as no file).
        """
        if not self.enabled or not options.use_change_log:
            return False
        if options.dry_run:
            log.info(
                f"DRY-RUN: would write {len(self.entries)} log entries to {self.path}"
            )
            return False
        if not self.entries:
            try:
                self.path.unlink()
            except FileNotFoundError:
                return False
            log.debug(f"[changelog] removed empty log {self.path}")
            return True
        write_text_atomic(self.path, self.serialize())
        return True

    def items(self) -> ItemsView[str, str]:
        return self.entries.items()

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __repr__(self) -> str:
        return f"ChangeLog({str(self.directory)!r}, entries={len(self.entries)})"


__all__ = ["ChangeLog", "parse", "serialize"]
