"""Directory-by-directory driver.

Two phases:
  1. discovery: `discover_tree(root)` -> [(directory, sorted names)]
  2. `TreeWalker.walk(groups)` folds the per-directory lifecycle over them:

     enter -> load log -> for each file: decide -> act -> update log
           -> prune -> persist -> leave

Only one ChangeLog is alive at a time. Per-file failures are counted and the
run goes on. An OSError while loading or persisting a directory's log marks
that directory failed and the walker moves to the next one; any other
exception aborts the run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from worker.app.errors import CompressionError
from worker.app.models import Decision, RunOptions, RunStats
from worker.app.services.change_log import ChangeLog
from worker.app.services.compressor import Compressor, compress_file
from worker.app.services.decision import decide
from worker.app.services.discovery import discover_tree, list_eligible
from worker.app.services.hasher import file_digest
from worker.app.telemetry import Telemetry, telemetry as default_telemetry

log = logging.getLogger(__name__)

Group = Tuple[Path, List[str]]


class TreeWalker:
    def __init__(
        self,
        compressor: Compressor,
        options: RunOptions,
        telemetry: Optional[Telemetry] = None,
    ) -> None:
        self.compressor = compressor
        self.options = options
        self.telemetry = telemetry or default_telemetry
        self.stats = RunStats()

    # --- phase 1 --------------------------------------------------------------
    def discover(self, root: str | Path) -> List[Group]:
        log_name = self.options.log_name if self.options.use_change_log else None
        return discover_tree(root, self.options.backup_suffix, log_name=log_name)

    def run(self, root: str | Path) -> RunStats:
        return self.walk(self.discover(root))

    # --- phase 2 --------------------------------------------------------------
    def walk(self, groups: Iterable[Group]) -> RunStats:
        for directory, names in groups:
            self._visit(Path(directory), names)
        # monthly usage reported by the API, when the compressor tracks it
        self.stats.compression_count = getattr(self.compressor, "compression_count", None)
        return self.stats

    def _visit(self, directory: Path, names: List[str]) -> None:
        self.stats.directories += 1
        try:
            clog = ChangeLog.load(directory, self.options)
        except OSError as e:
            self._directory_failed(directory, "load", e)
            return

        for name in names:
            self._handle_file(directory / name, clog)

        try:
            clog.prune(list_eligible(directory, self.options.backup_suffix))
            written = clog.persist(self.options)
        except OSError as e:
            self._directory_failed(directory, "persist", e)
            return

        if written:
            self.telemetry.log_json(
                "dir_persisted", directory=str(directory), entries=len(clog)
            )

    def _directory_failed(self, directory: Path, stage: str, err: OSError) -> None:
        self.stats.directory_failures += 1
        log.error(f"Change log {stage} failed for {directory}: {err}")
        self.telemetry.set_error(str(err))
        self.telemetry.log_json(
            "dir_failed", level="error", directory=str(directory), stage=stage, error=str(err)
        )

    def _handle_file(self, path: Path, clog: ChangeLog) -> None:
        opts = self.options
        try:
            digest = file_digest(path)
        except OSError as e:
            self._file_failed(path, e)
            return

        outcome = decide(path, clog, opts, digest=digest)

        if outcome is Decision.LOG_ONLY:
            clog.update(path.name, digest)
            self.stats.logged += 1
            log.debug(f"Logged: {path}")
            return

        if outcome is Decision.SKIP:
            self.stats.skipped += 1
            log.debug(f"Unchanged, skipped: {path}")
            return

        if opts.dry_run:
            log.info(f"DRY-RUN: compress {path}")
            clog.update(path.name, digest)
            self.stats.processed += 1
            return

        try:
            before, after, new_digest = compress_file(
                path, self.compressor, backup=opts.backup, backup_suffix=opts.backup_suffix
            )
        except (CompressionError, OSError) as e:
            self._file_failed(path, e)
            return

        clog.update(path.name, new_digest)
        self.stats.processed += 1
        self.stats.bytes_before += before
        self.stats.bytes_after += after
        log.info(f"Compressed: {path} ({before} -> {after} bytes)")
        self.telemetry.log_json(
            "file_compressed", path=str(path), before=before, after=after
        )

    def _file_failed(self, path: Path, err: Exception) -> None:
        self.stats.failed += 1
        log.error(f"Compression failed: {path}: {err}")
        self.telemetry.set_error(str(err))
        self.telemetry.log_json("file_failed", level="error", path=str(path), error=str(err))


def run_tree(
    root: str | Path,
    compressor: Compressor,
    options: RunOptions,
    telemetry: Optional[Telemetry] = None,
) -> RunStats:
    return TreeWalker(compressor, options, telemetry=telemetry).run(root)


__all__ = ["TreeWalker", "run_tree"]
