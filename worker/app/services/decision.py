from __future__ import annotations

from pathlib import Path
from typing import Optional

from worker.app.models import Decision, RunOptions
from worker.app.services.change_log import ChangeLog
from worker.app.services.hasher import file_digest


def decide(
    path: str | Path,
    change_log: ChangeLog,
    options: RunOptions,
    digest: Optional[str] = None,
) -> Decision:
    """Skip, process or only log one file.

    Order matters: rebuild_log_only changes the action itself (never compress),
    so it wins over every other mode. `digest` may be passed in when the caller
    already hashed the file.
    """
    if options.rebuild_log_only:
        return Decision.LOG_ONLY
    if not options.use_change_log:
        return Decision.PROCESS
    if options.rebuild_log:
        return Decision.PROCESS

    path = Path(path)
    current = digest if digest is not None else file_digest(path)
    if change_log.lookup(path.name) == current:
        return Decision.SKIP
    return Decision.PROCESS
