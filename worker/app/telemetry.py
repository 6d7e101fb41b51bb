# worker/app/telemetry.py
from __future__ import annotations

import json
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import logging

from worker.app.config import settings

log = logging.getLogger(__name__)


class Telemetry:
    """
    Structured run events for the compressor.

    Appends one JSON object per event to RUN_LOG_FILE (disabled when empty) and
    keeps per-event counters in memory. All operations are wrapped in try/except
    so telemetry failures never break a run.
    """

    def __init__(self, log_file: Optional[str | Path] = None, max_log_mb: Optional[int] = None):
        self._lock = threading.Lock()
        self._started = time.time()
        self._events: Dict[str, int] = {}
        self._last_error: Optional[str] = None

        target = settings.RUN_LOG_FILE if log_file is None else log_file
        self._log_file: Optional[Path] = Path(target) if target else None
        self._max_log_bytes = (max_log_mb or settings.RUN_LOG_MAX_MB) * 1024 * 1024

        if self._log_file is not None:
            try:
                self._log_file.parent.mkdir(parents=True, exist_ok=True)
            except Exception as e:
                log.warning(f"Failed to create log directory {self._log_file.parent}: {e}")

    @property
    def log_file(self) -> Optional[Path]:
        return self._log_file

    def set_error(self, error: str) -> None:
        """Set the last error message."""
        with self._lock:
            self._last_error = str(error)

    def log_json(self, event: str, level: str = "info", **fields: Any) -> None:
        """
        Count the event and, when enabled, append it to the JSONL run log.

        Fields: ts, level, subsystem="tinycrush", event, plus any kwargs.
        """
        with self._lock:
            self._events[event] = self._events.get(event, 0) + 1
        if self._log_file is None:
            return
        try:
            entry = {
                "ts": datetime.now(timezone.utc).isoformat(),
                "level": level,
                "subsystem": "tinycrush",
                "event": event,
                **fields,
            }
            self._maybe_rotate_log()
            with self._lock:
                with open(self._log_file, "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        except Exception as e:
            log.debug(f"Telemetry log_json failed: {e}")

    def _maybe_rotate_log(self) -> None:
        """Rotate log file if it exceeds size limit (2-deep: .1, .2)."""
        if self._log_file is None:
            return
        try:
            if (
                self._log_file.exists()
                and self._log_file.stat().st_size > self._max_log_bytes
            ):
                log_file_2 = self._log_file.with_name(self._log_file.name + ".2")
                log_file_1 = self._log_file.with_name(self._log_file.name + ".1")

                if log_file_2.exists():
                    log_file_2.unlink()
                if log_file_1.exists():
                    log_file_1.rename(log_file_2)
                self._log_file.rename(log_file_1)
        except Exception as e:
            log.warning(f"Log rotation failed: {e}")

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "uptime_s": int(time.time() - self._started),
                "events": dict(self._events),
                "last_error": self._last_error,
            }


# Singleton instance
telemetry = Telemetry()
