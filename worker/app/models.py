# worker/app/models.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, TypeAdapter, model_validator

from worker.app.config import settings

# same coercion pydantic applies to bool fields ("false", 0, "yes", ...)
_FLAG = TypeAdapter(bool)
_FLAGS = ("use_change_log", "rebuild_log", "rebuild_log_only", "backup", "dry_run")


class RunOptions(BaseModel):
    """Immutable switches for one invocation.

    Flag combinations are normalized on construction so every consumer sees
    the same resolved view:
      * rebuild_log_only -> use_change_log on, rebuild_log off, backup off
      * use_change_log off -> rebuild_log off, rebuild_log_only off
    """

    model_config = ConfigDict(frozen=True)

    use_change_log: bool = True
    rebuild_log: bool = False
    rebuild_log_only: bool = False
    backup: bool = False
    dry_run: bool = False
    backup_suffix: str = settings.BACKUP_SUFFIX
    log_name: str = settings.CHANGE_LOG_NAME

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name in _FLAGS:
            if name in data:
                data[name] = _FLAG.validate_python(data[name])
        if data.get("rebuild_log_only"):
            data["use_change_log"] = True
            data["rebuild_log"] = False
            data["backup"] = False
        if data.get("use_change_log") is False:
            data["rebuild_log"] = False
            data["rebuild_log_only"] = False
        return data

    @property
    def logging_enabled(self) -> bool:
        return self.use_change_log

    @property
    def needs_compressor(self) -> bool:
        return not (self.dry_run or self.rebuild_log_only)


class Decision(str, Enum):
    SKIP = "skip"
    PROCESS = "process"
    LOG_ONLY = "log_only"


@dataclass
class RunStats:
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    logged: int = 0
    directories: int = 0
    directory_failures: int = 0
    bytes_before: int = 0
    bytes_after: int = 0
    compression_count: Optional[int] = None  # API usage this month, if known

    @property
    def ok(self) -> bool:
        return self.failed == 0 and self.directory_failures == 0

    @property
    def bytes_saved(self) -> int:
        return self.bytes_before - self.bytes_after

    def summary(self, rebuild_log_only: bool = False) -> str:
        if rebuild_log_only:
            return f"logged={self.logged} failed={self.failed}"
        saved_kb = self.bytes_saved / 1024
        return (
            f"processed={self.processed} skipped={self.skipped} "
            f"failed={self.failed} saved={saved_kb:.1f} KiB"
        )

    def as_dict(self) -> Dict[str, Any]:
        return {**asdict(self), "ok": self.ok}
