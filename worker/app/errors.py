# worker/app/errors.py
from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    GENERAL = 1  # run completed, but files or directories failed
    BAD_ARGS = 2
    MISSING_DEP = 3
    RUNTIME = 4


class CompressionError(RuntimeError):
    """Non-fatal: one file could not be compressed; the original is untouched."""


class ConfigError(ValueError):
    """Fatal: invalid invocation, raised before any file is touched."""

    exit_code = ExitCode.BAD_ARGS


class MissingDependencyError(ConfigError):
    """Fatal: the compression client cannot be used (no API key, etc.)."""

    exit_code = ExitCode.MISSING_DEP


__all__ = [
    "ExitCode",
    "CompressionError",
    "ConfigError",
    "MissingDependencyError",
]
