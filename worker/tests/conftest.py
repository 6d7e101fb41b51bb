# worker/tests/conftest.py
from __future__ import annotations

# Import/bootstrap so "import worker.app" works when running pytest from repo root
import os
import sys
from pathlib import Path
from typing import List, Optional, Set

import pytest

TESTS_DIR = Path(__file__).resolve().parent  # .../worker/tests
WORKER_DIR = TESTS_DIR.parent  # .../worker
REPO_ROOT = WORKER_DIR.parent  # repo root

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

# Fast, deterministic test defaults: no network, no real API key, no run log.
os.environ.setdefault("COMPRESS_DEV_MODE", "1")
os.environ["TINIFY_API_KEY"] = ""
os.environ["RUN_LOG_FILE"] = ""

from worker.app.errors import CompressionError  # noqa: E402
from worker.app.telemetry import Telemetry  # noqa: E402


class FakeCompressor:
    """Deterministic stand-in for the remote API.

    Output is a fixed prefix plus the first half of the input, so compressing
    twice changes content again (the change log must prevent the second call).
    """

    def __init__(self, fail_on: Optional[Set[str]] = None) -> None:
        self.fail_on = set(fail_on or ())
        self.calls: List[bytes] = []

    def compress(self, data: bytes) -> bytes:
        self.calls.append(data)
        for marker in self.fail_on:
            if marker.encode() in data:
                raise CompressionError(f"simulated failure for {marker}")
        return b"TINY" + data[: max(1, len(data) // 2)]


@pytest.fixture
def fake_compressor() -> FakeCompressor:
    return FakeCompressor()


@pytest.fixture
def quiet_telemetry() -> Telemetry:
    return Telemetry(log_file="")


def write_image(path: Path, payload: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"\x89PNG\r\n\x1a\n" + payload.encode("utf-8") * 8)
    return path


@pytest.fixture
def image_factory():
    return write_image
