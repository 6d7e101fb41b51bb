from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import NamedTuple, Optional, Protocol

import requests

from worker.app.config import Settings, settings
from worker.app.errors import CompressionError, MissingDependencyError
from worker.app.models import RunOptions
from worker.app.services.hasher import bytes_digest
from worker.app.utils.atomic import write_bytes_atomic

log = logging.getLogger(__name__)


class Compressor(Protocol):
    def compress(self, data: bytes) -> bytes:
        """Return optimized bytes for `data`; raise CompressionError on failure."""
        ...


class PassthroughCompressor:
    """Dev mode: returns the input unchanged, never touches the network."""

    def compress(self, data: bytes) -> bytes:
        return data


class TinifyCompressor:
    """
    Client for the Tinify HTTP API.

    Two calls per image:
    - POST {base_url}/shrink with the raw bytes -> 201 + Location header
    - GET  <Location> -> optimized bytes

    Args:
        api_key: Tinify API key (HTTP basic auth, user "api")
        base_url: API root (defaults to config)
        timeout: Seconds per HTTP call (defaults to config)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.TINIFY_API_KEY
        self.base_url = (base_url or settings.TINIFY_API_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_S
        self.compression_count: Optional[int] = None

    def check_ready(self) -> None:
        if not self.api_key:
            raise MissingDependencyError(
                "TINIFY_API_KEY is not set (export it or add it to .env)"
            )

    def _record_count(self, response: requests.Response) -> None:
        raw = response.headers.get("Compression-Count")
        if raw and raw.isdigit():
            self.compression_count = int(raw)

    def compress(self, data: bytes) -> bytes:
        auth = ("api", self.api_key)
        try:
            response = requests.post(
                f"{self.base_url}/shrink", data=data, auth=auth, timeout=self.timeout
            )
            if response.status_code != 201:
                raise CompressionError(_api_error(response))
            self._record_count(response)

            location = response.headers.get("Location")
            if not location:
                raise CompressionError("Tinify response missing Location header")

            result = requests.get(location, auth=auth, timeout=self.timeout)
            result.raise_for_status()
            if not result.content:
                raise CompressionError("Tinify returned an empty body")
            return result.content

        except CompressionError:
            raise
        except requests.HTTPError as e:
            raise CompressionError(f"Tinify API error: {e}") from e
        except requests.RequestException as e:
            raise CompressionError(f"Network error: {e}") from e


def _api_error(response: requests.Response) -> str:
    try:
        body = response.json()
        detail = f"{body.get('error', '')}: {body.get('message', '')}".strip(": ")
    except ValueError:
        detail = response.text[:200]
    return f"Tinify API error {response.status_code}: {detail or 'no details'}"


def build_compressor(options: RunOptions, cfg: Settings = settings) -> Compressor:
    """Pick the compressor for this run; fails fast when a real one is unusable."""
    if cfg.COMPRESS_DEV_MODE == 1:
        return PassthroughCompressor()
    client = TinifyCompressor(
        api_key=cfg.TINIFY_API_KEY,
        base_url=cfg.TINIFY_API_URL,
        timeout=cfg.HTTP_TIMEOUT_S,
    )
    if options.needs_compressor:
        client.check_ready()
    return client


class CompressResult(NamedTuple):
    before: int
    after: int
    digest: str  # sha256 of the bytes now on disk


def compress_file(
    path: str | Path,
    compressor: Compressor,
    backup: bool = False,
    backup_suffix: str = ".bak",
) -> CompressResult:
    """Compress `path` in place; returns sizes and the digest of the new content.

    The optimized bytes land in a sibling temp file that is renamed over the
    original, so the original is either fully old or fully new. With `backup`
    the pre-compression bytes are copied to `<path><backup_suffix>` first.
    Raises CompressionError (original untouched) or OSError.
    """
    path = Path(path)
    original = path.read_bytes()
    optimized = compressor.compress(original)
    if not optimized:
        raise CompressionError(f"compressor returned no data for {path}")

    if backup:
        shutil.copy2(path, path.with_name(path.name + backup_suffix))
    write_bytes_atomic(path, optimized, mode_from=path)
    return CompressResult(len(original), len(optimized), bytes_digest(optimized))


__all__ = [
    "Compressor",
    "PassthroughCompressor",
    "TinifyCompressor",
    "build_compressor",
    "CompressResult",
    "compress_file",
]
