# worker/app/config.py
from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve repo root: repo/ (since this file is repo/worker/app/config.py)
REPO_ENV = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    """
    Central config for the compressor. Uses Pydantic v2 + pydantic-settings.

    - Loads env from the repo root .env if present
    - Ignores unknown env vars (prevents CI/local crashes)
    - Case-insensitive env keys
    - Defaults work offline for tests (COMPRESS_DEV_MODE=1 skips the API)
    """

    model_config = SettingsConfigDict(
        env_file=str(REPO_ENV),
        extra="ignore",
        case_sensitive=False,
    )

    # --- Remote compression service -------------------------------------------
    TINIFY_API_KEY: str = ""
    TINIFY_API_URL: str = "https://api.tinify.com"

    # --- Timeouts (ms) --------------------------------------------------------
    HTTP_TIMEOUT_MS: int = 60000  # per upload/download call

    # --- Dev Toggles ----------------------------------------------------------
    COMPRESS_DEV_MODE: int = 0  # 1 -> passthrough compressor, no network

    # --- On-disk names --------------------------------------------------------
    CHANGE_LOG_NAME: str = ".tinycrush.log"  # one per directory
    BACKUP_SUFFIX: str = ".bak"

    # --- Logging --------------------------------------------------------------
    LOG_LEVEL: str = "INFO"
    RUN_LOG_FILE: str = ""  # JSONL event log; empty disables it
    RUN_LOG_MAX_MB: int = 16

    @property
    def HTTP_TIMEOUT_S(self) -> float:
        return self.HTTP_TIMEOUT_MS / 1000.0


# Singleton-style instance used by the cli/tests
settings = Settings()
