"""Runtime configuration: env-driven, via pydantic-settings.

Reads from a .env file and STILLFRAME_* environment variables.
"""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class StillframeConfig(BaseSettings):
    """Runtime configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export STILLFRAME_LOG_LEVEL=DEBUG
        export STILLFRAME_FETCH_TIMEOUT_SECONDS=3
        export STILLFRAME_ARTIST_ID=0xA11CE

    Or via .env file::

        STILLFRAME_STATE_DB_PATH=/data/state.db
        STILLFRAME_SPECULATIVE_FETCH_WORKERS=4
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="STILLFRAME_",
        env_file_encoding="utf-8",
    )

    # Logging
    log_level: str = "INFO"

    # Storage paths
    state_db_path: Path = Path(".stillframe/state.db")
    changelog_path: Path = Path(".stillframe/changelog.db")

    # The storage medium caps a single write at 24576 bytes; stay one under.
    chunk_size_limit: int = 24575

    # Retrieval
    fetch_timeout_seconds: float = 10.0
    speculative_fetch_workers: int = 1
    ipfs_gateway: str = "https://ipfs.io/ipfs/"
    arweave_gateway: str = "https://arweave.net/"

    # Identities consulted by the static writer capability
    artist_id: str = ""
    holder_id: str = ""


# Module-level singleton, import as `from stillframe.config import config`
config = StillframeConfig()
