from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Document store
    data_dir: Optional[Path] = None  # overrides the cwd-relative ``data`` directory
    launch_subdir: str = "src-tauri"  # when cwd is this directory, data lives one level up
    db_filename: str = "getty.db"
    store_lock_timeout: float = -1.0  # seconds; -1 blocks until the lock is free

    # Request executor
    http_timeout: Optional[float] = None  # None means no transport timeout
    http_verify_ssl: bool = True
    http_follow_redirects: bool = True
    http_user_agent: str = "Getty/1.0"

    # Command dispatch
    command_timeout: Optional[float] = None

    # Logging
    log_level: str = "INFO"


settings = Settings()
