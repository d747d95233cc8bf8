"""Application configuration via environment variables."""

import tempfile
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Shared secret expected in "Authorization: Bearer <secret>"
    worker_secret: str = ""

    # Admission gate
    max_concurrent_jobs: int = 1

    # Conversion
    scratch_dir: str = tempfile.gettempdir()
    ffmpeg_binary: str = "ffmpeg"

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


def current_worker_secret() -> Optional[str]:
    """Re-read WORKER_SECRET from the environment and .env.

    Called once per request so the secret can be rotated without a restart.
    Returns None when unset or empty.
    """
    return Settings().worker_secret or None


settings = Settings()
