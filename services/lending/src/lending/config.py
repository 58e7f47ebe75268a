import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_env_file() -> str | None:
    """Find .env file, preferring .env.local for local development."""
    for env_file in [".env.local", ".env"]:
        # Check in current directory and project root
        for base in [".", os.environ.get("REPO_ROOT", "")]:
            if base:
                path = Path(base) / env_file
                if path.exists():
                    return str(path)
    return None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # DATABASE_URL from environment (production/CI)
    # Falls back to SQLite for local development if not set
    database_url: str = "sqlite:///./local.db"

    # Prices older than this are rejected; 0 disables the check
    oracle_max_stale_seconds: int = 3600

    # Keeper job that accrues every reserve and records the observations
    enable_accrual_job: bool = True
    accrual_interval_seconds: int = 3600

    # Write pool events to the pool_events table as they are committed
    persist_events: bool = True


settings = Settings()
