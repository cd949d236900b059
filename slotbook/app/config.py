# slotbook/app/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/slotbook.db"
    redis_url: str = "redis://localhost:6379/0"

    log_level: str = "INFO"

    # Booking engine
    horizon_days: int = 60
    pending_hold_minutes: int = 15
    commit_attempts: int = 3

    # Background sweep of abandoned payment holds
    pending_expiry_enabled: bool = True
    pending_expiry_interval_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative SQLite paths are anchored at the repository root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
