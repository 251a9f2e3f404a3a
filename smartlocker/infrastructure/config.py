from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_PACKAGE_ROOT = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SMARTLOCKER_", env_file=".env", extra="ignore")

    database_url: str = "sqlite+pysqlite:///./smartlocker.db"
    event_log_path: Path | None = _PACKAGE_ROOT / "event_log.jsonl"
    locker_catalogue_path: Path = _PACKAGE_ROOT / "data" / "lockers.yaml"
    seed_lockers: bool = True

    currency: str = "EUR"
    max_session_hours: int = 24
    abandoned_after_hours: int = 24

    sweeper_enabled: bool = True
    sweep_interval_seconds: float = 60.0

    log_level: str = "INFO"


settings = Settings()
