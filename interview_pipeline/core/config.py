import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from interview_pipeline.core.paths import resolve_repo_path


def _env_files() -> list[str]:
    base = resolve_repo_path(".env")
    env = os.getenv("IP_ENVIRONMENT", "").strip().lower()
    files = [str(base)]
    if env and env != "development":
        files.append(str(resolve_repo_path(f".env.{env}")))
    else:
        files.append(str(resolve_repo_path(".env.local")))
    return files


class Settings(BaseSettings):
    app_name: str = "Interview Pipeline"
    environment: str = "development"
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./interview_pipeline.db"
    database_echo: bool = False

    default_interview_minutes: int = 30
    schedule_lock_timeout_seconds: float = 10.0
    calendar_timezone: str = "UTC"

    redis_url: str = ""

    enable_jobs: bool = False
    feedback_reminder_hours: int = 24
    feedback_reminder_interval_minutes: int = 30

    model_config = SettingsConfigDict(env_prefix="IP_", env_file=_env_files(), extra="ignore")


settings = Settings()
