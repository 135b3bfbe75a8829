from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "Clinic API"
    database_url: str = (
        "postgresql+psycopg2://clinic:clinic@db:5432/clinic"  # pragma: allowlist secret
    )
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 2022
    cors_origins: list[str] = ["http://localhost:3000"]
    rate_limit_requests: int = 120
    rate_limit_window_seconds: int = 60

    superadmin_username: str = "admin"
    superadmin_password: str = "password"  # pragma: allowlist secret
    doctor_username: str = "doctor1"
    doctor_password: str = "password"  # pragma: allowlist secret
    doctor_profile_id: int = 1

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()
