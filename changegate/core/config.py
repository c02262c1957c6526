from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "ChangeGate"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./changegate.db"

    # Approval rules (YAML); built-in rules are used when unset
    rules_file: Optional[str] = None

    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    file_logging: bool = False

    # Notifications
    notifications_enabled: bool = True
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from_email: str = "noreply@changegate.local"
    smtp_from_name: str = "ChangeGate"
    smtp_use_tls: bool = True
    smtp_timeout: int = 10

    # Webhooks
    webhook_url: Optional[str] = None
    webhook_timeout: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="CHANGEGATE_",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
