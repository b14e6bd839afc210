from functools import lru_cache
from typing import ClassVar

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file.

    Admin credential fields default to empty strings; presence and strength
    are checked by ``src.auth.guard.validate_environment``, which reports
    every missing value by its env var name.
    """

    # Admin credential (required, checked by src.auth.guard.validate_environment)
    jwt_secret: str = ""
    admin_email: str = ""
    admin_password: str = ""
    admin_password_hash: str = ""  # Optional pre-hashed bcrypt alternative to ADMIN_PASSWORD
    admin_name: str = "Admin User"

    # Session tokens
    jwt_issuer: str = "pharmacy-portal"
    jwt_audience: str = "pharmacy-admin"
    token_ttl_hours: int = 24

    # Lockout policy
    max_login_attempts: int = 3
    lockout_minutes: int = 30
    lockout_max_identities: int = 10_000
    bcrypt_rounds: int = 12

    # SQLite store holding integration settings, catalog and orders
    store_db_path: str = "data/pharmacy.db"

    # Integration monitor schedule
    health_check_interval_seconds: int = 300
    metrics_interval_seconds: int = 900
    inventory_interval_seconds: int = 1800
    order_interval_seconds: int = 3600
    probe_timeout_seconds: float = 10.0
    slow_response_ms: int = 5000
    history_max_samples: int = 1000

    # SMTP / Email for health alerts (optional, empty disables email)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    alert_recipient_email: str = ""

    log_level: str = "INFO"

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Lazily load and cache settings. Fails at first call, not at import time."""
    return Settings()
