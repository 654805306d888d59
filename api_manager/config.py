"""Application configuration."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./data/api_manager.db"

    # Encryption (validated at startup by EncryptionService)
    encryption_key: Optional[str] = None

    # Proxy
    proxy_api_key: Optional[str] = None
    proxy_user_agent: str = "API-Manager-Proxy/1.0"
    default_timeout_ms: int = 10000
    default_rate_limit: int = 1000

    # Seed data
    seed_file: str = "seeds/providers.yaml"

    # Application
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    log_level: str = "INFO"
    cors_origins: str = "*"


settings = Settings()
