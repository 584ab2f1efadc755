# config.py
"""
Configuration module for the application.
Handles environment-specific settings using Pydantic v2 and pydantic-settings.
"""
import os
from enum import Enum
from pydantic import Field, field_validator, BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    file_enabled: bool = False
    file_path: str = "logs/app.log"

class APISettings(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8000
    prefix: str = "/api"
    version: str = "1.0.0"
    title: str = "University Procurement API"
    description: str = "Purchase requests, approvals, budgets and onboarding for university departments"

class DatabaseSettings(BaseModel):
    url: str
    pool_size: int = 20
    max_overflow: int = 30
    pool_recycle: int = 3600
    pool_timeout: int = 10

class StoreSettings(BaseModel):
    timeout_seconds: float = 10.0
    max_retries: int = 1
    retry_backoff_seconds: float = 0.2

class SecuritySettings(BaseModel):
    password_min_length: int = 8
    bcrypt_rounds: int = 12

class InvitationSettings(BaseModel):
    ttl_days: int = 7
    token_bytes: int = 32

class Settings(BaseSettings):
    """Main settings class with environment-specific configurations."""
    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # API
    api_title: str = "University Procurement API"
    api_description: str = "Purchase requests, approvals, budgets and onboarding for university departments"
    api_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str
    pool_size: int = 20
    max_overflow: int = 30
    pool_recycle: int = 3600
    pool_timeout: int = 10

    # Store calls
    store_timeout_seconds: float = 10.0
    store_max_retries: int = 1
    store_retry_backoff_seconds: float = 0.2

    # Security
    password_min_length: int = 8
    bcrypt_rounds: int = 12

    # Invitations
    invitation_ttl_days: int = 7
    invitation_token_bytes: int = 32

    # Logging
    log_level: str = "INFO"
    log_format: str = Field(default="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}")
    log_file_enabled: bool = False
    log_file_path: str = "logs/app.log"

    # Frontend
    frontend_urls_raw: str = Field(
        default="http://localhost:3000",
        alias="FRONTEND_URLS",
        exclude=True,
    )

    # Feature flags
    enable_audit_logs: bool = True

    # Validators
    @field_validator("debug")
    @classmethod
    def debug_not_in_production(cls, v, info):
        env = info.data.get("environment")
        if v and env == Environment.PRODUCTION:
            raise ValueError("Debug mode should not be enabled in production")
        return v

    @property
    def frontend_urls(self) -> list[str]:
        """Comma-separated frontend URLs from .env, parsed into a list."""
        urls = [url.strip() for url in self.frontend_urls_raw.split(",") if url.strip()]
        from urllib.parse import urlparse
        for url in urls:
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ValueError(f"Invalid URL in frontend_urls: {url}")
        return urls

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v.startswith(("postgresql://", "postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError("Invalid database URL format")
        return v

    @field_validator("invitation_ttl_days")
    @classmethod
    def validate_invitation_ttl(cls, v):
        if v < 1:
            raise ValueError("Invitations must live at least one day")
        return v

    # Sub-settings via properties
    @property
    def api(self) -> APISettings:
        return APISettings(
            host=self.host,
            port=self.port,
            title=self.api_title,
            description=self.api_description,
            version=self.api_version,
        )

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings(
            level=self.log_level,
            format=self.log_format,
            file_enabled=self.log_file_enabled,
            file_path=self.log_file_path,
        )

    @property
    def database(self) -> DatabaseSettings:
        return DatabaseSettings(
            url=self.database_url,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_recycle=self.pool_recycle,
            pool_timeout=self.pool_timeout,
        )

    @property
    def store(self) -> StoreSettings:
        return StoreSettings(
            timeout_seconds=self.store_timeout_seconds,
            max_retries=self.store_max_retries,
            retry_backoff_seconds=self.store_retry_backoff_seconds,
        )

    @property
    def security(self) -> SecuritySettings:
        return SecuritySettings(
            password_min_length=self.password_min_length,
            bcrypt_rounds=self.bcrypt_rounds,
        )

    @property
    def invitation(self) -> InvitationSettings:
        return InvitationSettings(
            ttl_days=self.invitation_ttl_days,
            token_bytes=self.invitation_token_bytes,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        populate_by_name=True,
    )

class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"

class ProductionSettings(Settings):
    debug: bool = False
    log_level: str = "INFO"

class TestingSettings(Settings):
    database_url: str = "sqlite+aiosqlite:///./test.db"
    debug: bool = False
    log_level: str = "DEBUG"
    bcrypt_rounds: int = 4
    store_retry_backoff_seconds: float = 0.01

def get_settings() -> Settings:
    """
    Factory to return environment-specific settings.

    The environment is read on its own first so that TestingSettings can
    supply a database URL when none is configured.
    """
    env = Environment(os.environ.get("ENVIRONMENT", Environment.DEVELOPMENT.value).lower())
    if env == Environment.PRODUCTION:
        return ProductionSettings()
    elif env == Environment.TESTING:
        return TestingSettings()
    return DevelopmentSettings()

# Global settings instance
settings = get_settings()
