"""
Application Configuration
Uses Pydantic Settings for environment-based configuration
"""

from enum import Enum

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra env vars like MARIADB_* used by docker-compose
    )

    # Application
    PROJECT_NAME: str = "Academy API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development", pattern="^(development|staging|production)$")
    DEBUG: bool = Field(default=False)
    API_V1_STR: str = "/api/v1"

    # Security
    SECRET_KEY: str
    REFRESH_SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # CORS
    # Allow str because it can be a comma-separated string in .env
    CORS_ORIGINS: str | list[str] = Field(
        default=["http://localhost:3000", "http://localhost:8000"]
    )

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_ECHO: bool = False

    # Arq (audit events and other background jobs)
    ARQ_REDIS_URL: str = Field(default="redis://localhost:6379/1")
    ARQ_MAX_TRIES: int = 3
    ARQ_KEEP_RESULT: int = 3600  # 1 hour

    # Device policy fallbacks, used when the system_settings row is missing
    DEFAULT_MAX_DEVICES_PER_STUDENT: int = Field(default=1, ge=1, le=2)
    DEFAULT_DEVICE_ENFORCEMENT: bool = False
    # device_changes_count above this marks an account as suspicious in the activity report
    SUSPICIOUS_DEVICE_CHANGES: int = 5

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string"""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v


# Create global settings instance

load_dotenv()
settings = Settings()  # type: ignore[call-arg]


class UserRole(str, Enum):
    """Account roles. Only students are subject to device binding."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

    @property
    def is_device_bound(self) -> bool:
        """Whether credentials for this role carry and enforce a device fingerprint."""
        return self is UserRole.STUDENT


class AccountStatus:
    """Account status constants"""

    ACTIVE = "active"
    BLOCKED = "blocked"


class SettingKey:
    """Keys of the shared system_settings store"""

    MAX_DEVICES_PER_STUDENT = "max_devices_per_student"
    DEVICE_TRACKING_ENABLED = "device_tracking_enabled"


# Allowed values for the global per-student device cap
ALLOWED_DEVICE_LIMITS = (1, 2)


class AuditAction:
    """Audit event type constants"""

    FORCE_LOGOUT = "FORCE_LOGOUT"
    DEVICE_RESET = "DEVICE_RESET"
    RESET_ALL_DEVICES = "RESET_ALL_DEVICES"
    DEVICE_BLOCKED = "DEVICE_BLOCKED"
    DEVICE_LIMIT_CHANGED = "DEVICE_LIMIT_CHANGED"
    DEVICE_ENFORCEMENT_TOGGLED = "DEVICE_ENFORCEMENT_TOGGLED"
    DEVICE_SESSION_INVALIDATED = "DEVICE_SESSION_INVALIDATED"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
