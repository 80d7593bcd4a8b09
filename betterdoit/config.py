"""
Unified configuration for database selection, reminders and SMS delivery.

This module provides a single source of truth for settings used by:
- The HTTP service (running in a container or locally)
- The command-line entry points (init, remind, rebalance)
- Scripts and tests

The SQLite database path resolution:
1. Checks BETTERDOIT_DB_PATH environment variable first
2. Falls back to a consistent default location
3. Works for both local development and containerized deployments

This module uses Pydantic Settings for type-safe configuration management
with support for .env files and environment variable overrides.
"""
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Default database path - works for both local and container
DEFAULT_DB_PATH = "data/betterdoit.db"

# Container default (used when running in container)
CONTAINER_DB_PATH = "/app/data/betterdoit.db"

SUPPORTED_DB_TYPES = ("sqlite", "postgresql")
SUPPORTED_SMS_BACKENDS = ("twilio", "log")


def _is_container() -> bool:
    """Check if we're running in a container."""
    if os.path.exists("/.dockerenv"):
        return True
    if os.path.exists("/proc/1/cgroup"):
        try:
            with open("/proc/1/cgroup", "r") as f:
                content = f.read()
        except OSError:
            return False
        if "docker" in content or "containerd" in content or "kubepods" in content:
            return True
    return False


class Settings(BaseSettings):
    """Application settings for betterdoit.
    
    All configuration values can be set via environment variables or .env file.
    Defaults are provided for development convenience.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================================================
    # Database Configuration
    # ============================================================================
    db_type: str = "sqlite"
    database_path: str = ""  # Will be resolved by validator

    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "betterdoit"
    db_user: str = "postgres"
    db_password: str = ""
    db_pool_min: int = 1
    db_pool_size: int = 5

    # ============================================================================
    # Logging Configuration
    # ============================================================================
    log_level: str = "INFO"
    log_format: str = "json"

    # ============================================================================
    # Environment Configuration
    # ============================================================================
    environment: str = "development"
    debug: bool = False

    # ============================================================================
    # Authentication
    # ============================================================================
    cron_secret_token: Optional[str] = None
    session_secret: Optional[str] = None

    # ============================================================================
    # Reminders and SMS delivery
    # ============================================================================
    sms_backend: str = "log"
    twilio_account_sid: Optional[str] = None
    twilio_auth_token: Optional[str] = None
    twilio_phone_number: Optional[str] = None
    sms_send_timeout: float = 10.0

    reminder_timezone: Optional[str] = None  # None = process local time
    reminder_task_limit: int = 5
    reminder_concurrency: int = 10

    # ============================================================================
    # Task rules
    # ============================================================================
    max_active_tasks: int = 3  # 0 disables the limit

    @field_validator("db_type", "sms_backend", mode="before")
    @classmethod
    def normalize_choice(cls, v: Optional[str]) -> str:
        return (v or "").strip().lower()

    @field_validator("db_type")
    @classmethod
    def check_db_type(cls, v: str) -> str:
        if v not in SUPPORTED_DB_TYPES:
            raise ValueError(f"db_type must be one of {', '.join(SUPPORTED_DB_TYPES)}")
        return v

    @field_validator("sms_backend")
    @classmethod
    def check_sms_backend(cls, v: str) -> str:
        if v not in SUPPORTED_SMS_BACKENDS:
            raise ValueError(f"sms_backend must be one of {', '.join(SUPPORTED_SMS_BACKENDS)}")
        return v

    @field_validator("database_path", mode="before")
    @classmethod
    def resolve_database_path(cls, v: Optional[str]) -> str:
        """
        Resolve the SQLite database path.
        
        Resolution order:
        1. BETTERDOIT_DB_PATH environment variable (highest priority)
        2. Value from .env file or Settings field (if provided)
        3. Container path if running in container
        4. Local development path
        """
        env_path = os.getenv("BETTERDOIT_DB_PATH")
        if env_path:
            return os.path.abspath(env_path)
        
        if v:
            return os.path.abspath(v)
        
        if _is_container():
            default_path = CONTAINER_DB_PATH
        else:
            project_root = Path(__file__).resolve().parent.parent
            default_path = str(project_root / DEFAULT_DB_PATH)
        
        return os.path.abspath(default_path)

    @property
    def postgres_dsn(self) -> str:
        """libpq keyword connection string for the PostgreSQL backend."""
        dsn = f"host={self.db_host} port={self.db_port} dbname={self.db_name} user={self.db_user}"
        if self.db_password:
            dsn += f" password={self.db_password}"
        return dsn


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings()


def get_database_path() -> str:
    """Get the resolved SQLite database path."""
    return get_settings().database_path


def ensure_database_directory(db_path: Optional[str] = None) -> None:
    """
    Ensure the database directory exists.
    
    Args:
        db_path: Path to the database file. If None, uses get_database_path().
    """
    if db_path is None:
        db_path = get_database_path()
    db_dir = os.path.dirname(os.path.abspath(db_path))
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)
