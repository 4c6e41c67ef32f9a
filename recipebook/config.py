"""Configuration management with pydantic-settings and validation."""

from pydantic_settings import BaseSettings
from pydantic import field_validator


LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET")

# Fields that fall back to their defaults when unset
OPTIONAL_FIELDS = {
    "db_pool_size",
    "db_max_overflow",
    "db_isolation_level",
    "db_statement_timeout_ms",
    "default_page_size",
    "max_page_size",
    "log_level",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_isolation_level: str = "READ COMMITTED"
    db_statement_timeout_ms: int = 5000

    # Recipe listing
    default_page_size: int = 20
    max_page_size: int = 100

    # Logging
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_database_url(cls, v):
        """Heroku-style URLs use postgres:// but SQLAlchemy requires postgresql://."""
        if isinstance(v, str) and v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator("*", mode="before")
    @classmethod
    def check_not_empty(cls, v, info):
        """Validate that required environment variables are not empty."""
        if info.field_name in OPTIONAL_FIELDS:
            return v
        if v is None:
            raise ValueError("Required environment variable is not set")
        if isinstance(v, str) and v.strip() == "":
            raise ValueError("Required environment variable is empty")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return v

    @property
    def is_postgres(self) -> bool:
        return self.database_url.startswith("postgresql")


def get_settings() -> Settings:
    """Load and validate settings from environment.

    Raises:
        ValidationError: If required environment variables are missing or invalid.
    """
    return Settings()
