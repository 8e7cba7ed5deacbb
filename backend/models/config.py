import os
import sys
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_ENVIRONMENTS = ("development", "staging", "production")


def _should_load_env_file() -> str | None:
    """Determine if .env should be loaded.

    For local development, load `.env` automatically. Do NOT auto-load it
    when running under pytest or in CI so tests see only the variables they set.
    """
    if any("pytest" in str(x) for x in sys.argv if x):
        return None
    if os.environ.get("CI") in ("1", "true", "True"):
        return None
    return ".env"


class Settings(BaseSettings):
    # Environment configuration
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: 'development', 'staging', or 'production'",
    )

    DATABASE_URL: str = "sqlite:///./data/compliance.db"

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(
        default=5,
        description="Number of persistent connections in pool",
    )
    DB_MAX_OVERFLOW: int = Field(
        default=10,
        description="Extra connections when pool exhausted",
    )
    DB_POOL_TIMEOUT: int = Field(
        default=30,
        description="Seconds to wait for connection from pool",
    )
    DB_POOL_RECYCLE: int = Field(
        default=1800,
        description="Recycle connections after N seconds (30 min default)",
    )

    # Logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Minimum level for the JSON and file sinks",
    )
    LOG_DIR: str = Field(
        default="logs",
        description="Directory for the rotating log file (empty disables it)",
    )

    # Sentry
    SENTRY_DSN: str | None = Field(
        default=None,
        description="Sentry DSN; Sentry is disabled when unset",
    )
    SENTRY_RELEASE: str = Field(default="unknown")
    SENTRY_TRACES_SAMPLE_RATE: float = Field(
        default=0.2,
        description="Fraction of units of work traced",
    )

    # Bootstrap administrator (init_db)
    BOOTSTRAP_ADMIN_EMAIL: str | None = Field(
        default=None,
        description="E-mail of the admin created by init_db; unset disables it",
    )
    BOOTSTRAP_ADMIN_USERNAME: str = Field(default="admin")

    # Account lifecycle
    PROTECTED_ROLES: List[str] = Field(
        default=["admin"],
        description="Roles that suspend, ban and soft delete may not target",
    )

    # Anonymization (right to be forgotten)
    ANONYMIZED_EMAIL_DOMAIN: str = Field(
        default="anonymized.local",
        description="Domain of the synthetic e-mail written by anonymization",
    )
    ANONYMIZED_USERNAME_PREFIX: str = Field(
        default="deleted_user_",
        description="Prefix of the synthetic username written by anonymization",
    )

    # Consent ledger
    CONSENT_POLICY_VERSION: int = Field(
        default=1,
        description="Policy version stamped on consent rows and consent log entries",
    )

    # Deletion requests
    DELETION_GRACE_PERIOD_DAYS: int = Field(
        default=30,
        description="Days within which a deletion request is processed",
    )

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Reject unknown environment names."""
        v = v.lower()
        if v not in VALID_ENVIRONMENTS:
            raise ValueError(
                f"ENVIRONMENT must be one of {', '.join(VALID_ENVIRONMENTS)}"
            )
        return v

    @field_validator("PROTECTED_ROLES", mode="before")
    @classmethod
    def parse_protected_roles(cls, v: str | List[str]) -> List[str]:
        """Parse protected roles from comma-separated string."""
        if isinstance(v, str):
            return [role.strip() for role in v.split(",") if role.strip()]
        return v

    model_config = SettingsConfigDict(
        env_file=_should_load_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    """Get the settings instance (for dependency injection)."""
    return settings
