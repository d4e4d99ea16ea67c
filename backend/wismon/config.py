"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from typing import Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from wismon.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Runtime
    environment: str = "development"
    log_level: str = "INFO"
    port: int = 3000

    # Database TLS (opt-in)
    db_require_ssl: bool = False
    db_ssl_reject_unauthorized: bool = True

    # Pool tuning
    db_connection_limit: int = 15
    db_acquire_timeout_seconds: float = 30.0
    db_idle_timeout_seconds: int = 300
    query_timeout_seconds: float = 30.0

    # Auth rate limits per client IP; None enables them outside development
    rate_limit_enabled: Optional[bool] = None
    login_rate_limit_attempts: int = 5
    login_rate_limit_window_seconds: int = 900
    refresh_rate_limit_attempts: int = 10
    refresh_rate_limit_window_seconds: int = 900

    # Databases whose loss aborts startup
    essential_databases: str = "SSO,WISMON"

    # JWT Configuration
    jwt_secret: str = ""
    jwt_refresh_secret: str = ""
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "wismon-api"
    jwt_audience: str = "wismon-client"
    jwt_access_token_expire_minutes: int = 15
    jwt_refresh_token_expire_days: int = 30

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def rate_limiting_enabled(self) -> bool:
        if self.rate_limit_enabled is not None:
            return self.rate_limit_enabled
        return not self.is_development

    @property
    def essential_database_names(self) -> list[str]:
        """ESSENTIAL_DATABASES split on commas, blanks dropped."""
        return [name.strip() for name in self.essential_databases.split(",") if name.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()
    except ValidationError as e:
        invalid = [".".join(str(part) for part in err["loc"]).upper() for err in e.errors()]
        raise ConfigurationError(
            f"Invalid environment variables: {', '.join(invalid)}",
            missing=invalid,
        ) from e
