"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables.

    ``service_endpoints`` maps an owning-service name to the base URL of its
    read API; it is read as JSON from ``HISTORIA_SERVICE_ENDPOINTS``.
    """

    auth_provider: Literal["jwt", "mock"] = "jwt"
    jwt_secret: str = Field(min_length=1)
    jwt_algorithm: str = "HS256"
    token_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)

    service_endpoints: dict[str, str] = Field(
        default_factory=lambda: {
            "period-service": "http://localhost:3002",
            "event-service": "http://localhost:3002",
            "media-service": "http://localhost:3001",
        }
    )
    resolver_timeout_seconds: float = Field(default=2.0, gt=0)
    resolver_max_retries: int = Field(default=2, ge=0, le=2)
    resolver_backoff_seconds: float = Field(default=0.1, ge=0)
    resolver_cache_ttl_seconds: float = Field(default=0.0, ge=0)
    guard_deadline_seconds: float | None = Field(default=None, gt=0)

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="HISTORIA_", env_file=".env", extra="ignore")

    def aggregate_guard_deadline(self) -> float:
        """Upper bound on one guard's resolve phase: every attempt plus the backoff between them."""
        if self.guard_deadline_seconds is not None:
            return self.guard_deadline_seconds
        attempts = self.resolver_max_retries + 1
        backoff_budget = sum(self.resolver_backoff_seconds * (2**n) for n in range(self.resolver_max_retries))
        return self.resolver_timeout_seconds * attempts + backoff_budget


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
