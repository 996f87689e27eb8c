from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # API settings
    API_BASE_URL: str = "http://localhost:4000"
    REQUEST_TIMEOUT: float = 30.0

    # Identity provider settings (informational, login happens outside this package)
    AZURE_CLIENT_ID: str | None = None
    AZURE_TENANT_ID: str | None = None
    AZURE_API_AUDIENCE: str | None = None
    AUTH_BYPASS: bool = False

    # Record vocabulary used in user-facing messages
    CRM_ENVIRONMENT: Literal["academy", "rosa", "sales", "hr"] = "academy"

    # Stage updates: dedicated learners endpoint, generic people PATCH, or try dedicated once
    STAGE_PATCH_MODE: Literal["dedicated", "generic", "negotiate"] = "negotiate"

    # =================================================================
    # QUERY CACHE SETTINGS
    # =================================================================
    CACHE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str | None = None
    CACHE_NAMESPACE: str = "crm_console:query:"

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def api_base_url(self) -> str:
        """API base URL without a trailing slash."""
        return self.API_BASE_URL.rstrip("/")

    def get_http_client_config(self) -> dict:
        """
        Get HTTP client configuration.
        Adjust environment-specific settings based on self.environment.
        """
        config = {
            "timeout": self.REQUEST_TIMEOUT,
            "max_keepalive_connections": 10,
            "max_connections": 20,
        }

        if self.environment == "development":
            # Local APIs answer fast, fail sooner
            config.update({"timeout": min(self.REQUEST_TIMEOUT, 15.0)})

        return config


settings = Settings()
