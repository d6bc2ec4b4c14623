"""Application configuration using pydantic-settings.

Holds the settlement provider credentials, the store URL, the shared secret
guarding the completion trigger and the completion worker's policy knobs.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when a mandatory setting is missing or invalid."""
    pass


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Settlement provider
    # ======================
    dev_portal_key: str = Field(default="", description="1inch Dev Portal API key")
    fusion_api_url: str = Field(
        default="https://api.1inch.dev/fusion-plus",
        description="Fusion+ API base URL (quoter, relayer, orders)",
    )
    balance_api_url: str = Field(
        default="https://api.1inch.dev/balance/v1.2", description="Balance API base URL"
    )
    token_api_url: str = Field(
        default="https://api.1inch.dev/token/v1.4", description="Token metadata API base URL"
    )
    http_timeout: float = Field(default=30.0, description="Outbound HTTP timeout in seconds")

    # ======================
    # Database
    # ======================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/fusiondonate.db",
        description="Database connection URL",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    # ======================
    # Completion worker
    # ======================
    cron_secret: str = Field(
        default="", description="Bearer secret required by the order processing trigger"
    )
    worker_max_attempts: int = Field(
        default=10, description="Polling cycles before a pending order times out"
    )
    worker_batch_size: int = Field(default=50, description="Pending orders per invocation")
    worker_cleanup_probability: float = Field(
        default=0.1, ge=0, le=1, description="Chance that an invocation runs housekeeping"
    )
    worker_interval_seconds: int = Field(
        default=60, description="Seconds between scheduled worker invocations"
    )
    run_embedded_worker: bool = Field(
        default=False, description="Run the worker loop inside the API process"
    )
    order_retention_days: int = Field(
        default=7, description="Age after which executed/timed out orders are deleted"
    )

    # ======================
    # Order preparation
    # ======================
    preparation_ttl_seconds: int = Field(
        default=300, description="Lifetime of a prepared (unsigned) order"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def async_database_url(self) -> str:
        """Database URL with an async driver selected."""
        db_url = self.database_url
        if db_url.startswith("sqlite:///") and "aiosqlite" not in db_url:
            db_url = db_url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
        elif db_url.startswith("postgres://"):
            db_url = db_url.replace("postgres://", "postgresql+asyncpg://", 1)
        elif db_url.startswith("postgresql://"):
            db_url = db_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return db_url

    def require_dev_portal_key(self) -> str:
        """Return the provider API key or fail loudly."""
        if not self.dev_portal_key:
            raise ConfigurationError("Missing required environment variable: DEV_PORTAL_KEY")
        return self.dev_portal_key

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "database_url": self._redact_url(self.database_url),
            "dev_portal_key": "***" if self.dev_portal_key else "(not set)",
            "cron_secret": "***" if self.cron_secret else "(not set)",
            "fusion_api_url": self.fusion_api_url,
            "worker": {
                "max_attempts": self.worker_max_attempts,
                "batch_size": self.worker_batch_size,
                "cleanup_probability": self.worker_cleanup_probability,
                "interval_seconds": self.worker_interval_seconds,
                "embedded": self.run_embedded_worker,
                "order_retention_days": self.order_retention_days,
            },
            "preparation_ttl_seconds": self.preparation_ttl_seconds,
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact sensitive parts of database URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
