"""
Core Configuration Module
Uses pydantic-settings for environment variable management.
All secrets loaded from .env file - NEVER hardcode secrets.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    project_name: str = "Habitat"
    environment: str = Field(default="development", description="development | staging | production")
    debug: bool = Field(default=True)
    api_v1_str: str = "/api/v1"
    app_version: str = Field(default="1.0.0", description="Application version")

    # Database
    database_url: str = Field(
        default="postgresql+asyncpg://habitat:habitat@db:5432/habitat",
        description="Full database URL (postgresql or sqlite)",
    )
    db_pool_size: int = Field(default=20, description="SQLAlchemy connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_echo: bool = Field(default=False, description="Echo SQL queries")
    run_db_init: bool = False

    # MQTT broker used by the IoT adapters
    mqtt_broker_host: str = Field(default="mqtt", description="MQTT Broker hostname")
    mqtt_broker_port: int = Field(default=1883, description="MQTT Broker port")
    mqtt_username: str | None = Field(default=None, description="MQTT username")
    mqtt_password: str | None = Field(default=None, description="MQTT password")
    mqtt_client_id: str = Field(default="habitat-backend", description="MQTT Client ID")
    mqtt_ingestion_enabled: bool = Field(default=False, description="Consume device state topics inside the API process")

    # IoT REST vendors
    iot_http_timeout_seconds: float = Field(default=5.0, description="Timeout for vendor REST calls")

    # Security
    secret_key: str = Field(default="CHANGE_ME_IN_PRODUCTION", description="JWT Secret Key")
    algorithm: str = Field(default="HS256", description="JWT Algorithm")
    access_token_expire_minutes: int = Field(default=60 * 24, description="Token expiry in minutes")

    # CORS
    cors_origins: str = Field(default="http://localhost:3000", description="Allowed CORS origins")

    # Celery
    celery_broker_url: str = Field(default="redis://redis:6379/0", description="Celery broker URL")
    celery_result_backend: str = Field(default="redis://redis:6379/0", description="Celery result backend")

    # Doorbell
    doorbell_default_timeout_seconds: int = Field(
        default=30, description="Seconds a doorbell may ring before routing to front desk"
    )
    doorbell_check_interval_seconds: float = Field(
        default=10.0, description="How often the timeout scan runs"
    )

    # Sentry (Error Tracking)
    sentry_dsn: str = Field(default="", description="Sentry DSN for error tracking")
    sentry_traces_sample_rate: float = Field(default=0.1, description="Sentry traces sample rate")

    # Prometheus
    prometheus_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma separated CORS origins."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def async_database_url(self) -> str:
        """Normalize the database URL to an async driver."""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        elif url.startswith("sqlite://"):
            url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return url

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
