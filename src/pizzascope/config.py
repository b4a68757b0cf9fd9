"""Telemetry configuration via environment variables.

Static values passed to ``TelemetrySettings(...)`` act as the base layer;
environment variables (and a ``.env`` file) override them. Export to either
backend is opt-in: without an endpoint URL and credentials the respective
exporter stays disabled and silently does nothing.

Environment Variables:
    METRICS_URL: OTLP/HTTP metrics endpoint
    METRICS_API_KEY: "instanceId:token", or a bare token with METRICS_INSTANCE_ID
    METRICS_INSTANCE_ID: Instance id used as the basic-auth user
    METRICS_SOURCE: Value of the "source" attribute on every data point
    METRICS_PERIOD: Seconds between metric exports
    METRICS_DEDUPE_ACTIVE_USERS: Count each user once per export window
    LOGGING_URL: Loki push endpoint
    LOGGING_USER_ID: Loki basic-auth user
    LOGGING_API_KEY: Loki basic-auth key
    LOGGING_SOURCE: Value of the "source" label on every stream
    LOGGING_FLUSH_INTERVAL: Seconds between log flushes
    LOGGING_MAX_BATCH: Maximum entries pushed per flush
    APP_ENV: Deployment environment label; "test" disables metric export
    TELEMETRY_PUSH_TIMEOUT: Seconds before an outbound push gives up
    TELEMETRY_LIMITS__<FIELD>: Per-field truncation caps
"""

from functools import lru_cache

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

TEST_ENVIRONMENT = "test"


class TruncationLimits(BaseModel):
    """Maximum characters kept per logged field."""

    request_body: int = 2000
    response_body: int = 3000
    stack: int = 4000
    error_message: int = 2000
    error_context: int = 2000
    db_query: int = 2000
    db_params: int = 1000
    factory_body: int = 2000
    user_agent: int = 300


class TelemetrySettings(BaseSettings):
    """Every recognised telemetry setting with its default."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Metrics export
    metrics_url: str = Field(default="", validation_alias="METRICS_URL")
    metrics_api_key: str = Field(default="", validation_alias="METRICS_API_KEY")
    metrics_instance_id: str = Field(
        default="", validation_alias="METRICS_INSTANCE_ID"
    )
    metrics_source: str = Field(
        default="jwt-pizza-service", validation_alias="METRICS_SOURCE"
    )
    metrics_period: float = Field(default=1.0, gt=0, validation_alias="METRICS_PERIOD")
    dedupe_active_users: bool = Field(
        default=True, validation_alias="METRICS_DEDUPE_ACTIVE_USERS"
    )

    # Log shipping
    logging_url: str = Field(default="", validation_alias="LOGGING_URL")
    logging_user_id: str = Field(default="", validation_alias="LOGGING_USER_ID")
    logging_api_key: str = Field(default="", validation_alias="LOGGING_API_KEY")
    logging_source: str = Field(
        default="jwt-pizza-service", validation_alias="LOGGING_SOURCE"
    )
    log_flush_interval: float = Field(
        default=1.0, gt=0, validation_alias="LOGGING_FLUSH_INTERVAL"
    )
    log_max_batch: int = Field(default=500, gt=0, validation_alias="LOGGING_MAX_BATCH")

    # Shared
    environment: str = Field(default="production", validation_alias="APP_ENV")
    push_timeout: float = Field(
        default=5.0, gt=0, validation_alias="TELEMETRY_PUSH_TIMEOUT"
    )
    limits: TruncationLimits = Field(
        default_factory=TruncationLimits, validation_alias="TELEMETRY_LIMITS"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment overrides static configuration.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    def metrics_credentials(self) -> tuple[str, str] | None:
        """Return (user, token) for metrics basic auth, or None if unset."""
        key = self.metrics_api_key.strip()
        if not key:
            return None
        if self.metrics_instance_id:
            return self.metrics_instance_id, key
        user, sep, token = key.partition(":")
        if not sep:
            return None
        return user, token

    def logging_credentials(self) -> tuple[str, str] | None:
        """Return (user, key) for Loki basic auth, or None if unset."""
        if not self.logging_user_id or not self.logging_api_key:
            return None
        return self.logging_user_id, self.logging_api_key

    @property
    def metrics_enabled(self) -> bool:
        return bool(self.metrics_url and self.metrics_credentials())

    @property
    def logging_enabled(self) -> bool:
        return bool(self.logging_url and self.logging_credentials())

    @property
    def is_test_environment(self) -> bool:
        return self.environment.lower() == TEST_ENVIRONMENT


@lru_cache
def get_settings() -> TelemetrySettings:
    """Return process-wide settings, loaded once."""
    return TelemetrySettings()
