"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    CACHE_FILE_NAME,
    DEFAULT_DATA_PATH,
    DEFAULT_LOCAL_PROJECTS_NAMESPACE,
    DEFAULT_MAX_CONCURRENT_RECONCILES,
    DEFAULT_RECONCILIATION_INTERVAL,
    DEFAULT_UPSTREAM_PROBE_TIMEOUT,
)
from .errors import ConfigurationError

LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "WARN", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for a deployment inside the cluster
    running Rancher Manager. Setting both ``CLUSTER_ID`` and
    ``KUBECONFIG_UPSTREAM`` switches the operator to downstream mode.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (TRACE, DEBUG, INFO, WARN, ERROR)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for reconciliation tracing",
    )

    # Deployment mode
    cluster_id: str | None = Field(
        default=None,
        validation_alias="CLUSTER_ID",
        description="ID of the cluster. To be used when deployed inside of a downstream cluster",
    )
    kubeconfig_upstream: Path | None = Field(
        default=None,
        validation_alias="KUBECONFIG_UPSTREAM",
        description="Path to the kubeconfig file used to connect to the upstream cluster",
    )
    local_projects_namespace: str = Field(
        default=DEFAULT_LOCAL_PROJECTS_NAMESPACE,
        validation_alias="LOCAL_PROJECTS_NAMESPACE",
        description="Namespace holding the Projects when running inside the upstream cluster",
    )

    # Fallback cache
    data_path: Path = Field(
        default=Path(DEFAULT_DATA_PATH),
        validation_alias="DATA_PATH",
        description="Directory holding the projects cache (downstream mode only)",
    )

    # Reconciliation behavior
    reconcile_interval_seconds: int = Field(
        default=DEFAULT_RECONCILIATION_INTERVAL,
        validation_alias="RECONCILE_INTERVAL_SECONDS",
        description="Delay before an object is checked again, also used after errors",
        gt=0,
    )
    max_concurrent_reconciles: int = Field(
        default=DEFAULT_MAX_CONCURRENT_RECONCILES,
        validation_alias="MAX_CONCURRENT_RECONCILES",
        description="Maximum number of parallel reconciliations per resource kind",
        gt=0,
    )
    upstream_probe_timeout_seconds: float = Field(
        default=DEFAULT_UPSTREAM_PROBE_TIMEOUT,
        validation_alias="UPSTREAM_PROBE_TIMEOUT_SECONDS",
        description="Timeout of the connectivity probe towards the upstream cluster",
        gt=0,
    )

    # Metrics and observability
    metrics_enabled: bool = Field(
        default=True,
        validation_alias="METRICS_ENABLED",
        description="Serve Prometheus metrics and health endpoints",
    )
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        if value.upper() not in LOG_LEVELS:
            raise ValueError(
                f"unsupported log level '{value}', expected one of {sorted(LOG_LEVELS)}"
            )
        return value.upper()

    @property
    def python_log_level(self) -> str:
        """Log level name understood by the logging module."""
        return {"TRACE": "DEBUG", "WARN": "WARNING"}.get(self.log_level, self.log_level)

    @property
    def is_downstream(self) -> bool:
        """Whether the operator reads Projects from an upstream cluster."""
        return self.cluster_id is not None and self.kubeconfig_upstream is not None

    @property
    def cache_file(self) -> Path:
        """Location of the SQLite database backing the projects cache."""
        return self.data_path / CACHE_FILE_NAME

    def validate_cluster_mode(self) -> None:
        """
        Ensure the downstream settings are either all present or all absent.

        Raises:
            ConfigurationError: If only one of CLUSTER_ID / KUBECONFIG_UPSTREAM is set
        """
        if (self.cluster_id is None) != (self.kubeconfig_upstream is None):
            raise ConfigurationError(
                "CLUSTER_ID and KUBECONFIG_UPSTREAM must be set together",
                user_action=(
                    "Set both variables to run inside a downstream cluster, "
                    "or neither to run inside the upstream cluster"
                ),
            )


# Global settings instance - initialized once at module import
settings = Settings()
