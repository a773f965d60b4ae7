"""olminstall settings.

Uses Pydantic Settings for type-safe configuration management
with support for environment variables and .env files.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_OPERATOR_GROUP_NAME = "operator-sdk-og"
DEFAULT_INDEX_IMAGE = "quay.io/operator-framework/upstream-opm-builder:latest"


class KubernetesSettings(BaseSettings):
    """Kubernetes connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OLMINSTALL_K8S_",
        extra="ignore",
    )

    in_cluster: bool = Field(
        default=False,
        description="Whether running inside a Kubernetes cluster",
    )
    kubeconfig: str | None = Field(
        default=None,
        description="Path to kubeconfig file (if not in-cluster)",
    )
    context: str | None = Field(
        default=None,
        description="Kubernetes context to use",
    )
    namespace: str | None = Field(
        default=None,
        description="Namespace to install the operator into (None = kubeconfig default)",
    )


class InstallSettings(BaseSettings):
    """Installation pipeline tuning."""

    model_config = SettingsConfigDict(
        env_prefix="OLMINSTALL_INSTALL_",
        extra="ignore",
    )

    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        description="Overall deadline for one installation",
    )
    poll_interval_seconds: float = Field(
        default=0.2,
        gt=0,
        description="Interval between readiness checks",
    )
    approval_retry_attempts: int = Field(
        default=5,
        ge=1,
        description="Attempts to approve an install plan on resource version conflicts",
    )
    approval_retry_initial_backoff_seconds: float = Field(
        default=0.01,
        ge=0,
        description="First backoff between install plan approval attempts",
    )
    approval_retry_max_backoff_seconds: float = Field(
        default=1.0,
        ge=0,
        description="Upper bound for the approval backoff",
    )
    operator_group_name: str = Field(
        default=DEFAULT_OPERATOR_GROUP_NAME,
        min_length=1,
        description="Name given to OperatorGroups created by olminstall",
    )
    wait_for_catalog_source: bool = Field(
        default=False,
        description="Wait for the CatalogSource connection to report READY before subscribing",
    )
    default_index_image: str = Field(
        default=DEFAULT_INDEX_IMAGE,
        description="Index image served by the CatalogSource when none is given",
    )

    @field_validator("approval_retry_max_backoff_seconds", mode="after")
    @classmethod
    def validate_max_backoff(cls, v: float, info) -> float:
        """Ensure the backoff ceiling is not below the first backoff."""
        initial = info.data.get("approval_retry_initial_backoff_seconds", 0.0)
        if v < initial:
            msg = "approval_retry_max_backoff_seconds must be >= approval_retry_initial_backoff_seconds"
            raise ValueError(msg)
        return v


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OLMINSTALL_OBSERVABILITY_",
        extra="ignore",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "console"] = Field(
        default="console",
        description="Log output format",
    )

    metrics_enabled: bool = Field(
        default=False,
        description="Expose Prometheus metrics while installing",
    )
    metrics_port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Port for metrics endpoint",
    )


class Settings(BaseSettings):
    """Main olminstall configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OLMINSTALL_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )

    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    install: InstallSettings = Field(default_factory=InstallSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Use this function to access settings throughout the application.
    Settings are cached after first load.

    Returns:
        Settings: The application settings instance.
    """
    return Settings()


def reload_settings() -> Settings:
    """Force reload settings (clears cache).

    Returns:
        Settings: Fresh settings instance.
    """
    get_settings.cache_clear()
    return get_settings()
