"""Centralized webhook settings using pydantic-settings.

This module provides a single source of truth for all webhook configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation. Command-line flags parsed in
``overcommit_webhook.main`` override these values at start-up.
"""

import math

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from overcommit_webhook.constants import (
    DEFAULT_CERT_DIR,
    DEFAULT_CPU_OVERCOMMIT_RATIO,
    DEFAULT_MEMORY_OVERCOMMIT_RATIO,
    DEFAULT_NAMESPACE,
    DEFAULT_SERVICE_NAME,
    DEFAULT_WEBHOOK_PORT,
    WEBHOOK_CONFIGURATION_NAME,
    WEBHOOK_NAME,
)
from overcommit_webhook.overcommit.transform import OvercommitPolicy


class Settings(BaseSettings):
    """Webhook configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Overcommit policy
    cpu_overcommit_ratio: float = Field(
        default=DEFAULT_CPU_OVERCOMMIT_RATIO,
        validation_alias="CPU_OVERCOMMIT_RATIO",
        description="CPU overcommit ratio (>1 shrinks requests, <=0 disables)",
    )
    memory_overcommit_ratio: float = Field(
        default=DEFAULT_MEMORY_OVERCOMMIT_RATIO,
        validation_alias="MEMORY_OVERCOMMIT_RATIO",
        description="Memory overcommit ratio (>1 shrinks requests, <=0 disables)",
    )
    target_namespaces: str = Field(
        default="",
        validation_alias="TARGET_NAMESPACES",
        description="Comma-separated namespaces to mutate (empty = all namespaces)",
    )

    # Webhook server
    host: str = Field(
        default="0.0.0.0",
        validation_alias="WEBHOOK_HOST",
        description="Host address to bind the webhook server",
    )
    port: int = Field(
        default=DEFAULT_WEBHOOK_PORT,
        validation_alias="WEBHOOK_PORT",
        description="HTTPS port for the admission webhook",
    )

    # Certificates
    cert_dir: str = Field(
        default=DEFAULT_CERT_DIR,
        validation_alias="CERT_DIR",
        description="Directory holding tls.crt and tls.key",
    )
    generate_certificates: bool = Field(
        default=True,
        validation_alias="GENERATE_CERTIFICATES",
        description="Generate a self-signed serving certificate at start-up",
    )

    # Service identity (used for certificate names and registration)
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME,
        validation_alias="SERVICE_NAME",
        description="Name of the Service fronting the webhook",
    )
    pod_namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        validation_alias="POD_NAMESPACE",
        description="Namespace the webhook runs in (from the downward API)",
    )

    # Registration
    register_webhook: bool = Field(
        default=True,
        validation_alias="REGISTER_WEBHOOK",
        description="Create or update the MutatingWebhookConfiguration at start-up",
    )
    webhook_configuration_name: str = Field(
        default=WEBHOOK_CONFIGURATION_NAME,
        validation_alias="WEBHOOK_CONFIGURATION_NAME",
        description="Name of the MutatingWebhookConfiguration object",
    )
    webhook_name: str = Field(
        default=WEBHOOK_NAME,
        validation_alias="WEBHOOK_NAME",
        description="Fully qualified name of the webhook entry",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )
    log_health_checks: bool = Field(
        default=False,
        validation_alias="LOG_HEALTH_CHECKS",
        description="Log health check requests",
    )

    # Metrics and observability
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

    # Tracing
    tracing_enabled: bool = Field(
        default=False,
        validation_alias="OTEL_TRACING_ENABLED",
        description="Enable OpenTelemetry tracing",
    )
    otel_endpoint: str = Field(
        default="http://localhost:4317",
        validation_alias="OTEL_EXPORTER_OTLP_ENDPOINT",
        description="OTLP collector endpoint (gRPC)",
    )
    tracing_sample_rate: float = Field(
        default=1.0,
        validation_alias="OTEL_SAMPLE_RATE",
        description="Fraction of admission reviews traced (0.0-1.0)",
        ge=0.0,
        le=1.0,
    )

    @field_validator("cpu_overcommit_ratio", "memory_overcommit_ratio")
    @classmethod
    def validate_ratio(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Overcommit ratio must be a finite number")
        return v

    @property
    def watched_namespaces(self) -> list[str]:
        """Parse target namespaces from comma-separated string.

        Returns:
            List of namespace names, empty to mutate pods in all namespaces
        """
        return [ns.strip() for ns in self.target_namespaces.split(",") if ns.strip()]

    def overcommit_policy(self) -> OvercommitPolicy:
        """Build the immutable policy handed to the admission handler."""
        return OvercommitPolicy(
            cpu_ratio=self.cpu_overcommit_ratio,
            memory_ratio=self.memory_overcommit_ratio,
        )


# Global settings instance - initialized once at module import
settings = Settings()
