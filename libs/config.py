"""
Global configuration shared by all pipestack components.

Provides globally shared configuration:
- Kafka cluster settings (host-facing and in-cluster addresses)
- Schema Registry settings
- OTEL settings
- Generic service-level runtime settings

Provisioner-specific settings (gateway, retry knobs, fallback directory)
live in apps/provisioner/src/core/config.py and must NOT be added here.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
DEFAULT_ENV_PATH: Path = PROJECT_ROOT / ".env"


class KafkaConfig(BaseSettings):
    """Kafka configuration for the local stack."""

    bootstrap_servers: str = Field(default="localhost:9092")
    internal_bootstrap_servers: str = Field(
        default="kafka:29092",
        description="Broker address as seen from inside the compose network.",
    )

    input_topic: str = Field(default="input-events")
    output_topic: str = Field(default="output-results")

    partitions: int = Field(default=3, ge=1)
    replication_factor: int = Field(default=1, ge=1)

    model_config = SettingsConfigDict(extra="ignore")


class SchemaRegistryConfig(BaseSettings):
    """Schema Registry endpoints."""

    url: str = Field(default="http://localhost:8082")
    internal_url: str = Field(
        default="http://schema-registry:8082",
        description="Registry URL as seen from inside the compose network.",
    )
    enabled: bool = Field(default=True)

    model_config = SettingsConfigDict(extra="ignore")


class OTELConfig(BaseSettings):
    """OpenTelemetry configuration."""

    service_name: str = Field(default="pipestack-provisioner")
    otlp_endpoint: str = Field(default="http://otel-collector:4317")
    resource_attributes: str = Field(default="deployment.environment=local")
    export_enabled: bool = Field(
        default=False,
        description="Ship logs/traces/metrics over OTLP. Off for plain local runs.",
    )

    model_config = SettingsConfigDict(extra="ignore")


class ServiceConfig(BaseSettings):
    """Generic service-level config."""

    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(extra="ignore")


class AppConfig(BaseSettings):
    """Root global configuration object."""

    kafka: KafkaConfig = Field(default_factory=KafkaConfig)
    schema_registry: SchemaRegistryConfig = Field(default_factory=SchemaRegistryConfig)
    otel: OTELConfig = Field(default_factory=OTELConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    @lru_cache(maxsize=1)
    def load(cls) -> "AppConfig":
        try:
            env_file = str(DEFAULT_ENV_PATH) if DEFAULT_ENV_PATH.exists() else None
            return cls(_env_file=env_file)
        except ValidationError as exc:
            raise RuntimeError("Invalid configuration values.") from exc
