"""
Service-specific configuration for the stack provisioner.

This module ONLY handles:
- Project directory and fallback output location
- SQL gateway endpoint, session naming and retry knobs
- Topic batch retry knobs
- Sink-role key schema settings

It reads from the ROOT .env using namespaced keys:

    PROVISIONER__PROJECT_DIR=./my-pipeline
    PROVISIONER__GATEWAY_URL=http://localhost:8083
    PROVISIONER__SESSION_MAX_ATTEMPTS=6
    PROVISIONER__SINK_KEY_FIELDS='["name"]'

Kafka and Schema Registry endpoints come from the global AppConfig
(KAFKA__BOOTSTRAP_SERVERS, SCHEMA_REGISTRY__URL, ...).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from libs.config import DEFAULT_ENV_PATH


class ProvisionerSettings(BaseSettings):
    """
    Stack provisioner settings.

    Values come from environment variables prefixed with `PROVISIONER__`.
    """

    project_dir: str = Field(
        default=".",
        description="Pipeline project directory holding sql/ and schemas/.",
    )
    fallback_dir: str = Field(
        default="deployed-sql",
        description="Directory (relative to project_dir) for statements that need manual execution.",
    )
    teardown: bool = Field(
        default=False,
        description="Delete the project's topics and subjects instead of provisioning.",
    )

    gateway_url: str = Field(
        default="http://localhost:8083",
        description="Base URL of the SQL gateway REST API.",
    )
    session_name: str = Field(default="pipestack-deploy-session")

    readiness_timeout_sec: float = Field(default=8.0, ge=0.0)
    readiness_interval_sec: float = Field(default=0.75, gt=0.0)
    readiness_request_timeout_sec: float = Field(default=5.0, gt=0.0)

    session_max_attempts: int = Field(default=6, ge=1)
    session_initial_backoff_sec: float = Field(default=1.5, ge=0.0)
    session_backoff_cap_sec: float = Field(default=20.0, ge=0.0)
    session_request_timeout_sec: float = Field(default=10.0, gt=0.0)

    statement_timeout_sec: float = Field(
        default=30.0,
        gt=0.0,
        description="Statement submission timeout; SQL compilation may be slow.",
    )

    topic_max_attempts: int = Field(default=5, ge=1)
    topic_backoff_step_sec: float = Field(default=2.0, ge=0.0)
    admin_timeout_sec: float = Field(default=10.0, gt=0.0)

    registry_timeout_sec: float = Field(default=10.0, gt=0.0)
    sink_role: str = Field(
        default="output",
        description="Schema role that also gets a -key subject (upsert sink).",
    )
    sink_key_fields: List[str] = Field(default_factory=lambda: ["name"])

    model_config = SettingsConfigDict(
        env_prefix="PROVISIONER__",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_provisioner_settings() -> ProvisionerSettings:
    """
    Cached accessor for ProvisionerSettings.

    Returns:
        ProvisionerSettings: validated provisioner configuration.
    """
    try:
        env_file = str(DEFAULT_ENV_PATH) if DEFAULT_ENV_PATH.exists() else None
        return ProvisionerSettings(_env_file=env_file)
    except ValidationError as exc:
        raise RuntimeError("Invalid configuration values.") from exc
