import pytest

from apps.provisioner.src.core import config as provisioner_config
from apps.provisioner.src.core.config import ProvisionerSettings, get_provisioner_settings
from libs.config import AppConfig


class TestAppConfig:
    def test_defaults(self):
        config = AppConfig(_env_file=None)

        assert config.kafka.bootstrap_servers == "localhost:9092"
        assert config.kafka.input_topic == "input-events"
        assert config.kafka.output_topic == "output-results"
        assert config.schema_registry.url == "http://localhost:8082"
        assert config.schema_registry.enabled is True
        assert config.otel.export_enabled is False

    def test_nested_env_override(self, monkeypatch):
        monkeypatch.setenv("KAFKA__BOOTSTRAP_SERVERS", "broker:19092")
        monkeypatch.setenv("SCHEMA_REGISTRY__ENABLED", "false")

        config = AppConfig(_env_file=None)

        assert config.kafka.bootstrap_servers == "broker:19092"
        assert config.schema_registry.enabled is False


class TestProvisionerSettings:
    def test_defaults_match_retry_budgets(self):
        settings = ProvisionerSettings(_env_file=None)

        assert settings.readiness_timeout_sec == 8.0
        assert settings.readiness_interval_sec == 0.75
        assert settings.session_max_attempts == 6
        assert settings.session_initial_backoff_sec == 1.5
        assert settings.session_backoff_cap_sec == 20.0
        assert settings.topic_max_attempts == 5
        assert settings.topic_backoff_step_sec == 2.0
        assert settings.fallback_dir == "deployed-sql"
        assert settings.sink_key_fields == ["name"]

    def test_prefixed_env_override(self, monkeypatch):
        monkeypatch.setenv("PROVISIONER__SESSION_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("PROVISIONER__SINK_KEY_FIELDS", '["id", "tenant"]')
        monkeypatch.setenv("PROVISIONER__TEARDOWN", "true")

        settings = ProvisionerSettings(_env_file=None)

        assert settings.session_max_attempts == 3
        assert settings.sink_key_fields == ["id", "tenant"]
        assert settings.teardown is True

    def test_rejects_zero_attempts(self, monkeypatch):
        monkeypatch.setenv("PROVISIONER__TOPIC_MAX_ATTEMPTS", "0")

        with pytest.raises(ValueError):
            ProvisionerSettings(_env_file=None)

    def test_accessor_reads_root_env_file(self, monkeypatch, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("PROVISIONER__GATEWAY_URL=http://flink-gateway:8083\nPROVISIONER__TOPIC_MAX_ATTEMPTS=2\n")
        monkeypatch.setattr(provisioner_config, "DEFAULT_ENV_PATH", env_file)
        monkeypatch.delenv("PROVISIONER__GATEWAY_URL", raising=False)
        monkeypatch.delenv("PROVISIONER__TOPIC_MAX_ATTEMPTS", raising=False)
        get_provisioner_settings.cache_clear()
        try:
            settings = get_provisioner_settings()
        finally:
            get_provisioner_settings.cache_clear()

        assert settings.gateway_url == "http://flink-gateway:8083"
        assert settings.topic_max_attempts == 2
