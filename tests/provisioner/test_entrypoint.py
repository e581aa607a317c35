"""
Tests for bootstrap wiring and the provisioner entrypoint.
"""

from unittest.mock import patch

import pytest

from apps.provisioner.src import main as entrypoint
from apps.provisioner.src.core.bootstrap import bootstrap
from apps.provisioner.src.core.config import ProvisionerSettings, get_provisioner_settings
from apps.provisioner.src.service.provisioning_service import ProvisioningService
from libs.config import AppConfig


@pytest.fixture
def fresh_config():
    AppConfig.load.cache_clear()
    get_provisioner_settings.cache_clear()
    yield
    AppConfig.load.cache_clear()
    get_provisioner_settings.cache_clear()


class TestBootstrap:
    def test_builds_service(self):
        service = bootstrap(AppConfig(_env_file=None), ProvisionerSettings(_env_file=None))

        assert isinstance(service, ProvisioningService)
        assert service._registrar is not None

    def test_registry_disabled_builds_no_registrar(self):
        app_cfg = AppConfig(_env_file=None)
        app_cfg.schema_registry.enabled = False

        service = bootstrap(app_cfg, ProvisionerSettings(_env_file=None))

        assert service._registrar is None


class TestMain:
    def test_missing_project_exits_non_zero(self, monkeypatch, tmp_path, fresh_config):
        monkeypatch.setenv("PROVISIONER__PROJECT_DIR", str(tmp_path))

        with patch.object(entrypoint, "init_observability"), patch.object(
            ProvisioningService, "install_signal_handlers"
        ):
            assert entrypoint.main() == 1

    def test_teardown_mode(self, monkeypatch, tmp_path, fresh_config):
        (tmp_path / "sql").mkdir()
        (tmp_path / "sql" / "01.sql").write_text("CREATE TABLE t ('topic' = 'x')")
        monkeypatch.setenv("PROVISIONER__PROJECT_DIR", str(tmp_path))
        monkeypatch.setenv("PROVISIONER__TEARDOWN", "true")
        monkeypatch.setenv("SCHEMA_REGISTRY__ENABLED", "false")

        with patch.object(entrypoint, "init_observability"), patch.object(
            ProvisioningService, "install_signal_handlers"
        ), patch.object(ProvisioningService, "teardown") as teardown, patch.object(
            ProvisioningService, "provision"
        ) as provision:
            assert entrypoint.main() == 0

        teardown.assert_called_once()
        statements, schemas = teardown.call_args.args
        assert [s.name for s in statements] == ["01"]
        assert schemas == {}
        provision.assert_not_called()
