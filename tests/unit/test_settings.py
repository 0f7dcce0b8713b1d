"""
Tests for environment configuration and the entry point.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest
from docker.errors import DockerException

from dockturn import main
from dockturn.config.settings import AppConfig, _env_bool, _env_list, setup_logging
from dockturn.session import Progress
from tests.test_helpers import make_container


@pytest.mark.unit
class TestEnvParsing:

    @pytest.mark.parametrize("raw,expected", [
        ("true", True),
        ("1", True),
        ("Yes", True),
        ("false", False),
        ("0", False),
        ("", False),
    ])
    def test_env_bool(self, monkeypatch, raw, expected):
        monkeypatch.setenv("DOCKTURN_TEST_FLAG", raw)
        assert _env_bool("DOCKTURN_TEST_FLAG") is expected

    def test_env_bool_default(self, monkeypatch):
        monkeypatch.delenv("DOCKTURN_TEST_FLAG", raising=False)
        assert _env_bool("DOCKTURN_TEST_FLAG", default=True) is True

    def test_env_list(self, monkeypatch):
        monkeypatch.setenv("DOCKTURN_TEST_LIST", "web, db,,cache ")
        assert _env_list("DOCKTURN_TEST_LIST") == ["web", "db", "cache"]


@pytest.mark.unit
class TestAppConfig:

    def test_non_positive_timeout_rejected(self, monkeypatch):
        monkeypatch.setattr(AppConfig, 'TIMEOUT', 0)

        with pytest.raises(ValueError):
            AppConfig.validate()

    def test_update_params_reflect_config(self, monkeypatch):
        monkeypatch.setattr(AppConfig, 'ROLLING_RESTART', True)
        monkeypatch.setattr(AppConfig, 'CLEANUP', True)
        monkeypatch.setattr(AppConfig, 'TIMEOUT', 30.0)
        monkeypatch.setattr(AppConfig, 'CONTAINER_NAMES', ['web'])

        params = AppConfig.update_params()

        assert params.rolling_restart is True
        assert params.cleanup is True
        assert params.timeout == 30.0
        assert params.filter(make_container("web")) is True
        assert params.filter(make_container("db")) is False

    def test_client_options_reflect_config(self, monkeypatch):
        monkeypatch.setattr(AppConfig, 'NO_PULL', True)
        monkeypatch.setattr(AppConfig, 'INCLUDE_STOPPED', True)

        options = AppConfig.client_options()

        assert options.pull_images is False
        assert options.include_stopped is True

    def test_setup_logging_replaces_handlers(self):
        root = logging.getLogger()
        saved = root.handlers[:]
        try:
            setup_logging(level="debug")
            setup_logging(level="warning")

            assert len(root.handlers) == 1
            assert root.level == logging.WARNING
        finally:
            for handler in root.handlers[:]:
                root.removeHandler(handler)
            for handler in saved:
                root.addHandler(handler)


@pytest.mark.unit
class TestRunOnce:

    def test_connection_failure_exits_non_zero(self):
        with patch.object(main.RuntimeClient, 'from_env', side_effect=DockerException("no socket")):
            assert main.run_once() == 1

    def test_successful_run(self):
        report = Progress().report()
        with patch.object(main.RuntimeClient, 'from_env', return_value=MagicMock()), \
                patch.object(main, 'cleanup_previous_instances') as cleanup, \
                patch.object(main, 'update', return_value=report) as run_update:
            assert main.run_once() == 0

        cleanup.assert_called_once()
        run_update.assert_called_once()

    def test_previous_instance_errors_do_not_abort(self):
        report = Progress().report()
        with patch.object(main.RuntimeClient, 'from_env', return_value=MagicMock()), \
                patch.object(main, 'cleanup_previous_instances', side_effect=RuntimeError("stuck")), \
                patch.object(main, 'update', return_value=report):
            assert main.run_once() == 0

    def test_aborted_update_exits_non_zero(self):
        with patch.object(main.RuntimeClient, 'from_env', return_value=MagicMock()), \
                patch.object(main, 'cleanup_previous_instances'), \
                patch.object(main, 'update', side_effect=DockerException("daemon gone")):
            assert main.run_once() == 1
