"""
Unit tests for warehouse configuration.
"""

import importlib
import os
from unittest.mock import MagicMock, patch

import pytest

import salesdwh.config as config_module

CREDENTIALS = {"DWH_USER": "loader", "DWH_PASSWORD": "secret"}


def _reload_config():
    """
    Reload the salesdwh.config module to ensure environment changes are picked up.
    """
    importlib.reload(config_module)
    return config_module.Config


@pytest.fixture(autouse=True)
def _restore_config():
    yield
    importlib.reload(config_module)


class TestConfig:
    """Test configuration validation and connection details."""

    @patch.dict(os.environ, CREDENTIALS, clear=True)
    def test_defaults(self):
        """Test defaults for an environment with only credentials."""
        Config = _reload_config()
        assert Config.DWH_HOST == "localhost"
        assert Config.DWH_DATABASE == "salesdwh"
        assert Config.get_max_errors() == 10
        assert Config.LOG_TO_TABLE is True
        assert Config.schemas() == ("bronze", "silver", "gold")

    @patch.dict(os.environ, {**CREDENTIALS, "DWH_PORT": "6543", "DWH_DATABASE": "dwh_test"}, clear=True)
    def test_get_connection_details(self):
        """Test connection parameters built from the environment."""
        Config = _reload_config()
        details = Config.get_connection_details()
        assert details == {
            "host": "localhost",
            "port": 6543,
            "dbname": "dwh_test",
            "user": "loader",
            "password": "secret",
            "connect_timeout": 10,
        }
        assert Config.get_connection_details("postgres")["dbname"] == "postgres"

    @patch.dict(os.environ, {"DWH_SECRET_ARN": "arn:aws:secretsmanager:us-east-1:123456789012:secret:dwh"}, clear=True)
    def test_credentials_from_secrets_manager(self):
        """Test user and password fall back to the Secrets Manager secret."""
        Config = _reload_config()
        client = MagicMock()
        client.get_secret_value.return_value = {
            "SecretString": '{"username": "svc_loader", "password": "from-secret"}'
        }
        with patch("boto3.client", return_value=client):
            details = Config.get_connection_details()

        assert details["user"] == "svc_loader"
        assert details["password"] == "from-secret"
        Config.validate()

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_credentials(self):
        """Test connection details without credentials raise."""
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.get_connection_details()
        assert "DWH_USER" in str(exc_info.value)

    @patch.dict(os.environ, CREDENTIALS, clear=True)
    def test_validate_config_success(self):
        """Test successful config validation."""
        # Should not raise any exceptions
        Config = _reload_config()
        Config.validate()

    @patch.dict(os.environ, {}, clear=True)
    def test_validate_config_missing_required(self):
        """Test config validation with missing required variables."""
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.validate()

        error_msg = str(exc_info.value)
        assert "DWH_USER" in error_msg
        assert "DWH_PASSWORD" in error_msg

    @patch.dict(os.environ, {**CREDENTIALS, "DWH_MAX_ERRORS": "-3"}, clear=True)
    def test_validate_config_negative_max_errors(self):
        """Test config validation rejects a negative malformed-row threshold."""
        Config = _reload_config()
        with pytest.raises(ValueError) as exc_info:
            Config.validate()

        assert "DWH_MAX_ERRORS must not be negative" in str(exc_info.value)

    @patch.dict(os.environ, {**CREDENTIALS, "DWH_MAX_ERRORS": "many"}, clear=True)
    def test_validate_config_non_numeric_max_errors(self):
        """Test config validation rejects a non-numeric threshold."""
        Config = _reload_config()
        with pytest.raises(ValueError):
            Config.validate()

    @pytest.mark.parametrize("value,expected", [("false", False), ("0", False), ("yes", True), ("", True)])
    def test_log_to_table_flag(self, value, expected):
        """Test DWH_LOG_TO_TABLE parsing."""
        with patch.dict(os.environ, {"DWH_LOG_TO_TABLE": value}, clear=True):
            Config = _reload_config()
        assert Config.LOG_TO_TABLE is expected
