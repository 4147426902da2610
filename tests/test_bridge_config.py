"""Tests for bridge configuration."""

import pytest
from pydantic import ValidationError

from packages.bridge_config import BridgeConfig, load_config


class TestBridgeConfig:
    """Test loading settings from the environment."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BRIDGE_AUDIT_DB_PATH", raising=False)
        monkeypatch.delenv("BRIDGE_AUDIT_DB_RO_PATH", raising=False)

        config = BridgeConfig(_env_file=None)

        assert config.audit_db_path == "data/audit.db"
        assert config.audit_db_ro_path is None
        assert config.log_level == "INFO"
        assert config.json_logs is True
        assert config.back_office_origin == "back-office"
        assert config.provider_origin == "keycloak"
        assert config.provider_timeout_seconds == 5.0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_AUDIT_DB_PATH", "/var/lib/bridge/audit.db")
        monkeypatch.setenv("BRIDGE_AUDIT_DB_RO_PATH", "/var/lib/bridge/replica.db")
        monkeypatch.setenv("BRIDGE_JSON_LOGS", "false")
        monkeypatch.setenv("BRIDGE_PROVIDER_TIMEOUT_SECONDS", "2.5")

        config = load_config()

        assert config.audit_db_path == "/var/lib/bridge/audit.db"
        assert config.audit_db_ro_path == "/var/lib/bridge/replica.db"
        assert config.json_logs is False
        assert config.provider_timeout_seconds == 2.5

    def test_invalid_timeout_rejected(self, monkeypatch):
        monkeypatch.setenv("BRIDGE_PROVIDER_TIMEOUT_SECONDS", "0")

        with pytest.raises(ValidationError):
            BridgeConfig(_env_file=None)

    def test_empty_origin_rejected(self):
        with pytest.raises(ValidationError):
            BridgeConfig(_env_file=None, back_office_origin="")
