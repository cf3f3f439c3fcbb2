"""
Tests for Node Provisioner Configuration
========================================

Tests environment-based config loading.
"""

import os
import pytest
from unittest.mock import patch

from node_provisioner.config import ProvisionerConfig, SoftLayerCredentials
from node_provisioner.errors import ConfigurationError
from node_provisioner.providers.softlayer import DEFAULT_ENDPOINT


class TestProvisionerConfig:
    """Test config loading."""

    def test_defaults(self):
        """Default config has sensible values."""
        config = ProvisionerConfig()
        assert config.disk_controller_id == "487"
        assert config.disk0_type == ""
        assert config.use_hourly_pricing is None
        assert config.power_off_before_cancel is False
        assert config.stage_timeouts == {}
        assert config.log_level == "INFO"
        assert config.log_format == "json"

    def test_from_env(self):
        """Config loads from environment variables."""
        env = {
            "SOFTLAYER_USERNAME": "ops",
            "SOFTLAYER_API_KEY": "secret",
            "SOFTLAYER_TIMEOUT": "12.5",
            "PROVISIONER_EXTERNAL_DISK_IDS": "1267,1268",
            "PROVISIONER_DISK0_TYPE": "LOCAL",
            "PROVISIONER_HOURLY_PRICING": "false",
            "PROVISIONER_POWER_OFF_BEFORE_CANCEL": "yes",
            "LOG_LEVEL": "DEBUG",
        }
        with patch.dict(os.environ, env, clear=False):
            config = ProvisionerConfig.from_env()
            assert config.credentials.username == "ops"
            assert config.credentials.api_key == "secret"
            assert config.credentials.timeout == 12.5
            assert config.external_disk_ids == "1267,1268"
            assert config.disk0_type == "LOCAL"
            assert config.use_hourly_pricing is False
            assert config.power_off_before_cancel is True
            assert config.log_level == "DEBUG"

    def test_endpoint_default(self):
        """The public REST endpoint is used unless overridden."""
        with patch.dict(os.environ, {}, clear=True):
            config = ProvisionerConfig.from_env()
            assert config.credentials.endpoint == DEFAULT_ENDPOINT
            assert config.use_hourly_pricing is None

    def test_stage_overrides_from_env(self):
        """Per-stage timeouts and intervals are read by stage name."""
        env = {
            "PROVISIONER_ORDER_APPROVED_TIMEOUT": "120",
            "PROVISIONER_LOGIN_READY_INTERVAL": "2",
        }
        with patch.dict(os.environ, env, clear=True):
            config = ProvisionerConfig.from_env()
            assert config.stage_timeouts == {"ORDER_APPROVED": 120.0}
            assert config.stage_intervals == {"LOGIN_READY": 2.0}

    def test_malformed_number(self):
        """Non-numeric stage settings are rejected."""
        with patch.dict(os.environ, {"PROVISIONER_TRANSACTIONS_ENDED_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ConfigurationError):
                ProvisionerConfig.from_env()

    def test_malformed_boolean(self):
        """Unrecognized boolean values are rejected."""
        with patch.dict(os.environ, {"PROVISIONER_HOURLY_PRICING": "maybe"}, clear=True):
            with pytest.raises(ConfigurationError):
                ProvisionerConfig.from_env()

    def test_session_is_username(self, test_config):
        """Catalog memoization is keyed by the API user."""
        assert test_config.session == "tester"


class TestSoftLayerCredentials:
    """Test credential validation."""

    def test_not_configured(self):
        """Empty credentials report not configured."""
        assert SoftLayerCredentials().is_configured is False

    def test_configured(self):
        """Username and key report configured."""
        assert SoftLayerCredentials(username="ops", api_key="key").is_configured is True

    def test_partial_not_configured(self):
        """A username without a key is not enough."""
        assert SoftLayerCredentials(username="ops").is_configured is False
