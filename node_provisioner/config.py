"""
Node Provisioner Configuration
==============================

Single source of truth for configuration values.
Reads from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .errors import ConfigurationError
from .providers.softlayer import DEFAULT_ENDPOINT

STAGE_NAMES = ("ORDER_APPROVED", "TRANSACTIONS_STARTED", "TRANSACTIONS_ENDED", "LOGIN_READY")


def _env_float(name: str) -> Optional[float]:
    value = os.environ.get(name, "").strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {value!r}")


def _env_bool(name: str) -> Optional[bool]:
    value = os.environ.get(name, "").strip().lower()
    if not value:
        return None
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {value!r}")


@dataclass
class SoftLayerCredentials:
    username: str = ""
    api_key: str = ""
    endpoint: str = DEFAULT_ENDPOINT
    timeout: float = 30.0

    @property
    def is_configured(self) -> bool:
        return bool(self.username and self.api_key)


@dataclass
class ProvisionerConfig:
    """Provisioner configuration."""
    credentials: SoftLayerCredentials = field(default_factory=SoftLayerCredentials)

    # Catalog
    external_disk_ids: str = ""
    disk_controller_id: str = "487"
    disk0_type: str = ""
    cpu_regex: str = "[0-9]+ x ([0-9.]+) GHz Core[s]?"

    # Ordering and lifecycle
    use_hourly_pricing: Optional[bool] = None
    power_off_before_cancel: bool = False

    # Per-stage overrides in seconds, keyed by stage name
    stage_timeouts: Dict[str, float] = field(default_factory=dict)
    stage_intervals: Dict[str, float] = field(default_factory=dict)

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # "json" or "text"

    @property
    def session(self) -> str:
        """Identity used to key cached catalogs."""
        return self.credentials.username

    @classmethod
    def from_env(cls) -> "ProvisionerConfig":
        """
        Load configuration from environment variables.

        Raises:
            ConfigurationError: If a numeric or boolean variable is malformed
        """
        stage_timeouts = {}
        stage_intervals = {}
        for stage in STAGE_NAMES:
            timeout = _env_float(f"PROVISIONER_{stage}_TIMEOUT")
            if timeout is not None:
                stage_timeouts[stage] = timeout
            interval = _env_float(f"PROVISIONER_{stage}_INTERVAL")
            if interval is not None:
                stage_intervals[stage] = interval

        return cls(
            credentials=SoftLayerCredentials(
                username=os.environ.get("SOFTLAYER_USERNAME", ""),
                api_key=os.environ.get("SOFTLAYER_API_KEY", ""),
                endpoint=os.environ.get("SOFTLAYER_ENDPOINT", DEFAULT_ENDPOINT),
                timeout=_env_float("SOFTLAYER_TIMEOUT") or 30.0,
            ),
            external_disk_ids=os.environ.get("PROVISIONER_EXTERNAL_DISK_IDS", ""),
            disk_controller_id=os.environ.get("PROVISIONER_DISK_CONTROLLER_ID", "487"),
            disk0_type=os.environ.get("PROVISIONER_DISK0_TYPE", ""),
            cpu_regex=os.environ.get("PROVISIONER_CPU_REGEX", "[0-9]+ x ([0-9.]+) GHz Core[s]?"),
            use_hourly_pricing=_env_bool("PROVISIONER_HOURLY_PRICING"),
            power_off_before_cancel=_env_bool("PROVISIONER_POWER_OFF_BEFORE_CANCEL") or False,
            stage_timeouts=stage_timeouts,
            stage_intervals=stage_intervals,
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            log_format=os.environ.get("LOG_FORMAT", "json"),
        )

