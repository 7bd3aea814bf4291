"""
PinKeeper configuration.

Values come from environment variables (a `.env` file in the working
directory is loaded first). Unset variables fall back to the defaults below.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from pinkeeper.core.errors import ConfigError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def parse_log_level(value: str) -> str:
    """Normalize a log level name, accepting any case and WARN."""
    level = str(value).strip().upper()
    if level == "WARN":
        level = "WARNING"
    if level not in LOG_LEVELS:
        raise ValueError(f"unknown log level {value!r}, expected one of {', '.join(LOG_LEVELS)}")
    return level


class PinKeeperConfig(BaseModel):
    """Runtime configuration."""

    # IPFS node
    ipfs_host: Optional[str] = Field(
        default=None,
        description="Remote IPFS API host; unset to run a local node (IPFS_HOST)"
    )
    ipfs_port: int = Field(default=5001, ge=1, le=65535, description="Remote IPFS API port")
    ipfs_repo_path: Path = Field(
        default=Path.home() / "PinKeeperIPFS",
        description="Repo directory of the local node"
    )
    ipfs_binary: str = Field(default="ipfs", description="ipfs executable for the local node")
    ipfs_api_port: int = Field(default=5001, ge=1, le=65535, description="Local node API port")
    ipfs_timeout: int = Field(default=60, gt=0, description="Timeout for short IPFS calls (s)")
    pin_timeout: Optional[float] = Field(
        default=None, gt=0, description="Timeout for pin.add (s), unset for unbounded"
    )

    # DNSLink
    checkpoints_hostname: str = Field(
        default="ipfs.moncoin.io", min_length=1, description="Hostname holding the DNSLink record"
    )
    dns_timeout: float = Field(default=10.0, gt=0, description="DNS query lifetime (s)")

    # Cadence
    reconcile_interval_minutes: float = Field(default=60, gt=0, description="Reconciliation period")
    readiness_poll_seconds: float = Field(default=5, gt=0, description="Swarm readiness poll interval")
    test_maximum_minutes: float = Field(default=15, gt=0, description="Diagnostic mode time budget")

    log_level: str = Field(default="DEBUG", description="Minimum log level")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        return parse_log_level(value)

    @property
    def use_remote_node(self) -> bool:
        return bool(self.ipfs_host)

    @property
    def reconcile_interval_seconds(self) -> float:
        return self.reconcile_interval_minutes * 60

    @property
    def test_maximum_seconds(self) -> float:
        return self.test_maximum_minutes * 60

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PinKeeperConfig":
        """
        Build configuration from environment variables.

        Args:
            environ: Mapping to read instead of os.environ (no .env loading)

        Returns:
            Validated configuration

        Raises:
            ConfigError: if a value is malformed
        """
        if environ is None:
            load_dotenv()
            environ = os.environ

        values = {}
        for field_name in cls.model_fields:
            raw = environ.get(field_name.upper())
            if raw is not None and raw.strip() != "":
                values[field_name] = raw.strip()

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
