"""
Configuration management for SNMP client sessions.

Loads configuration from YAML files and environment variables.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml

from .errors import ConfigurationError
from .models import Credential, SnmpVersion


_VERSION_NAMES = {
    "1": SnmpVersion.V1,
    "v1": SnmpVersion.V1,
    "2c": SnmpVersion.V2C,
    "v2c": SnmpVersion.V2C,
    "3": SnmpVersion.V3,
    "v3": SnmpVersion.V3,
}


def parse_version(value) -> SnmpVersion:
    """Accept '1', 'v2c', '3', an int wire value or an SnmpVersion."""
    if isinstance(value, SnmpVersion):
        return value
    if isinstance(value, int):
        try:
            return SnmpVersion(value)
        except ValueError:
            raise ConfigurationError(f"Unknown SNMP version: {value}") from None
    version = _VERSION_NAMES.get(str(value).strip().lower())
    if version is None:
        raise ConfigurationError(f"Unknown SNMP version: {value}")
    return version


@dataclass
class SessionConfig:
    """Target agent and request behaviour."""

    target: str = "127.0.0.1"
    port: int = 161
    trap_port: int = 162
    community: str = "public"
    version: str = "2c"  # 1, 2c or 3
    retries: int = 1
    timeout_seconds: float = 5.0
    source_address: Optional[str] = None
    source_port: Optional[int] = None


@dataclass
class CredentialConfig:
    """SNMPv3 user settings."""

    username: str = ""
    auth_key: str = ""
    priv_key: str = ""
    auth_protocol: str = "SHA"  # MD5 or SHA
    priv_protocol: str = "AES"  # DES or AES

    @property
    def enabled(self) -> bool:
        return bool(self.username)

    def to_credential(self) -> Credential:
        return Credential(
            username=self.username,
            auth_protocol=self.auth_protocol,
            auth_key=self.auth_key,
            priv_protocol=self.priv_protocol,
            priv_key=self.priv_key,
        )


@dataclass
class LoggingConfig:
    """Logging configuration for a session logger."""

    level: str = "INFO"
    name: str = "snmpclient"

    def get_logger(self) -> logging.Logger:
        """Return the named logger with this level applied."""
        log = logging.getLogger(self.name)
        log.setLevel(self.level.upper())
        return log


@dataclass
class Config:
    """Main configuration container."""

    session: SessionConfig = field(default_factory=SessionConfig)
    credential: CredentialConfig = field(default_factory=CredentialConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def version(self) -> SnmpVersion:
        return parse_version(self.session.version)

    @classmethod
    def from_yaml(cls, path: str) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path)
        if not config_path.exists():
            config = cls()
            config._apply_env_overrides()
            return config

        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict) -> "Config":
        """Create config from dictionary."""
        config = cls()

        try:
            if "session" in data:
                config.session = SessionConfig(**data["session"])

            if "credential" in data:
                config.credential = CredentialConfig(**data["credential"])

            if "logging" in data:
                config.logging = LoggingConfig(**data["logging"])
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        # Override with environment variables
        config._apply_env_overrides()

        return config

    def _apply_env_overrides(self):
        """Apply environment variable overrides."""
        # Session settings
        if os.getenv("SNMP_TARGET"):
            self.session.target = os.getenv("SNMP_TARGET")
        if os.getenv("SNMP_PORT"):
            self.session.port = int(os.getenv("SNMP_PORT"))
        if os.getenv("SNMP_COMMUNITY"):
            self.session.community = os.getenv("SNMP_COMMUNITY")
        if os.getenv("SNMP_VERSION"):
            self.session.version = os.getenv("SNMP_VERSION")
        if os.getenv("SNMP_RETRIES"):
            self.session.retries = int(os.getenv("SNMP_RETRIES"))
        if os.getenv("SNMP_TIMEOUT"):
            self.session.timeout_seconds = float(os.getenv("SNMP_TIMEOUT"))

        # V3 settings
        if os.getenv("SNMP_V3_USER"):
            self.session.version = "3"
            self.credential.username = os.getenv("SNMP_V3_USER")
        if os.getenv("SNMP_V3_AUTH_KEY"):
            self.credential.auth_key = os.getenv("SNMP_V3_AUTH_KEY")
        if os.getenv("SNMP_V3_PRIV_KEY"):
            self.credential.priv_key = os.getenv("SNMP_V3_PRIV_KEY")

        # Logging
        if os.getenv("LOG_LEVEL"):
            self.logging.level = os.getenv("LOG_LEVEL")

    def to_yaml(self, path: str):
        """Save configuration to YAML file. Keys are never written."""
        data = {
            "session": {
                "target": self.session.target,
                "port": self.session.port,
                "trap_port": self.session.trap_port,
                "community": self.session.community,
                "version": self.session.version,
                "retries": self.session.retries,
                "timeout_seconds": self.session.timeout_seconds,
                "source_address": self.session.source_address,
                "source_port": self.session.source_port,
            },
            "credential": {
                "username": self.credential.username,
                "auth_protocol": self.credential.auth_protocol,
                "priv_protocol": self.credential.priv_protocol,
            },
            "logging": {
                "level": self.logging.level,
                "name": self.logging.name,
            },
        }

        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    # Check common locations
    candidates = [
        Path("config/snmpclient.yaml"),
        Path("snmpclient.yaml"),
        Path.home() / ".snmpclient" / "config.yaml",
        Path("/etc/snmpclient/config.yaml"),
    ]

    for path in candidates:
        if path.exists():
            return str(path)

    # Return the first candidate as default
    return str(candidates[0])
