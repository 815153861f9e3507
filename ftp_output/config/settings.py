"""Output settings for FTP File Output.

Provides the OutputSettings dataclass, its defaults table, and a JSON
loader. Settings are immutable once built; OutputSettings.from_dict() is
the only validating entry point.
"""

import json
import logging
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Any, Optional

from ftp_output.ftp.remote_path import DEFAULT_SEPARATOR, DEFAULT_SEQUENCE_FORMAT
from ftp_output.utils.validators import (
    validate_file_path,
    validate_host,
    validate_path_prefix,
    validate_port,
    validate_retry_count,
    validate_sequence_format,
)

logger = logging.getLogger("ftp_output.settings")


FTP_DEFAULT_PORT = 21
FTPES_DEFAULT_PORT = 21
FTPS_DEFAULT_PORT = 990

REQUIRED_FIELDS = ("host", "path_prefix", "file_ext")

# Optional settings and their defaults
DEFAULTS: dict[str, Any] = {
    "port": None,
    "user": None,
    "password": None,
    "passive_mode": True,
    "ascii_mode": False,
    "ssl": False,
    "ssl_explicit": True,
    "ssl_verify": True,
    "ssl_verify_hostname": True,
    "ssl_trusted_ca_cert_file": None,
    "ssl_trusted_ca_cert_data": None,
    "compression": True,
    "sequence_format": DEFAULT_SEQUENCE_FORMAT,
    "max_connection_retry": 10,
    "directory_separator": DEFAULT_SEPARATOR,
    "temp_dir": None,
}


@dataclass(frozen=True)
class OutputSettings:
    """Connection and naming settings for one output job."""

    # FTP connection
    host: str
    path_prefix: str
    file_ext: str
    port: Optional[int] = DEFAULTS["port"]
    user: Optional[str] = DEFAULTS["user"]
    password: Optional[str] = DEFAULTS["password"]
    passive_mode: bool = DEFAULTS["passive_mode"]
    ascii_mode: bool = DEFAULTS["ascii_mode"]

    # TLS
    ssl: bool = DEFAULTS["ssl"]
    ssl_explicit: bool = DEFAULTS["ssl_explicit"]
    ssl_verify: bool = DEFAULTS["ssl_verify"]
    ssl_verify_hostname: bool = DEFAULTS["ssl_verify_hostname"]
    ssl_trusted_ca_cert_file: Optional[str] = DEFAULTS["ssl_trusted_ca_cert_file"]
    ssl_trusted_ca_cert_data: Optional[str] = DEFAULTS["ssl_trusted_ca_cert_data"]

    # Transfer
    compression: bool = DEFAULTS["compression"]
    sequence_format: str = DEFAULTS["sequence_format"]
    max_connection_retry: int = DEFAULTS["max_connection_retry"]
    directory_separator: str = DEFAULTS["directory_separator"]
    temp_dir: Optional[str] = DEFAULTS["temp_dir"]

    def __repr__(self) -> str:
        password = "[REDACTED]" if self.password else None
        return (
            f"OutputSettings(host={self.host!r}, port={self.port!r}, "
            f"user={self.user!r}, password={password!r}, "
            f"path_prefix={self.path_prefix!r})"
        )

    @property
    def security_mode(self) -> str:
        """One of "ftp", "ftpes" (explicit TLS) or "ftps" (implicit TLS)."""
        if not self.ssl:
            return "ftp"
        return "ftpes" if self.ssl_explicit else "ftps"

    @property
    def effective_port(self) -> int:
        """Configured port, or the default port of the security mode."""
        if self.port is not None:
            return self.port
        if self.security_mode == "ftps":
            return FTPS_DEFAULT_PORT
        if self.security_mode == "ftpes":
            return FTPES_DEFAULT_PORT
        return FTP_DEFAULT_PORT

    def with_password(self, password: Optional[str]) -> "OutputSettings":
        """Return a copy with the password replaced."""
        return replace(self, password=password)

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "OutputSettings":
        """
        Build settings from a dictionary, applying defaults.

        Unknown keys are ignored.

        Args:
            data: Raw settings values

        Returns:
            Validated OutputSettings

        Raises:
            ValueError: If a required key is missing or a value is invalid
        """
        valid_fields = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - valid_fields)
        if unknown:
            logger.debug(f"Ignoring unknown settings: {', '.join(unknown)}")

        missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValueError(f"Missing required settings: {', '.join(missing)}")

        values = dict(DEFAULTS)
        values.update({k: v for k, v in data.items() if k in valid_fields})

        if values["port"] is not None:
            is_valid, error = validate_port(values["port"])
            if not is_valid:
                raise ValueError(error)
            values["port"] = int(values["port"])

        checks = [
            validate_host(values["host"]),
            validate_path_prefix(values["path_prefix"]),
            validate_sequence_format(values["sequence_format"]),
            validate_retry_count(values["max_connection_retry"]),
        ]
        if values["ssl_trusted_ca_cert_file"]:
            checks.append(validate_file_path(Path(values["ssl_trusted_ca_cert_file"])))
        for is_valid, error in checks:
            if not is_valid:
                raise ValueError(error)

        if not values["directory_separator"]:
            raise ValueError("Directory separator must not be empty")

        values["host"] = values["host"].strip()
        return cls(**values)


def load_settings(path: Path) -> OutputSettings:
    """
    Load settings from a JSON file.

    Args:
        path: Path to a JSON object of settings

    Returns:
        Validated OutputSettings

    Raises:
        ValueError: If the file is not valid JSON or holds invalid settings
        OSError: If the file cannot be read
    """
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a JSON object")

    return OutputSettings.from_dict(data)
