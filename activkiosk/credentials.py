"""Portal credentials for the kiosk login.

Read from USERNAME / PASSWORD in the process environment. An optional
.env file next to activkiosk.toml fills in whatever the environment
does not set, so systemd units can use either EnvironmentFile= or a
repo-local .env.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import structlog

log = structlog.get_logger(__name__)

REQUIRED_KEYS = ("USERNAME", "PASSWORD")


class CredentialsError(ValueError):
    """Raised when USERNAME or PASSWORD is missing or blank."""


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)


def read_env_file(env_path: Path) -> dict[str, str]:
    """Read key=value pairs from a .env file; missing file yields {}."""
    values: dict[str, str] = {}
    if not env_path.exists():
        return values
    with open(env_path) as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            key, sep, value = line.partition("=")
            if not sep:
                continue
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            values[key.strip()] = value
    return values


def load_credentials(
    env: Mapping[str, str] | None = None,
    env_file: Path | None = None,
) -> Credentials:
    """Build Credentials from the environment, falling back to env_file.

    Raises:
        CredentialsError: if either value is missing or blank.
    """
    if env is None:
        env = os.environ

    file_values: dict[str, str] = {}
    if env_file is not None:
        file_values = read_env_file(env_file)
        if file_values:
            log.info("env file loaded", path=str(env_file))

    resolved: dict[str, str] = {}
    for key in REQUIRED_KEYS:
        value = env.get(key) or file_values.get(key, "")
        if not value.strip():
            source = f" or {env_file}" if env_file is not None else ""
            raise CredentialsError(f"Missing {key} in environment{source}")
        resolved[key] = value

    return Credentials(username=resolved["USERNAME"], password=resolved["PASSWORD"])
