"""Browser profile path resolution for the kiosk.

The profile directory holds cookies, local storage and preferences that
carry the portal session across restarts. Override via USER_DATA_PATH.

    from activkiosk.paths import preferences_file, resolve_user_data_dir
"""
from __future__ import annotations

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# --- Profile paths -----------------------------------------------------------

DEFAULT_USER_DATA_DIR = PROJECT_ROOT / "user-data"

DEFAULT_CONFIG_FILE = "activkiosk.toml"
DEFAULT_ENV_FILE = ".env"

# --- Browser executables -----------------------------------------------------

WINDOWS_EXECUTABLE = r"C:\Program Files (x86)\Microsoft\Edge Dev\Application\msedge.exe"
LINUX_EXECUTABLE = "/usr/bin/chromium-browser"


def resolve_user_data_dir(configured: str | Path | None = None) -> Path:
    """USER_DATA_PATH env var > configured value > ./user-data beside the package."""
    env_val = os.environ.get("USER_DATA_PATH", "").strip()
    if env_val:
        return Path(env_val).expanduser()
    if configured:
        return Path(configured).expanduser()
    return DEFAULT_USER_DATA_DIR


def preferences_file(user_data_dir: Path) -> Path:
    return user_data_dir / "Default" / "Preferences"


def default_executable(platform: str | None = None) -> str:
    """Edge Dev on Windows kiosks, the distro Chromium everywhere else."""
    platform = platform or sys.platform
    if platform == "win32":
        return WINDOWS_EXECUTABLE
    return LINUX_EXECUTABLE
