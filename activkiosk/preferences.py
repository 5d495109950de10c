"""Patch the browser profile's Preferences file before launch.

Chromium keeps per-profile settings in <user_data_dir>/Default/Preferences.
On a kiosk the password-manager bubble and the "restore pages?" banner
cover the dashboard, so both are switched off here. The patch merges into
the existing document; unrelated keys are preserved.
"""
from __future__ import annotations

import json
from pathlib import Path

import structlog

from activkiosk.paths import preferences_file

log = structlog.get_logger(__name__)

PROFILE_OVERRIDES = {
    "password_manager_leak_detection": False,
    "password_manager_enabled": False,
}

ROOT_OVERRIDES = {
    "credentials_enable_service": False,
    "credentials_enable_autosignin": False,
}

SESSION_OVERRIDES = {
    "restore_on_startup": 0,
    "restore_on_startup_urls": [],
}


def _read_preferences(path: Path) -> dict | None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        log.error("failed to read preferences", path=str(path), error=str(e))
        return None
    if not isinstance(data, dict):
        log.error("preferences is not a JSON object", path=str(path))
        return None
    return data


def apply_overrides(prefs: dict) -> dict:
    """Merge kiosk overrides into a parsed Preferences document in place."""
    profile = prefs.get("profile")
    if not isinstance(profile, dict):
        profile = prefs["profile"] = {}
    profile.update(PROFILE_OVERRIDES)

    prefs.update(ROOT_OVERRIDES)

    session = prefs.get("session")
    if not isinstance(session, dict):
        session = prefs["session"] = {}
    session["restore_on_startup"] = SESSION_OVERRIDES["restore_on_startup"]
    session["restore_on_startup_urls"] = []
    return prefs


def patch_preferences(user_data_dir: Path) -> bool:
    """Disable password prompts and session restore in the profile.

    Returns True when the file was rewritten. A missing or unreadable file
    is logged and skipped; it never blocks the login.
    """
    try:
        user_data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log.error("cannot create profile directory", path=str(user_data_dir), error=str(e))
        return False

    path = preferences_file(user_data_dir)
    if not path.exists():
        # First run: Chromium writes the file on its first launch.
        log.warning("preferences file does not exist, skipping patch", path=str(path))
        return False

    prefs = _read_preferences(path)
    if prefs is None:
        return False

    apply_overrides(prefs)

    try:
        path.write_text(json.dumps(prefs, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        log.error("failed to write preferences", path=str(path), error=str(e))
        return False

    log.info("preferences patched", path=str(path))
    return True
