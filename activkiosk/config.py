"""Load and provide activkiosk configuration from activkiosk.toml."""
from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from enum import Enum

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomllib  # type: ignore[import]
    except ModuleNotFoundError:
        import tomli as tomllib  # type: ignore[no-redef]
from pathlib import Path

from activkiosk.paths import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_ENV_FILE,
    default_executable,
    resolve_user_data_dir,
)

_PORTAL = "https://activ.rfs.nsw.gov.au"


class RefreshFailurePolicy(str, Enum):
    """What the refresher does when a page reload raises."""

    SKIP = "skip"
    RETRY = "retry"
    EXIT = "exit"


@dataclass(frozen=True)
class SiteConfig:
    """URLs, selectors and wait budgets for the ACTIV login flow.

    Selectors are a contract with the external site. Timeouts are in
    milliseconds, as Playwright expects them.
    """

    login_url: str = f"{_PORTAL}/webapp/loginu"
    webapp_url: str = f"{_PORTAL}/webapp"
    dashboard_url: str = f"{_PORTAL}/webapp/dashboard"

    username: str = "#input28"
    password: str = "#input60"
    remember_me: str = 'label[for="input36"]'
    next_button: str = 'input.button.button-primary[type="submit"][value="Next"]'
    verify_button: str = 'input.button.button-primary[type="submit"][value="Verify"]'

    username_timeout: int = 10_000
    next_timeout: int = 5_000
    password_timeout: int = 10_000
    verify_timeout: int = 5_000
    navigation_timeout: int = 30_000

    @property
    def authenticated_prefixes(self) -> tuple[str, str]:
        return (self.dashboard_url, self.webapp_url)


@dataclass(frozen=True)
class RetryConfig:
    login_attempts: int = 5
    navigation_attempts: int = 5
    delay: float = 5.0  # seconds between failed attempts


@dataclass(frozen=True)
class RefreshConfig:
    interval: float = 6 * 3600.0  # seconds
    zoom: float = 1.25
    on_failure: RefreshFailurePolicy = RefreshFailurePolicy.SKIP
    retry_attempts: int = 3  # only used by the retry policy


@dataclass(frozen=True)
class BrowserConfig:
    user_data_dir: Path
    executable_path: str | None = None  # None = Playwright's bundled Chromium
    headless: bool = False
    fullscreen: bool = True
    extra_args: tuple[str, ...] = ()


@dataclass(frozen=True)
class Config:
    browser: BrowserConfig
    site: SiteConfig = field(default_factory=SiteConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    refresh: RefreshConfig = field(default_factory=RefreshConfig)
    log_level: str = "INFO"
    env_file: Path | None = None


def _site_from(section: dict) -> SiteConfig:
    known = SiteConfig.__dataclass_fields__
    unknown = sorted(set(section) - set(known))
    if unknown:
        raise ValueError(f"activkiosk.toml [site] has unknown keys: {', '.join(unknown)}")
    return SiteConfig(**section)


def _validate(cfg: Config) -> None:
    counts = {
        "[retry] login_attempts": cfg.retry.login_attempts,
        "[retry] navigation_attempts": cfg.retry.navigation_attempts,
        "[refresh] retry_attempts": cfg.refresh.retry_attempts,
    }
    for name, value in counts.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"activkiosk.toml {name} must be an integer (got {value!r}).")
    for name in ("headless", "fullscreen"):
        value = getattr(cfg.browser, name)
        if not isinstance(value, bool):
            raise ValueError(f"activkiosk.toml [browser] {name} must be true or false (got {value!r}).")
    if cfg.retry.login_attempts < 1 or cfg.retry.navigation_attempts < 1:
        raise ValueError("activkiosk.toml [retry] attempts must be >= 1.")
    if cfg.retry.delay < 0:
        raise ValueError("activkiosk.toml [retry] delay must be >= 0 seconds.")
    if cfg.refresh.interval <= 0:
        raise ValueError("activkiosk.toml [refresh] interval must be > 0 seconds.")
    if cfg.refresh.retry_attempts < 1:
        raise ValueError("activkiosk.toml [refresh] retry_attempts must be >= 1.")
    if cfg.refresh.zoom <= 0:
        raise ValueError("activkiosk.toml [refresh] zoom must be > 0.")


def load(config_path: Path | None = None) -> Config:
    """Load config from activkiosk.toml; all fields have defaults.

    Resolution order for the file: explicit path > ACTIVKIOSK_CONFIG env var
    > ./activkiosk.toml. A missing file yields the defaults.
    """
    if config_path is None:
        env_path = os.environ.get("ACTIVKIOSK_CONFIG", "").strip()
        config_path = Path(env_path) if env_path else Path.cwd() / DEFAULT_CONFIG_FILE

    data: dict = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

    site = data.get("site", {})
    retry = data.get("retry", {})
    refresh = data.get("refresh", {})
    browser = data.get("browser", {})
    logging_section = data.get("logging", {})

    on_failure = refresh.get("on_failure", RefreshFailurePolicy.SKIP.value)
    try:
        policy = RefreshFailurePolicy(on_failure)
    except ValueError:
        choices = ", ".join(p.value for p in RefreshFailurePolicy)
        raise ValueError(
            f"activkiosk.toml [refresh] on_failure must be one of: {choices} (got {on_failure!r})"
        ) from None

    # executable_path: explicit TOML value wins; "" selects Playwright's bundled browser.
    executable = browser.get("executable_path", default_executable())

    cfg = Config(
        browser=BrowserConfig(
            user_data_dir=resolve_user_data_dir(browser.get("user_data_dir")),
            executable_path=executable or None,
            headless=browser.get("headless", False),
            fullscreen=browser.get("fullscreen", True),
            extra_args=tuple(browser.get("extra_args", ())),
        ),
        site=_site_from(site),
        retry=RetryConfig(
            login_attempts=retry.get("login_attempts", 5),
            navigation_attempts=retry.get("navigation_attempts", 5),
            delay=float(retry.get("delay", 5.0)),
        ),
        refresh=RefreshConfig(
            interval=float(refresh.get("interval", 6 * 3600.0)),
            zoom=float(refresh.get("zoom", 1.25)),
            on_failure=policy,
            retry_attempts=refresh.get("retry_attempts", 3),
        ),
        log_level=str(logging_section.get("level", "INFO")).upper(),
        env_file=config_path.parent / DEFAULT_ENV_FILE,
    )
    _validate(cfg)
    return cfg
