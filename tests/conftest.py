"""Shared test fixtures for activkiosk.

No real browser is launched anywhere in the suite:
  site         — default ACTIV SiteConfig
  page         — FakePage recording form interactions
  credentials  — station credentials used by the login scenarios
  test_config  — Config with an isolated profile dir and zero retry delay
"""
from __future__ import annotations

from pathlib import Path

import pytest
import structlog

from activkiosk.config import BrowserConfig, Config, RefreshConfig, RetryConfig, SiteConfig
from activkiosk.credentials import Credentials
from tests.helpers import FakePage, SleepRecorder


@pytest.fixture
def site() -> SiteConfig:
    return SiteConfig()


@pytest.fixture
def page(site: SiteConfig) -> FakePage:
    return FakePage(site)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(username="station1", password="pw1")


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Isolated Config for a single test: tmp profile dir, no retry delay."""
    return Config(
        browser=BrowserConfig(user_data_dir=tmp_path / "user-data", executable_path=None),
        retry=RetryConfig(login_attempts=3, navigation_attempts=3, delay=0.0),
        refresh=RefreshConfig(interval=3600.0),
    )


@pytest.fixture(autouse=True)
def _reset_structlog():
    """Keep structlog configuration from leaking between tests."""
    yield
    structlog.reset_defaults()
