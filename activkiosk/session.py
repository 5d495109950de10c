"""ACTIV portal login and dashboard navigation.

The portal may pre-fill the username or treat the browser as already
logged in (the persistent profile carries cookies across runs), so the
presence of the username field is the branch point:

    field present -> full two-step form (username/Next, password/Verify)
    field absent  -> already authenticated if the URL is a post-login page

Success is decided only by the landing URL. Both the dashboard and the
bare webapp prefix count, since the site lands on either depending on
the account type.
"""

from __future__ import annotations

import asyncio

import structlog
from playwright.async_api import Page

from activkiosk.config import SiteConfig
from activkiosk.credentials import Credentials
from activkiosk.retry import AttemptResult, PhaseResult, SleepFn, run_phase

log = structlog.get_logger(__name__)

AuthResult = PhaseResult
NavResult = PhaseResult


def is_authenticated(
    url: str, site: SiteConfig, *, username_field_present: bool = False
) -> bool:
    """True when the page is past the login form.

    A visible username field always means a login is still required, even
    if the URL shares the webapp prefix (the login page lives under it).
    """
    if username_field_present:
        return False
    return any(prefix in url for prefix in site.authenticated_prefixes)


async def _submit_login_form(page: Page, credentials: Credentials, site: SiteConfig) -> None:
    await page.wait_for_selector(site.username, state="visible", timeout=site.username_timeout)
    await page.locator(site.username).press_sequentially(credentials.username)

    remember_me = await page.query_selector(site.remember_me)
    if remember_me:
        await remember_me.click()

    await page.wait_for_selector(site.next_button, state="visible", timeout=site.next_timeout)
    await page.click(site.next_button)

    await page.wait_for_selector(site.password, state="visible", timeout=site.password_timeout)
    await page.locator(site.password).press_sequentially(credentials.password)

    await page.wait_for_selector(site.verify_button, state="visible", timeout=site.verify_timeout)
    # The post-login URL is not known up front, so wait_for_url has no target.
    async with page.expect_navigation(
        wait_until="domcontentloaded", timeout=site.navigation_timeout
    ):
        await page.click(site.verify_button)


async def attempt_login(page: Page, credentials: Credentials, site: SiteConfig) -> AttemptResult:
    """One pass through the login page. Playwright errors propagate."""
    await page.goto(site.login_url, wait_until="networkidle", timeout=site.navigation_timeout)

    if await page.query_selector(site.username):
        log.info("login form detected, logging in", url=page.url)
        await _submit_login_form(page, credentials, site)
        if is_authenticated(page.url, site):
            return AttemptResult.success(page.url)
        return AttemptResult.failure(f"login form submitted but landed on {page.url}")

    if is_authenticated(page.url, site):
        log.info("already logged in (session restored)", url=page.url)
        return AttemptResult.success(page.url)
    return AttemptResult.failure(f"login form not detected at {page.url}")


async def ensure_authenticated(
    page: Page,
    credentials: Credentials,
    site: SiteConfig,
    max_attempts: int = 5,
    retry_delay: float = 5.0,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> AuthResult:
    """Bring ``page`` to an authenticated state or raise PhaseExhaustedError."""

    async def _attempt() -> AttemptResult:
        return await attempt_login(page, credentials, site)

    result = await run_phase("login", _attempt, max_attempts, retry_delay, sleep=sleep)
    log.info("login successful", attempts=result.attempts, url=page.url)
    return result


async def attempt_dashboard(
    page: Page, dashboard_url: str, navigation_timeout: int = 30_000
) -> AttemptResult:
    log.info("navigating to dashboard", url=dashboard_url)
    await page.goto(dashboard_url, wait_until="networkidle", timeout=navigation_timeout)
    if dashboard_url in page.url:
        return AttemptResult.success(page.url)
    return AttemptResult.failure(f"expected {dashboard_url}, landed on {page.url}")


async def ensure_on_dashboard(
    page: Page,
    dashboard_url: str,
    max_attempts: int = 5,
    retry_delay: float = 5.0,
    *,
    navigation_timeout: int = 30_000,
    sleep: SleepFn = asyncio.sleep,
) -> NavResult:
    """Navigate to the dashboard or raise PhaseExhaustedError."""

    async def _attempt() -> AttemptResult:
        return await attempt_dashboard(page, dashboard_url, navigation_timeout)

    result = await run_phase("dashboard", _attempt, max_attempts, retry_delay, sleep=sleep)
    log.info("dashboard loaded", attempts=result.attempts)
    return result


async def apply_zoom(page: Page, zoom: float) -> None:
    """Scale the page body for the kiosk screen (one-time, reset by reload)."""
    await page.evaluate("zoom => { document.body.style.zoom = zoom; }", str(zoom))
    log.info("zoom applied", zoom=zoom)
