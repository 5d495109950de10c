"""Kiosk browser with a persistent profile.

Usage:

    async with KioskBrowser(cfg.browser) as browser:
        await browser.page.goto("https://activ.rfs.nsw.gov.au/webapp")

The profile directory (cookies, localStorage, Preferences) is reused on
every launch, so a portal session normally survives a restart and the
login form is skipped.
"""

from __future__ import annotations

import structlog
from playwright.async_api import (
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)

from activkiosk.config import BrowserConfig

log = structlog.get_logger(__name__)

# Flags that keep prompts, bubbles and banners off the kiosk screen.
KIOSK_ARGS = (
    "--no-sandbox",
    "--disable-password-manager",
    "--disable-save-password-bubble",
    "--suppress-message-center-popups",
    "--hide-crash-restore-bubble",
    "--disable-setuid-sandbox",
    "--start-fullscreen",
    "--disable-notifications",
    "--disable-infobars",
    "--disable-autofill-profile-save",
    "--disable-translate",
    "--disable-sync",
    "--disable-extensions",
    "--password-store=basic",
    "--use-mock-keychain",
)


class KioskBrowser:
    """Persistent Chromium context driving a single fullscreen page."""

    def __init__(self, config: BrowserConfig) -> None:
        self.config = config
        self._pw: Playwright | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    # -- Lifecycle -------------------------------------------------------------

    def launch_args(self) -> list[str]:
        args = list(KIOSK_ARGS)
        for extra in self.config.extra_args:
            if extra not in args:
                args.append(extra)
        return args

    async def start(self) -> KioskBrowser:
        """Launch the browser on the profile directory and settle on one page."""
        user_data_dir = self.config.user_data_dir
        user_data_dir.mkdir(parents=True, exist_ok=True)

        self._pw = await async_playwright().start()
        launch_kwargs: dict = {
            "headless": self.config.headless,
            "args": self.launch_args(),
            "no_viewport": True,
            "ignore_default_args": ["--enable-automation"],
        }
        if self.config.executable_path:
            launch_kwargs["executable_path"] = self.config.executable_path

        self._context = await self._pw.chromium.launch_persistent_context(
            str(user_data_dir), **launch_kwargs
        )
        log.info(
            "browser launched",
            user_data_dir=str(user_data_dir),
            executable=self.config.executable_path or "bundled",
        )

        self._page = await self._context.new_page()
        await self._close_extra_pages()

        if self.config.fullscreen:
            await self._page.keyboard.press("F11")

        return self

    async def _close_extra_pages(self) -> None:
        # A persistent context opens with a blank tab; keep only our page.
        for page in list(self._context.pages):
            if page is self._page:
                continue
            try:
                await page.close()
            except Exception as exc:
                log.warning("failed to close extra page", error=str(exc))

    async def stop(self) -> None:
        """Close the context and stop Playwright; errors are logged, not raised."""
        if self._context:
            try:
                await self._context.close()
            except Exception as exc:
                log.warning("failed to close browser context", error=str(exc))
        if self._pw:
            try:
                await self._pw.stop()
            except Exception as exc:
                log.warning("failed to stop playwright", error=str(exc))

        self._page = None
        self._context = None
        self._pw = None
        log.info("browser closed")

    async def __aenter__(self) -> KioskBrowser:
        return await self.start()

    async def __aexit__(self, *args: object) -> None:
        await self.stop()

    @property
    def page(self) -> Page:
        """The kiosk page."""
        if self._page is None:
            raise RuntimeError("KioskBrowser not started")
        return self._page
