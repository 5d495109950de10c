"""activkiosk daemon — main orchestrator.

Startup sequence:
1. Logging setup
2. Profile Preferences patch (never fatal)
3. Browser launch on the persistent profile
4. Login phase (bounded retry)
5. Dashboard phase (bounded retry)
6. Zoom + periodic refresh until SIGTERM/SIGINT

Exit codes: 0 on a signal stop, 1 when a phase is exhausted, setup raises or the
refresh policy is "exit", 2 on configuration or credential errors. A non-zero exit
lets the service manager restart the kiosk.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal
from pathlib import Path
from typing import Callable, Optional

import structlog

from activkiosk import config as config_module
from activkiosk.browser import KioskBrowser
from activkiosk.config import Config
from activkiosk.credentials import Credentials, CredentialsError, load_credentials
from activkiosk.preferences import patch_preferences
from activkiosk.refresher import Refresher, maintain_freshness
from activkiosk.retry import PhaseExhaustedError
from activkiosk.session import ensure_authenticated, ensure_on_dashboard

log = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2


def _configure_logging(level: str = "INFO") -> None:
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


class Kiosk:
    """Drives one browser page from launch to a kept-fresh dashboard."""

    def __init__(
        self,
        cfg: Config,
        credentials: Credentials,
        browser_factory: Callable[..., KioskBrowser] = KioskBrowser,
    ) -> None:
        self.cfg = cfg
        self.credentials = credentials
        self._browser_factory = browser_factory
        self._browser: Optional[KioskBrowser] = None
        self._refresher: Optional[Refresher] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._exit_code = EXIT_OK

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Launch the browser, log in and open the dashboard.

        Raises PhaseExhaustedError when login or navigation runs out of
        attempts; the dashboard phase never starts after a failed login.
        """
        patch_preferences(self.cfg.browser.user_data_dir)

        self._browser = self._browser_factory(self.cfg.browser)
        await self._browser.start()
        page = self._browser.page

        site = self.cfg.site
        retry = self.cfg.retry
        await ensure_authenticated(
            page,
            self.credentials,
            site,
            max_attempts=retry.login_attempts,
            retry_delay=retry.delay,
        )
        await ensure_on_dashboard(
            page,
            site.dashboard_url,
            max_attempts=retry.navigation_attempts,
            retry_delay=retry.delay,
            navigation_timeout=site.navigation_timeout,
        )
        log.info("kiosk on dashboard", url=page.url)

    async def keep_fresh(self) -> None:
        """Zoom the dashboard and reload it on the configured period.

        Returns only when the "exit" refresh policy ends the loop.
        """
        refresh = self.cfg.refresh
        log.info("kiosk started", refresh_interval=refresh.interval)
        await maintain_freshness(
            self._browser.page,
            refresh.interval,
            zoom=refresh.zoom,
            on_start=self._on_refresher_started,
            failure_policy=refresh.on_failure,
            retry_attempts=refresh.retry_attempts,
            retry_delay=self.cfg.retry.delay,
            navigation_timeout=self.cfg.site.navigation_timeout,
            on_fatal=self._on_refresh_fatal,
        )

    async def _serve(self) -> None:
        await self.start()
        await self.keep_fresh()

    async def run(self) -> int:
        """Start the kiosk and run until SIGTERM/SIGINT. Returns the exit code."""
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        installed: list[signal.Signals] = []
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._stop_event.set)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handler support.
                log.warning("signal handler unavailable", signal=sig.name)

        serving = asyncio.ensure_future(self._serve())
        stopped = asyncio.ensure_future(self._stop_event.wait())
        try:
            await asyncio.wait({serving, stopped}, return_when=asyncio.FIRST_COMPLETED)
            if not serving.done():
                if self._refresher is None:
                    log.info("stop requested during setup")
                serving.cancel()
                await asyncio.gather(serving, return_exceptions=True)
                return EXIT_OK
            try:
                serving.result()
            except PhaseExhaustedError as e:
                log.error("kiosk setup failed", phase=e.phase, attempts=e.attempts, error=str(e))
                return EXIT_FAILURE
            except Exception:
                log.exception("kiosk failed")
                return EXIT_FAILURE
            return self._exit_code
        finally:
            stopped.cancel()
            for sig in installed:
                loop.remove_signal_handler(sig)
            await self.stop()

    def request_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()

    async def stop(self) -> None:
        """Cancel the refresher and close the browser."""
        log.info("kiosk stopping")
        if self._refresher:
            self._refresher.stop()
            self._refresher = None
        if self._browser:
            await self._browser.stop()
            self._browser = None
        log.info("kiosk stopped")

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _on_refresher_started(self, refresher: Refresher) -> None:
        self._refresher = refresher

    def _on_refresh_fatal(self, exc: BaseException) -> None:
        self._exit_code = EXIT_FAILURE

    # ------------------------------------------------------------------
    # Properties for testing
    # ------------------------------------------------------------------

    @property
    def refresher(self) -> Optional[Refresher]:
        return self._refresher

    @property
    def exit_code(self) -> int:
        return self._exit_code


# ------------------------------------------------------------------
# Entrypoint
# ------------------------------------------------------------------


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="activkiosk",
        description="Log in to RFS ACTIV and keep the dashboard open on a kiosk.",
    )
    parser.add_argument("--config", type=Path, default=None, help="path to activkiosk.toml")
    parser.add_argument("--env-file", type=Path, default=None, help="path to a .env file (default: .env beside the config file)")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint: activkiosk [--config PATH] [--env-file PATH]"""
    args = _parse_args(argv)
    _configure_logging()

    try:
        cfg = config_module.load(args.config)
    except (ValueError, OSError) as e:
        log.error("config error", error=str(e))
        return EXIT_CONFIG
    _configure_logging(cfg.log_level)

    env_file = args.env_file or cfg.env_file
    try:
        credentials = load_credentials(env_file=env_file)
    except CredentialsError as e:
        log.error("credentials error", error=str(e))
        return EXIT_CONFIG

    return asyncio.run(Kiosk(cfg, credentials).run())


if __name__ == "__main__":
    raise SystemExit(main())
