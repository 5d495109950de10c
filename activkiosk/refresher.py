"""Keep the dashboard fresh by reloading it on a fixed period.

Reloads run in one task, so they never overlap. Ticks sit on a fixed grid
(start + k * interval); a reload that outlives the interval makes the
refresher skip the missed ticks rather than fire them back to back.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

import structlog
from playwright.async_api import Page

from activkiosk.config import RefreshFailurePolicy
from activkiosk.retry import AttemptResult, PhaseExhaustedError, SleepFn, run_phase
from activkiosk.session import apply_zoom

log = structlog.get_logger(__name__)


class Refresher:
    """Reload ``page`` every ``interval`` seconds until stopped.

    Failure handling is set by ``failure_policy``:
      skip  -> log and wait for the next tick
      retry -> retry up to ``retry_attempts`` times, then wait for the next tick
      exit  -> log, call ``on_fatal`` and end the loop
    """

    def __init__(
        self,
        page: Page,
        interval: float,
        *,
        failure_policy: RefreshFailurePolicy = RefreshFailurePolicy.SKIP,
        retry_attempts: int = 3,
        retry_delay: float = 5.0,
        navigation_timeout: int = 30_000,
        after_reload: Callable[[Page], Awaitable[None]] | None = None,
        on_fatal: Callable[[BaseException], None] | None = None,
        sleep: SleepFn = asyncio.sleep,
        clock: Callable[[], float] | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self.page = page
        self.interval = interval
        self.failure_policy = RefreshFailurePolicy(failure_policy)
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.navigation_timeout = navigation_timeout
        self.after_reload = after_reload
        self.on_fatal = on_fatal
        self._sleep = sleep
        self._clock = clock
        self._running = False
        self._task: asyncio.Task | None = None

        self.reload_count = 0
        self.failure_count = 0
        self.skipped_ticks = 0

    def start(self) -> None:
        self._running = True
        self._task = asyncio.get_running_loop().create_task(self.run())

    def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    @property
    def running(self) -> bool:
        return self._running

    def _now(self) -> float:
        if self._clock is not None:
            return self._clock()
        return asyncio.get_running_loop().time()

    async def _reload(self) -> AttemptResult:
        log.info("refreshing page", url=self.page.url)
        await self.page.reload(wait_until="networkidle", timeout=self.navigation_timeout)
        if self.after_reload is not None:
            await self.after_reload(self.page)
        return AttemptResult.success(self.page.url)

    async def refresh_once(self) -> bool:
        """Perform one scheduled reload under the failure policy.

        Returns False only when the exit policy ended the loop.
        """
        try:
            if self.failure_policy is RefreshFailurePolicy.RETRY:
                await run_phase(
                    "refresh",
                    self._reload,
                    self.retry_attempts,
                    self.retry_delay,
                    sleep=self._sleep,
                )
            else:
                await self._reload()
        except PhaseExhaustedError as e:
            self.failure_count += 1
            log.error("refresh retries exhausted, waiting for next tick", error=str(e))
            return True
        except Exception as e:
            self.failure_count += 1
            if self.failure_policy is RefreshFailurePolicy.EXIT:
                log.error("refresh failed, stopping", error=str(e))
                self._running = False
                if self.on_fatal is not None:
                    self.on_fatal(e)
                return False
            log.error("refresh failed, waiting for next tick", error=str(e))
            return True

        self.reload_count += 1
        return True

    async def run(self) -> None:
        self._running = True
        next_tick = self._now() + self.interval
        while self._running:
            delay = next_tick - self._now()
            if delay > 0:
                await self._sleep(delay)
            if not self._running:
                break
            if not await self.refresh_once():
                break

            next_tick += self.interval
            now = self._now()
            if now >= next_tick:
                # Reload overran one or more ticks; realign to the grid.
                missed = int((now - next_tick) // self.interval) + 1
                self.skipped_ticks += missed
                next_tick += missed * self.interval
                log.warning("refresh overran interval, skipping ticks", skipped=missed)


async def maintain_freshness(
    page: Page,
    interval: float,
    *,
    zoom: float | None = 1.25,
    on_start: Callable[[Refresher], None] | None = None,
    **refresher_kwargs,
) -> Refresher:
    """Apply the display zoom, then reload ``page`` every ``interval`` seconds.

    Runs until cancelled (or until the exit policy fires) and returns the
    refresher for inspection. ``on_start`` receives the refresher before the
    first tick so the caller can stop it from outside.
    """
    if zoom is not None:
        await apply_zoom(page, zoom)
        refresher_kwargs.setdefault("after_reload", lambda p: apply_zoom(p, zoom))
    refresher = Refresher(page, interval, **refresher_kwargs)
    if on_start is not None:
        on_start(refresher)
    try:
        await refresher.run()
    finally:
        refresher.stop()
    return refresher
