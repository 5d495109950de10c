"""Test helpers for activkiosk."""
from __future__ import annotations

from typing import Callable

from playwright.async_api import TimeoutError as PlaywrightTimeout

from activkiosk.config import SiteConfig


class FakeElement:
    def __init__(self, page: FakePage, selector: str) -> None:
        self._page = page
        self.selector = selector

    async def click(self) -> None:
        await self._page.click(self.selector)


class FakeLocator:
    def __init__(self, page: FakePage, selector: str) -> None:
        self._page = page
        self.selector = selector

    async def press_sequentially(self, text: str) -> None:
        self._page.actions.append(("type", self.selector, text))


class _Keyboard:
    def __init__(self, page: FakePage) -> None:
        self._page = page

    async def press(self, key: str) -> None:
        self._page.actions.append(("press", key))


class _Navigation:
    def __init__(self, page: FakePage) -> None:
        self._page = page

    async def __aenter__(self) -> _Navigation:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self._page.actions.append(("wait_for_navigation",))
            self._page.url = self._page.post_login_url
        return False


class FakePage:
    """Recording stand-in for a Playwright async Page.

    ``present`` holds selectors that exist in the DOM; ``missing`` holds
    selectors whose visibility wait times out. ``on_goto`` lets a test
    reshape the page per attempt (it is called before the URL changes).
    Form interactions are recorded in ``actions`` in call order;
    ``query_selector`` lookups go to ``queries`` instead.
    """

    def __init__(
        self,
        site: SiteConfig | None = None,
        *,
        present: set[str] | None = None,
        landing_url: str | None = None,
        post_login_url: str | None = None,
    ) -> None:
        self.site = site or SiteConfig()
        self.url = "about:blank"
        self.present: set[str] = set(present or ())
        self.missing: set[str] = set()
        self.landing_url = landing_url
        self.post_login_url = post_login_url or self.site.dashboard_url
        self.redirects: dict[str, str] = {}
        self.on_goto: Callable[[FakePage, str], None] | None = None
        self.reload_error: Callable[[int], BaseException | None] | None = None
        self.actions: list[tuple] = []
        self.queries: list[str] = []
        self.gotos: list[str] = []
        self.reloads = 0
        self.keyboard = _Keyboard(self)

    async def goto(self, url: str, wait_until: str | None = None, timeout: int | None = None) -> None:
        self.gotos.append(url)
        if self.on_goto is not None:
            self.on_goto(self, url)
        if url == self.site.login_url and self.landing_url is not None:
            self.url = self.landing_url
        elif url in self.redirects:
            self.url = self.redirects[url]
        else:
            self.url = url

    async def query_selector(self, selector: str) -> FakeElement | None:
        self.queries.append(selector)
        if selector in self.present:
            return FakeElement(self, selector)
        return None

    async def wait_for_selector(
        self, selector: str, state: str | None = None, timeout: int | None = None
    ) -> FakeElement:
        if selector in self.missing:
            raise PlaywrightTimeout(f"Timeout {timeout}ms exceeded waiting for {selector}")
        self.actions.append(("wait_visible", selector))
        return FakeElement(self, selector)

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    async def click(self, selector: str) -> None:
        self.actions.append(("click", selector))

    def expect_navigation(self, wait_until: str | None = None, timeout: int | None = None) -> _Navigation:
        return _Navigation(self)

    async def reload(self, wait_until: str | None = None, timeout: int | None = None) -> None:
        self.reloads += 1
        if self.reload_error is not None:
            error = self.reload_error(self.reloads)
            if error is not None:
                raise error

    async def evaluate(self, expression: str, arg: object = None) -> None:
        self.actions.append(("evaluate", arg))


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    """Manual clock paired with a sleep that advances it."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
