"""Browser session capability, its Playwright implementation, and pacing.

The scrape pipeline never touches Playwright directly.  It drives a
:class:`BrowserSession` — a narrow navigate / locate / read / click /
close interface whose failures are reported as the
:class:`~job_scraper.errors.BrowserSessionError` kinds the pipeline
routes on (not-found, stale, interaction-blocked, timeout).

:class:`PlaywrightSession` is the production implementation: it owns a
:class:`SessionManager` (browser + context lifecycle) and a single page,
and translates Playwright errors into those kinds.  Tests substitute a
scripted in-memory session.
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from job_scraper.config import DEFAULT_USER_AGENT
from job_scraper.errors import (
    ActionableError,
    BrowserSessionError,
    ElementNotFoundError,
    InteractionBlockedError,
    StaleElementError,
    WaitTimeoutError,
)
from job_scraper.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterator

    from playwright.async_api import Browser, BrowserContext, Page, Playwright

    from job_scraper.config import BrowserConfig

# Opaque handle to one element inside a session's document
Element = Any


# ---------------------------------------------------------------------------
# Capability interface
# ---------------------------------------------------------------------------


class BrowserSession(ABC):
    """One navigable document, exclusively owned by one scrape.

    Use as an async context manager; :meth:`close` runs on every exit
    path, including cancellation.
    """

    async def __aenter__(self) -> BrowserSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load *url* in the session's document."""
        ...

    @abstractmethod
    async def find_all(self, locator: str, *, timeout: float) -> list[Element]:
        """Wait up to *timeout* seconds for *locator* to match, then return all matches.

        Raises :class:`WaitTimeoutError` if nothing matched in time.
        """
        ...

    @abstractmethod
    async def find_one(
        self,
        locator: str,
        *,
        scope: Element | None = None,
        timeout: float = 0.0,
    ) -> Element:
        """Return the first match for *locator* under *scope* (or the document).

        With ``timeout > 0`` waits for the match and raises
        :class:`WaitTimeoutError`; otherwise raises
        :class:`ElementNotFoundError` immediately when nothing matches.
        """
        ...

    @abstractmethod
    async def text(self, element: Element) -> str:
        """Rendered text of *element*."""
        ...

    @abstractmethod
    async def click(self, element: Element) -> None:
        """Simulate a user click on *element*."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the session.  Safe to call more than once."""
        ...


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class SessionConfig:
    """Browser launch configuration for one scrape session."""

    source_name: str
    headless: bool = True
    user_agent: str | None = DEFAULT_USER_AGENT
    viewport_width: int = 1440
    viewport_height: int = 900
    action_timeout: float = 5.0

    @classmethod
    def from_browser_config(cls, source_name: str, browser: BrowserConfig) -> SessionConfig:
        return cls(
            source_name=source_name,
            headless=browser.headless,
            user_agent=browser.user_agent,
            viewport_width=browser.viewport_width,
            viewport_height=browser.viewport_height,
        )


# ---------------------------------------------------------------------------
# Playwright error translation
# ---------------------------------------------------------------------------

_BLOCKED_MARKERS = ("intercepts pointer events", "element click intercepted")
_STALE_MARKERS = ("not attached to the dom", "element is detached", "execution context was destroyed")


def to_selector(locator: str) -> str:
    """Return a Playwright selector for *locator*, tagging XPath expressions."""
    if locator.startswith(("/", "./", "(", "..")):
        return f"xpath={locator}"
    return locator


def classify_error(exc: PlaywrightError, locator: str) -> BrowserSessionError:
    """Map a Playwright error onto the session failure kinds."""
    message = str(exc)
    lowered = message.lower()
    if any(marker in lowered for marker in _BLOCKED_MARKERS):
        return InteractionBlockedError(locator, message)
    if any(marker in lowered for marker in _STALE_MARKERS):
        return StaleElementError(locator, message)
    if isinstance(exc, PlaywrightTimeoutError):
        return WaitTimeoutError(locator, message)
    return ElementNotFoundError(locator, message)


@contextmanager
def _translated(locator: str) -> Iterator[None]:
    try:
        yield
    except PlaywrightError as exc:
        raise classify_error(exc, locator) from exc


# ---------------------------------------------------------------------------
# Session manager
# ---------------------------------------------------------------------------


class SessionManager:
    """Manages the Playwright driver, browser, and context for one session.

    Usage::

        async with SessionManager(config) as manager:
            page = await manager.new_page()
            await page.goto(url)
    """

    def __init__(self, config: SessionConfig) -> None:
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    async def __aenter__(self) -> SessionManager:
        from playwright.async_api import async_playwright

        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
        )
        self._context = await self._browser.new_context(
            viewport={"width": self.config.viewport_width, "height": self.config.viewport_height},
            user_agent=self.config.user_agent if self.config.user_agent else None,
        )
        logger.info(
            "Browser session opened for %s (headless=%s)",
            self.config.source_name,
            self.config.headless,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        if self._context:
            await self._context.close()
            self._context = None
        if self._browser:
            await self._browser.close()
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    async def new_page(self) -> Page:
        """Create a new page in the managed browser context."""
        if self._context is None:
            msg = "SessionManager not entered — use 'async with'"
            raise RuntimeError(msg)
        page = await self._context.new_page()
        page.set_default_timeout(self.config.action_timeout * 1000)
        return page


# ---------------------------------------------------------------------------
# Playwright-backed session
# ---------------------------------------------------------------------------


class PlaywrightSession(BrowserSession):
    """:class:`BrowserSession` over a single Playwright page."""

    def __init__(self, config: SessionConfig) -> None:
        self.config = config
        self._manager = SessionManager(config)
        self._page: Page | None = None
        self._open = False

    async def __aenter__(self) -> PlaywrightSession:
        # A partially launched manager still needs __aexit__ for cleanup
        self._open = True
        try:
            await self._manager.__aenter__()
            self._page = await self._manager.new_page()
        except PlaywrightError as exc:
            await self.close()
            raise ActionableError.from_exception(
                exc,
                service="chromium",
                operation=f"opening a browser session for {self.config.source_name}",
            ) from exc
        except BaseException:
            await self.close()
            raise
        return self

    @property
    def page(self) -> Page:
        if self._page is None:
            msg = "PlaywrightSession not entered — use 'async with'"
            raise RuntimeError(msg)
        return self._page

    async def navigate(self, url: str) -> None:
        with _translated(url):
            await self.page.goto(url, wait_until="domcontentloaded")

    async def find_all(self, locator: str, *, timeout: float) -> list[Element]:
        selector = to_selector(locator)
        with _translated(locator):
            await self.page.wait_for_selector(selector, state="attached", timeout=timeout * 1000)
            return await self.page.query_selector_all(selector)

    async def find_one(
        self,
        locator: str,
        *,
        scope: Element | None = None,
        timeout: float = 0.0,
    ) -> Element:
        root = scope if scope is not None else self.page
        selector = to_selector(locator)
        with _translated(locator):
            if timeout > 0:
                element = await root.wait_for_selector(
                    selector, state="attached", timeout=timeout * 1000
                )
            else:
                element = await root.query_selector(selector)
        if element is None:
            raise ElementNotFoundError(locator, f"No element matches {locator}")
        return element

    async def text(self, element: Element) -> str:
        with _translated("<element>"):
            return await element.inner_text()

    async def click(self, element: Element) -> None:
        with _translated("<element>"):
            await element.click(timeout=self.config.action_timeout * 1000)

    async def close(self) -> None:
        if self._page is not None:
            page, self._page = self._page, None
            try:
                await page.close()
            except PlaywrightError as exc:
                logger.debug("Page already closed: %s", exc)
        if self._open:
            self._open = False
            try:
                await self._manager.__aexit__(None, None, None)
            except PlaywrightError as exc:
                logger.warning("Browser did not shut down cleanly: %s", exc)
            logger.info("Browser session closed for %s", self.config.source_name)


# ---------------------------------------------------------------------------
# Throttle
# ---------------------------------------------------------------------------


async def throttle(rate_limit: tuple[float, float]) -> float:
    """Sleep for a random duration within the ``(min, max)`` range.

    Cancellable mid-wait.  Returns the actual duration slept (useful
    for assertions).
    """
    lo, hi = rate_limit
    duration = random.uniform(lo, hi)
    logger.debug("Throttle: sleeping %.2fs", duration)
    await asyncio.sleep(duration)
    return duration
