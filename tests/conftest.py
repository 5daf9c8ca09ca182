"""Global test configuration — shared fixtures and a scripted browser.

This conftest provides:

1. **Scripted browser** — :class:`FakeSession` is an in-memory
   :class:`~job_scraper.adapters.session.BrowserSession`.  Each locator
   maps to a *script*: a string (the element's text), a nested
   :class:`FakeElement`, an exception instance (raised on lookup), or a
   list of those consumed one per lookup with the last value sticking.
   This lets a test say "stale twice, then readable" in one line.

2. **Test source** — ``testsource`` is registered in the
   :class:`AdapterRegistry` for the duration of each test that asks for
   the ``test_adapter`` fixture, with short human-readable locators.

3. **Factories** — ``make_entry``, ``make_session``, ``make_settings``
   and ``make_orchestrator`` build the usual objects with zero pacing
   and tiny timeouts so scrapes complete instantly.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest

from job_scraper.adapters.base import JobSourceAdapter, SourceLocators
from job_scraper.adapters.registry import AdapterRegistry
from job_scraper.adapters.session import BrowserSession
from job_scraper.config import (
    ApiConfig,
    CacheConfig,
    ScraperConfig,
    Settings,
    SourceConfig,
)
from job_scraper.errors import ElementNotFoundError, WaitTimeoutError
from job_scraper.pipeline.orchestrator import ScrapeOrchestrator

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

TEST_SOURCE = "testsource"

TEST_LOCATORS = SourceLocators(
    entries="card",
    card_title="title",
    card_company="company",
    card_location="location",
    card_posted_age="age",
    detail_marker="detail",
    page_description="description",
    page_salary_container="salary-box",
    salary_text="salary-text",
)


# ---------------------------------------------------------------------------
# Scripted browser
# ---------------------------------------------------------------------------


def _next_value(script: Any) -> Any:
    """Consume one step of *script* and return it, raising exceptions."""
    if isinstance(script, list):
        value = script.pop(0) if len(script) > 1 else script[0]
    else:
        value = script
    if isinstance(value, BaseException):
        raise value
    return value


@dataclass
class FakeText:
    """A leaf element that only carries text."""

    value: str


@dataclass
class FakeElement:
    """A scripted element: child locators plus a click script."""

    name: str
    children: dict[str, Any] = field(default_factory=dict)
    click: Any = None
    clicks: int = 0


class FakeSession(BrowserSession):
    """In-memory :class:`BrowserSession` driven by scripts.

    Args:
        entries: Elements returned for the entry locator, or an exception
            raised while waiting for them.
        page: Document-level locator scripts (detail marker, description,
            salary container).
        entry_delay: Seconds ``find_all`` sleeps before answering.
    """

    def __init__(
        self,
        entries: list[FakeElement] | BaseException,
        page: dict[str, Any] | None = None,
        *,
        entry_delay: float = 0.0,
        open_error: BaseException | None = None,
        navigate_error: BaseException | None = None,
    ) -> None:
        self.entries = entries
        self.page = page if page is not None else {}
        self.entry_delay = entry_delay
        self.open_error = open_error
        self.navigate_error = navigate_error
        self.visited: list[str] = []
        self.opened = False
        self.close_calls = 0

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    async def __aenter__(self) -> FakeSession:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True
        return self

    async def navigate(self, url: str) -> None:
        self.visited.append(url)
        if self.navigate_error is not None:
            raise self.navigate_error

    async def find_all(self, locator: str, *, timeout: float) -> list[Any]:
        if self.entry_delay:
            await asyncio.sleep(self.entry_delay)
        if isinstance(self.entries, BaseException):
            raise self.entries
        if not self.entries:
            raise WaitTimeoutError(locator, f"Timeout {timeout}s waiting for {locator}")
        return list(self.entries)

    async def find_one(
        self,
        locator: str,
        *,
        scope: Any = None,
        timeout: float = 0.0,
    ) -> Any:
        scripts = scope.children if isinstance(scope, FakeElement) else self.page
        if locator not in scripts:
            if timeout > 0:
                raise WaitTimeoutError(locator, f"Timeout {timeout}s waiting for {locator}")
            raise ElementNotFoundError(locator, f"No element matches {locator}")
        value = _next_value(scripts[locator])
        if isinstance(value, FakeElement):
            return value
        return FakeText(str(value))

    async def text(self, element: Any) -> str:
        return element.value

    async def click(self, element: Any) -> None:
        element.clicks += 1
        _next_value(element.click)

    async def close(self) -> None:
        self.close_calls += 1


class _TestAdapter(JobSourceAdapter):
    @property
    def source_name(self) -> str:
        return TEST_SOURCE

    @property
    def base_url(self) -> str:
        return "https://jobs.example.org/search"

    @property
    def locators(self) -> SourceLocators:
        return TEST_LOCATORS

    @property
    def rate_limit_seconds(self) -> tuple[float, float]:
        return (0.0, 0.0)


# ---------------------------------------------------------------------------
# Fixtures and factories
# ---------------------------------------------------------------------------


@pytest.fixture
def test_adapter() -> Iterator[JobSourceAdapter]:
    """Registers ``testsource`` for the duration of one test."""
    AdapterRegistry._registry[TEST_SOURCE] = _TestAdapter
    try:
        yield _TestAdapter()
    finally:
        AdapterRegistry._registry.pop(TEST_SOURCE, None)


@pytest.fixture
def make_entry():
    """Factory fixture — returns a callable that produces a scripted card.

    Every card field defaults to readable text; pass ``None`` to leave a
    field's locator out entirely (lookup fails), or any script value to
    override it.

    Usage::

        entry = make_entry("Data Engineer")
        entry = make_entry("Data Engineer", company=None)
        entry = make_entry("Data Engineer", title=[StaleElementError("title"), "Data Engineer"])
    """

    def _factory(
        name: str = "Data Engineer",
        *,
        title: Any = ...,
        company: Any = "Acme Corp",
        location: Any = "Remote",
        age: Any = "Posted 3 days ago",
        click: Any = None,
    ) -> FakeElement:
        scripts = {
            "title": name if title is ... else title,
            "company": company,
            "location": location,
            "age": age,
        }
        children = {key: value for key, value in scripts.items() if value is not None}
        return FakeElement(name=name, children=children, click=click)

    return _factory


@pytest.fixture
def make_page():
    """Factory fixture — returns a callable that produces document scripts.

    The defaults describe a detail view that renders immediately with a
    description and a ``$`` salary.
    """

    def _factory(
        *,
        detail: Any = "",
        description: Any = "Build data pipelines.",
        salary: Any = "$120,000 a year",
    ) -> dict[str, Any]:
        scripts: dict[str, Any] = {"detail": detail}
        if description is not None:
            scripts["description"] = description
        if salary is not None:
            scripts["salary-box"] = FakeElement(
                name="salary-box", children={"salary-text": salary}
            )
        return scripts

    return _factory


@pytest.fixture
def make_session(make_page):
    """Factory fixture — returns a callable that produces a :class:`FakeSession`.

    ``page`` defaults to ``make_page()``.
    """

    def _factory(
        entries: list[FakeElement] | BaseException,
        page: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> FakeSession:
        return FakeSession(entries, page if page is not None else make_page(), **kwargs)

    return _factory


@pytest.fixture
def fast_scraper_config() -> ScraperConfig:
    return ScraperConfig(entry_wait_timeout=0.01, detail_wait_timeout=0.01)


@pytest.fixture
def make_orchestrator(test_adapter: JobSourceAdapter, fast_scraper_config: ScraperConfig):
    """Factory fixture — returns a callable wiring an orchestrator to one session.

    Usage::

        session = make_session([make_entry()])
        orchestrator = make_orchestrator(session)
        outcome = await orchestrator.run(ScrapeRequest("python", "Remote"))
    """

    def _factory(
        session: BrowserSession,
        *,
        pacing: tuple[float, float] = (0.0, 0.0),
        config: ScraperConfig | None = None,
    ) -> ScrapeOrchestrator:
        return ScrapeOrchestrator(
            test_adapter,
            lambda: session,
            config=config or fast_scraper_config,
            pacing=pacing,
        )

    return _factory


@pytest.fixture
def make_settings(tmp_path: Path, fast_scraper_config: ScraperConfig):
    """Factory fixture — returns a callable that produces a Settings instance.

    ``testsource`` is the only enabled source and the cache lives under
    ``tmp_path``.
    """

    def _factory(*, request_timeout: float = 5.0) -> Settings:
        return Settings(
            enabled_sources=[TEST_SOURCE],
            sources={TEST_SOURCE: SourceConfig(name=TEST_SOURCE, pacing_seconds=(0.0, 0.0))},
            scraper=fast_scraper_config,
            api=ApiConfig(request_timeout=request_timeout),
            cache=CacheConfig(db_path=str(tmp_path / "results.sqlite")),
        )

    return _factory
