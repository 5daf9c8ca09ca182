"""Scrape orchestrator — session lifecycle, discovery, iteration, pacing.

One :meth:`ScrapeOrchestrator.run` call is one scrape:

1. Open a browser session and navigate to the source's listing URL
2. Wait (bounded) for the entry collection to appear
3. Hand each entry, in discovery order, to the :class:`ItemProcessor`,
   pausing for a randomized interval between entries
4. Stop early if an entry reports a page-level abort
5. Close the session and return a :class:`ScrapeOutcome`

``complete=True`` with no postings means the page had no results;
``complete=False`` means the page could not be read to the end.  The
two must never be conflated by callers.

Entries are processed strictly sequentially: the session is one
stateful document and concurrent clicks would corrupt element handles.
Separate scrapes each own a separate session and may run concurrently.
Cancellation (``asyncio.CancelledError``) is never swallowed; the
session is closed on the way out.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AsyncExitStack
from typing import TYPE_CHECKING

from job_scraper.adapters.session import BrowserSession, throttle
from job_scraper.config import ScraperConfig
from job_scraper.logging import logger
from job_scraper.pipeline.aggregator import ResultAggregator
from job_scraper.pipeline.item_processor import ItemProcessor, ItemState

if TYPE_CHECKING:
    from job_scraper.adapters.base import JobSourceAdapter, ScrapeOutcome, ScrapeRequest

SessionFactory = Callable[[], BrowserSession]


class ScrapeOrchestrator:
    """Runs scrapes of one source through sessions produced by *session_factory*.

    Usage::

        orchestrator = ScrapeOrchestrator(
            IndeedAdapter(),
            lambda: PlaywrightSession(SessionConfig(source_name="indeed")),
        )
        outcome = await orchestrator.run(ScrapeRequest("python", "Remote", 7))
    """

    def __init__(
        self,
        adapter: JobSourceAdapter,
        session_factory: SessionFactory,
        *,
        config: ScraperConfig | None = None,
        pacing: tuple[float, float] | None = None,
        base_url: str | None = None,
    ) -> None:
        self._adapter = adapter
        self._session_factory = session_factory
        self._config = config or ScraperConfig()
        self._pacing = pacing if pacing is not None else adapter.rate_limit_seconds
        self._base_url = base_url

    async def run(self, request: ScrapeRequest) -> ScrapeOutcome:
        """Execute one scrape and return whatever was collected.

        Never raises except for cancellation; every other failure is
        folded into ``complete=False``.
        """
        aggregator = ResultAggregator()
        source = self._adapter.source_name

        async with AsyncExitStack() as stack:
            try:
                session = await stack.enter_async_context(self._session_factory())
            except Exception as exc:
                logger.error("Could not open a browser session for %s: %s", source, exc)
                return aggregator.outcome(complete=False)

            complete = await self._scrape(session, request, aggregator)

        logger.info(
            "Scraping finished for %s — %d postings recorded, complete=%s",
            source,
            len(aggregator),
            complete,
        )
        return aggregator.outcome(complete=complete)

    async def _scrape(
        self,
        session: BrowserSession,
        request: ScrapeRequest,
        aggregator: ResultAggregator,
    ) -> bool:
        """Drive discovery and iteration; return the completeness flag."""
        locators = self._adapter.locators
        url = self._adapter.search_url(request, base_url=self._base_url)

        try:
            await session.navigate(url)
            entries = await session.find_all(
                locators.entries, timeout=self._config.entry_wait_timeout
            )
        except Exception as exc:
            logger.error("Searching cards on %s -- exception: %s", url, exc)
            return False

        if not entries:
            logger.error("Entry collection on %s resolved to no cards", url)
            return False

        logger.info(
            "Scraping started for %s — initial job card count: %d",
            self._adapter.source_name,
            len(entries),
        )

        processor = ItemProcessor(
            session,
            locators,
            request,
            detail_wait_timeout=self._config.detail_wait_timeout,
            max_attempts=self._config.max_attempts,
            currency_markers=self._config.currency_markers,
        )

        for position, entry in enumerate(entries, start=1):
            if position > 1:
                await throttle(self._pacing)

            result = await processor.process(entry, position=position)

            if result.aborts_page:
                logger.error(
                    "Stopping after card %d of %d: %s",
                    position,
                    len(entries),
                    result.reason,
                )
                return False
            if result.state is ItemState.SUCCEEDED and result.posting is not None:
                aggregator.add(result.posting)

        return True
