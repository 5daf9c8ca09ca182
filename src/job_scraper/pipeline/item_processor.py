"""Per-entry processing — age filter, activation, extraction, bounded retry.

Each entry moves through a small state machine::

    PENDING -> FILTERING -> (RETRYING -> FILTERING)* -> SUCCEEDED | SKIPPED
                                                     \\-> ABORTED

Three failure tiers meet here:

- **Field** failures become ``None`` inside the field extractor.
- **Item** failures (stale reference, detail view never rendered, any
  other unexpected error) move the entry to RETRYING.  After
  ``max_attempts`` attempts the entry is SKIPPED: no record, and the
  scrape carries on with the next entry.
- **Page** failures (the click is intercepted by an overlay that will
  not go away) end in ABORTED immediately, without retrying.  The
  orchestrator stops iterating and reports an incomplete scrape.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from job_scraper.adapters.base import JobPosting
from job_scraper.errors import (
    BrowserSessionError,
    InteractionBlockedError,
    StaleElementError,
)
from job_scraper.logging import logger
from job_scraper.pipeline.fields import extract_field, extract_salary, parse_age_days

if TYPE_CHECKING:
    from job_scraper.adapters.base import ScrapeRequest, SourceLocators
    from job_scraper.adapters.session import BrowserSession, Element


class ItemState(StrEnum):
    PENDING = "pending"
    FILTERING = "filtering"
    RETRYING = "retrying"
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    ABORTED = "aborted"


@dataclass(frozen=True)
class ItemResult:
    """Terminal state of one entry.

    ``posting`` is set only for SUCCEEDED; ``reason`` explains SKIPPED
    and ABORTED outcomes.
    """

    state: ItemState
    attempts: int
    posting: JobPosting | None = None
    reason: str | None = None

    @property
    def aborts_page(self) -> bool:
        return self.state is ItemState.ABORTED


class DetailViewUnavailable(Exception):
    """The detail pane did not render after the entry was activated."""


class ItemProcessor:
    """Drives one entry at a time through filtering, activation, and extraction.

    Usage::

        processor = ItemProcessor(session, adapter.locators, request)
        result = await processor.process(entry, position=1)
        if result.state is ItemState.SUCCEEDED:
            aggregator.add(result.posting)
    """

    def __init__(
        self,
        session: BrowserSession,
        locators: SourceLocators,
        request: ScrapeRequest,
        *,
        detail_wait_timeout: float = 10.0,
        max_attempts: int = 3,
        currency_markers: tuple[str, ...] = ("$",),
    ) -> None:
        self._session = session
        self._locators = locators
        self._request = request
        self._detail_wait_timeout = detail_wait_timeout
        self._max_attempts = max_attempts
        self._currency_markers = currency_markers

    async def process(self, entry: Element, *, position: int) -> ItemResult:
        """Run the retry loop for *entry* and return its terminal state.

        ``position`` is the 1-based discovery index, used in log messages.
        Cancellation is never caught here.
        """
        state = ItemState.PENDING
        attempt = 0

        while attempt < self._max_attempts:
            attempt += 1
            if state is ItemState.RETRYING:
                logger.warning("Card %d, attempt %d", position, attempt)
            state = ItemState.FILTERING

            try:
                result = await self._attempt(entry, attempt)
            except InteractionBlockedError as exc:
                logger.error(
                    "Element click intercepted on card %d — aborting page: %s",
                    position,
                    exc,
                )
                return ItemResult(
                    state=ItemState.ABORTED,
                    attempts=attempt,
                    reason=f"interaction blocked: {exc}",
                )
            except StaleElementError as exc:
                logger.warning("Stale element reference on card %d: %s", position, exc)
                state = ItemState.RETRYING
                continue
            except DetailViewUnavailable as exc:
                logger.warning("Failed to find job info component on card %d: %s", position, exc)
                state = ItemState.RETRYING
                continue
            except Exception as exc:
                logger.warning("Reading card %d -- exception: %s", position, exc)
                state = ItemState.RETRYING
                continue

            return result

        logger.warning(
            "Cannot add card %d to list, reached max attempts (%d)",
            position,
            self._max_attempts,
        )
        return ItemResult(
            state=ItemState.SKIPPED,
            attempts=attempt,
            reason="retry budget exhausted",
        )

    async def _attempt(self, entry: Element, attempt: int) -> ItemResult:
        """One pass over the entry.  Raises on item- or page-level failure."""
        loc = self._locators
        session = self._session

        # -- Filtering -------------------------------------------------------
        if self._request.age_filter_enabled:
            age_text = await extract_field(session, "time posted", loc.card_posted_age, scope=entry)
            age_days = parse_age_days(age_text)
            if age_days is not None and age_days > self._request.max_age_days:  # type: ignore[operator]
                logger.debug(
                    "Skipping entry posted %d days ago (limit %d)",
                    age_days,
                    self._request.max_age_days,
                )
                return ItemResult(
                    state=ItemState.SKIPPED,
                    attempts=attempt,
                    reason=f"posted {age_days} days ago",
                )

        # -- Card fields -----------------------------------------------------
        title = await extract_field(session, "title", loc.card_title, scope=entry)
        company = await extract_field(session, "company", loc.card_company, scope=entry)
        location = await extract_field(session, "location", loc.card_location, scope=entry)

        # -- Activation ------------------------------------------------------
        await session.click(entry)

        try:
            await session.find_one(loc.detail_marker, timeout=self._detail_wait_timeout)
        except StaleElementError:
            raise
        except BrowserSessionError as exc:
            raise DetailViewUnavailable(str(exc)) from exc

        # -- Detail fields ---------------------------------------------------
        description = await extract_field(session, "description", loc.page_description)
        salary = await extract_salary(
            session,
            loc.page_salary_container,
            loc.salary_text,
            currency_markers=self._currency_markers,
        )

        return ItemResult(
            state=ItemState.SUCCEEDED,
            attempts=attempt,
            posting=JobPosting(
                title=title,
                company=company,
                location=location,
                description=description,
                salary=salary,
            ),
        )
