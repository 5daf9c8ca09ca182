"""Result aggregation — append-only, discovery-ordered."""

from __future__ import annotations

from job_scraper.adapters.base import JobPosting, ScrapeOutcome


class ResultAggregator:
    """Accumulates postings for a single scrape and seals them into an outcome."""

    def __init__(self) -> None:
        self._postings: list[JobPosting] = []

    def add(self, posting: JobPosting) -> None:
        self._postings.append(posting)

    def __len__(self) -> int:
        return len(self._postings)

    def outcome(self, *, complete: bool) -> ScrapeOutcome:
        """Immutable snapshot of everything collected so far."""
        return ScrapeOutcome(postings=tuple(self._postings), complete=complete)
