"""Shared data contract and abstract base class for job source adapters."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any
from urllib.parse import urlencode

# Field order used for serialisation and exports
POSTING_FIELDS: tuple[str, ...] = ("title", "company", "location", "description", "salary")


@dataclass(frozen=True)
class ScrapeRequest:
    """One scrape's parameters.  Immutable for the duration of the scrape.

    ``max_age_days`` of ``None`` or ``<= 0`` disables the age filter.
    """

    query: str
    location: str
    max_age_days: int | None = None

    @property
    def age_filter_enabled(self) -> bool:
        return self.max_age_days is not None and self.max_age_days > 0


@dataclass(frozen=True)
class JobPosting:
    """Source-agnostic output record.

    Every field is optional: a field that could not be extracted is
    ``None`` and never invalidates the rest of the record.
    """

    title: str | None = None
    company: str | None = None
    location: str | None = None
    description: str | None = None
    salary: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobPosting:
        """Build a posting from a mapping, ignoring unknown keys."""
        return cls(**{name: data.get(name) for name in POSTING_FIELDS})


@dataclass(frozen=True)
class ScrapeOutcome:
    """Final result of one scrape.

    ``complete`` is False when the scrape stopped before exhausting the
    discovered entries; ``postings`` still holds everything collected.
    """

    postings: tuple[JobPosting, ...]
    complete: bool


def dump_postings(postings: tuple[JobPosting, ...] | list[JobPosting]) -> str:
    """Serialise postings to a JSON array, preserving order and nulls."""
    return json.dumps([p.to_dict() for p in postings])


def load_postings(text: str) -> list[JobPosting]:
    """Inverse of :func:`dump_postings`."""
    return [JobPosting.from_dict(item) for item in json.loads(text)]


@dataclass(frozen=True)
class SourceLocators:
    """Locator expressions for one source's listing page.

    ``card_*`` locators are evaluated relative to a single entry;
    ``page_*`` locators against the whole document.
    """

    entries: str
    card_title: str
    card_company: str
    card_location: str
    card_posted_age: str
    detail_marker: str
    page_description: str
    page_salary_container: str
    salary_text: str


class JobSourceAdapter(ABC):
    """Strategy interface for a scrapeable job source.

    An adapter only *describes* a source: where its listing page lives
    and how to locate each field.  Driving the browser is the
    orchestrator's job.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Unique identifier string for this source."""
        ...

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Listing page URL without query parameters."""
        ...

    @property
    @abstractmethod
    def locators(self) -> SourceLocators:
        """Locator expressions for entries, card fields, and detail view."""
        ...

    def search_url(self, request: ScrapeRequest, *, base_url: str | None = None) -> str:
        """Listing URL with ``query`` and ``location`` encoded as ``q``/``l``."""
        params = urlencode({"q": request.query, "l": request.location})
        return f"{base_url or self.base_url}?{params}"

    @property
    def rate_limit_seconds(self) -> tuple[float, float]:
        """(min, max) seconds to pause between entries.

        Override in source-specific adapters.
        """
        return (0.1, 0.3)
