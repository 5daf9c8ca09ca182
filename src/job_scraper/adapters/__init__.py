"""Adapter layer — IoC / Strategy pattern for job source integrations.

Importing this package triggers adapter registration via the
``@AdapterRegistry.register`` decorator on each concrete adapter.
"""

# Import concrete adapters to trigger registration
from job_scraper.adapters import indeed as _indeed  # noqa: F401
from job_scraper.adapters.base import (
    JobPosting,
    JobSourceAdapter,
    ScrapeOutcome,
    ScrapeRequest,
)
from job_scraper.adapters.registry import AdapterRegistry

__all__ = [
    "AdapterRegistry",
    "JobPosting",
    "JobSourceAdapter",
    "ScrapeOutcome",
    "ScrapeRequest",
]
