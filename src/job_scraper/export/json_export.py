"""JSON export — the same envelope the HTTP API returns."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from job_scraper.adapters.base import ScrapeOutcome

logger = logging.getLogger(__name__)


class JSONExporter:
    """Renders a scrape outcome as ``{complete, count, results}``."""

    def render(self, outcome: ScrapeOutcome, *, query_id: int | None = None) -> str:
        payload: dict[str, Any] = {
            "complete": outcome.complete,
            "count": len(outcome.postings),
            "results": [p.to_dict() for p in outcome.postings],
        }
        if query_id is not None:
            payload["queryId"] = query_id
        return json.dumps(payload, indent=2)

    def export(
        self,
        outcome: ScrapeOutcome,
        output_path: str,
        *,
        query_id: int | None = None,
    ) -> None:
        Path(output_path).write_text(self.render(outcome, query_id=query_id), encoding="utf-8")
        logger.info("Wrote %d postings to %s", len(outcome.postings), output_path)
