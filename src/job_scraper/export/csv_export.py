"""CSV export."""

from __future__ import annotations

import csv
import logging
from typing import TYPE_CHECKING

from job_scraper.adapters.base import POSTING_FIELDS

if TYPE_CHECKING:
    from collections.abc import Sequence

    from job_scraper.adapters.base import JobPosting

logger = logging.getLogger(__name__)


class CSVExporter:
    """Renders postings as a CSV file suitable for spreadsheet import."""

    def export(self, postings: Sequence[JobPosting], output_path: str) -> None:
        """Write a CSV with header row, one row per posting in discovery order.

        Missing fields are written as empty cells.
        """
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(POSTING_FIELDS)

            for posting in postings:
                record = posting.to_dict()
                writer.writerow([record[name] or "" for name in POSTING_FIELDS])

        logger.info("Wrote %d postings to %s", len(postings), output_path)
