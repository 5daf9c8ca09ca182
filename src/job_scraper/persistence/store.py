"""Result cache — serialized scrape results keyed by an integer query id.

A thin SQLite wrapper.  Each saved scrape becomes one row whose
``results`` column holds the JSON array produced by
:func:`~job_scraper.adapters.base.dump_postings`; the autoincrement
primary key is the query id handed back to HTTP clients.

All SQLite failures surface as :class:`~job_scraper.errors.ActionableError`
(PERSISTENCE).  Callers on the request path treat a failed write as
non-fatal and report the sentinel id :data:`UNSAVED_QUERY_ID`.
"""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from job_scraper.adapters.base import JobPosting, ScrapeOutcome, dump_postings, load_postings
from job_scraper.errors import ActionableError
from job_scraper.logging import logger

UNSAVED_QUERY_ID = -1

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS query_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT NOT NULL,
    results TEXT NOT NULL,
    complete INTEGER NOT NULL,
    created_at TEXT NOT NULL
);
"""


@dataclass(frozen=True)
class StoredResult:
    """One cached scrape, as read back from the store."""

    query_id: int
    source: str
    postings: list[JobPosting]
    complete: bool
    created_at: str


class ResultStore:
    """Reads and writes cached scrape results.

    Usage::

        store = ResultStore("data/results.sqlite")
        query_id = store.save("indeed", outcome)
        cached = store.load(query_id)
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with sqlite3.connect(self.db_path) as conn:
                conn.execute(SCHEMA_SQL)
        except (OSError, sqlite3.Error) as exc:
            raise ActionableError.persistence(
                str(self.db_path), "schema setup", str(exc)
            ) from exc
        logger.debug("Result store initialized at %s", self.db_path)

    def save(self, source: str, outcome: ScrapeOutcome) -> int:
        """Persist *outcome*'s postings and return the new query id."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                cur = conn.execute(
                    "INSERT INTO query_results (source, results, complete, created_at) "
                    "VALUES (?, ?, ?, ?)",
                    (
                        source,
                        dump_postings(outcome.postings),
                        int(outcome.complete),
                        datetime.now(UTC).isoformat(),
                    ),
                )
                query_id = cur.lastrowid
        except sqlite3.Error as exc:
            raise ActionableError.persistence(str(self.db_path), "save", str(exc)) from exc

        if query_id is None:
            raise ActionableError.persistence(
                str(self.db_path), "save", "insert did not return a row id"
            )
        logger.info("Cached %d postings from %s as query %d", len(outcome.postings), source, query_id)
        return query_id

    def load(self, query_id: int) -> StoredResult | None:
        """Return the cached result for *query_id*, or None if unknown."""
        try:
            with sqlite3.connect(self.db_path) as conn:
                row = conn.execute(
                    "SELECT id, source, results, complete, created_at "
                    "FROM query_results WHERE id = ?",
                    (query_id,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise ActionableError.persistence(str(self.db_path), "load", str(exc)) from exc

        if row is None:
            return None

        try:
            postings = load_postings(row[2])
        except (json.JSONDecodeError, TypeError, AttributeError) as exc:
            raise ActionableError.persistence(
                str(self.db_path), "load", f"corrupt results for query {query_id}: {exc}"
            ) from exc

        return StoredResult(
            query_id=row[0],
            source=row[1],
            postings=postings,
            complete=bool(row[3]),
            created_at=row[4],
        )

    def save_or_sentinel(self, source: str, outcome: ScrapeOutcome) -> int:
        """Like :meth:`save`, but a write failure yields :data:`UNSAVED_QUERY_ID`."""
        try:
            return self.save(source, outcome)
        except ActionableError as exc:
            logger.warning("Result cache write failed — returning id %d: %s", UNSAVED_QUERY_ID, exc.error)
            return UNSAVED_QUERY_ID
