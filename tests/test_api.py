"""HTTP API tests — POST /scrape/{source} and GET /scrape/{source}/{query_id}.

The FastAPI app is exercised in-process through ``TestClient`` with a
real SQLite result cache under ``tmp_path`` and scripted browser
sessions in place of Playwright.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from job_scraper.adapters.base import JobPosting, ScrapeOutcome
from job_scraper.api.app import (
    MESSAGE_COMPLETE,
    MESSAGE_PARTIAL,
    MESSAGE_RETRIEVED,
    create_app,
    parse_scrape_body,
)
from job_scraper.errors import (
    ActionableError,
    ErrorType,
    InteractionBlockedError,
    WaitTimeoutError,
)
from job_scraper.persistence.store import ResultStore

if TYPE_CHECKING:
    from collections.abc import Callable

    from tests.conftest import FakeSession


@pytest.fixture
def store(make_settings) -> ResultStore:
    return ResultStore(make_settings().cache.db_path)


@pytest.fixture
def make_client(test_adapter, make_settings, store: ResultStore):
    """Factory fixture — returns a callable that builds a TestClient.

    ``session`` is either a prepared FakeSession (reused for every
    request) or a zero-argument callable producing one per request.

    Returns ``(client, sessions)`` where ``sessions`` collects every
    session handed to a scrape.
    """

    def _factory(
        session: FakeSession | Callable[[], FakeSession],
        *,
        request_timeout: float = 5.0,
    ) -> tuple[TestClient, list[FakeSession]]:
        sessions: list[FakeSession] = []

        def _next_session() -> FakeSession:
            current = session() if callable(session) else session
            sessions.append(current)
            return current

        app = create_app(
            make_settings(request_timeout=request_timeout),
            store=store,
            session_factories=lambda adapter: _next_session,
        )
        return TestClient(app), sessions

    return _factory


def _results_titles(body: dict[str, Any]) -> list[str | None]:
    return [item["title"] for item in body["results"]]


class TestScrapeEndpoint:
    """REQUIREMENT: POST /scrape/{source} runs a scrape and reports completeness.

    WHO: The client integrating job postings into their own product
    WHAT: A finished scrape returns 200 with queryId, results, and a
          message that says whether the page was read to the end; an
          empty body falls back to the configured defaults; the result
          is cached under the returned queryId
    WHY: Partial results are still useful, but only if the client can
         tell they are partial
    MOCK BOUNDARY:
        Mock:  FakeSession (scripted browser)
        Real:  FastAPI app, ScrapeOrchestrator, ResultStore (tmp_path)
        Never: Playwright, network
    """

    def test_complete_scrape_returns_full_page_message(
        self, make_client, make_session, make_entry
    ) -> None:
        """A fully read page returns 200, every posting, and the complete message."""
        client, _ = make_client(make_session([make_entry("First"), make_entry("Second")]))

        response = client.post("/scrape/testsource", json={"query": "python"})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == MESSAGE_COMPLETE
        assert _results_titles(body) == ["First", "Second"]
        assert body["metadata"]["queryId"] > 0
        assert set(body["results"][0]) == {"title", "company", "location", "description", "salary"}

    def test_missing_fields_are_null_in_response(
        self, make_client, make_session, make_entry, make_page
    ) -> None:
        """Absent fields appear as JSON null rather than being dropped."""
        session = make_session([make_entry(company=None)], page=make_page(salary="Full-time"))
        client, _ = make_client(session)

        body = client.post("/scrape/testsource", json={}).json()

        assert body["results"][0]["company"] is None
        assert body["results"][0]["salary"] is None

    def test_partial_scrape_returns_partial_message(
        self, make_client, make_session, make_entry
    ) -> None:
        """A blocked click still returns 200 with prior postings and the partial message."""
        entries = [make_entry("First"), make_entry("Blocked", click=InteractionBlockedError("card"))]
        client, _ = make_client(make_session(entries))

        response = client.post("/scrape/testsource", json={})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == MESSAGE_PARTIAL
        assert _results_titles(body) == ["First"]

    def test_unreadable_page_returns_empty_partial_result(self, make_client, make_session) -> None:
        """Entries that never appear give an empty result flagged as partial."""
        client, _ = make_client(make_session(WaitTimeoutError("card")))

        body = client.post("/scrape/testsource", json={}).json()

        assert body["results"] == []
        assert body["message"] == MESSAGE_PARTIAL

    def test_empty_body_uses_default_query_and_location(
        self, make_client, make_session, make_entry
    ) -> None:
        """No body at all scrapes the configured default query and location."""
        client, sessions = make_client(make_session([make_entry()]))

        response = client.post("/scrape/testsource")

        assert response.status_code == 200
        assert sessions[0].visited == ["https://jobs.example.org/search?q=Cannabis&l=California"]

    @pytest.mark.parametrize("key", ["lastNdays", "lastndays", "LASTNDAYS", "LastNDays"])
    def test_property_names_match_case_insensitively(
        self, make_client, make_session, make_entry, key: str
    ) -> None:
        """Any casing of lastNdays enables the age filter."""
        entries = [
            make_entry("Old", age="Posted 10 days ago"),
            make_entry("Fresh", age="Posted 3 days ago"),
        ]
        client, _ = make_client(lambda: make_session(entries))

        body = client.post("/scrape/testsource", json={key: 7}).json()

        assert _results_titles(body) == ["Fresh"]

    def test_source_segment_matches_case_insensitively(
        self, make_client, make_session, make_entry
    ) -> None:
        """/scrape/TestSource resolves to the testsource adapter."""
        client, _ = make_client(make_session([make_entry()]))

        assert client.post("/scrape/TestSource", json={}).status_code == 200

    def test_result_is_cached_under_returned_query_id(
        self, make_client, make_session, make_entry, store: ResultStore
    ) -> None:
        """The queryId in the response loads the same postings from the cache."""
        client, _ = make_client(make_session([make_entry("Cached")]))

        body = client.post("/scrape/testsource", json={}).json()
        cached = store.load(body["metadata"]["queryId"])

        assert cached is not None
        assert [p.title for p in cached.postings] == ["Cached"]

    def test_cache_write_failure_returns_sentinel_query_id(
        self, make_client, make_session, make_entry, store: ResultStore
    ) -> None:
        """A failed cache write still returns the results, with queryId -1."""
        client, _ = make_client(make_session([make_entry("Uncached")]))

        with patch.object(
            store,
            "save",
            side_effect=ActionableError.persistence("results.sqlite", "save", "disk full"),
        ):
            response = client.post("/scrape/testsource", json={})

        assert response.status_code == 200
        body = response.json()
        assert body["metadata"]["queryId"] == -1
        assert _results_titles(body) == ["Uncached"]


class TestScrapeRejections:
    """REQUIREMENT: Bad requests are rejected with a classified error body.

    WHO: The client debugging their integration
    WHAT: An unknown body property, malformed JSON, or an ill-typed
          value returns 400; an unknown or disabled source returns 404;
          a scrape over the time budget returns 408 and releases the
          browser; an unexpected failure returns 500
    WHY: Silently ignoring a misspelled property would return results
         the client did not ask for
    MOCK BOUNDARY:
        Mock:  FakeSession (scripted browser), ScrapeOrchestrator.run (500 case)
        Real:  FastAPI app, body validation
        Never: Playwright, network
    """

    def test_unknown_property_returns_400_naming_it(
        self, make_client, make_session, make_entry
    ) -> None:
        """A property outside query/location/lastNdays is rejected by name."""
        client, sessions = make_client(make_session([make_entry()]))

        response = client.post("/scrape/testsource", json={"query": "x", "keywords": "y"})

        assert response.status_code == 400
        body = response.json()
        assert body["error_type"] == ErrorType.VALIDATION
        assert "Invalid parameter: keywords" in body["error"]
        assert sessions == []

    def test_malformed_json_returns_400(self, make_client, make_session, make_entry) -> None:
        """A body that is not JSON is rejected before any browser work."""
        client, _ = make_client(make_session([make_entry()]))

        response = client.post(
            "/scrape/testsource",
            content=b"{query: python",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400

    @pytest.mark.parametrize(
        "body",
        [{"lastNdays": "7"}, {"lastNdays": 7.5}, {"query": 42}, {"location": ["Remote"]}],
    )
    def test_ill_typed_value_returns_400(
        self, make_client, make_session, make_entry, body: dict[str, Any]
    ) -> None:
        """Values are not coerced; a string day count is an error."""
        client, _ = make_client(make_session([make_entry()]))

        assert client.post("/scrape/testsource", json=body).status_code == 400

    def test_unknown_source_returns_404(self, make_client, make_session, make_entry) -> None:
        """A source with no adapter is not found."""
        client, _ = make_client(make_session([make_entry()]))

        response = client.post("/scrape/monster", json={})

        assert response.status_code == 404
        assert "monster" in response.json()["error"]

    def test_registered_but_disabled_source_returns_404(
        self, make_client, make_session, make_entry
    ) -> None:
        """indeed is registered but not enabled in these settings."""
        client, _ = make_client(make_session([make_entry()]))

        assert client.post("/scrape/indeed", json={}).status_code == 404

    def test_scrape_over_budget_returns_408_and_closes_session(
        self, make_client, make_session, make_entry
    ) -> None:
        """A scrape still waiting for entries past request_timeout is cancelled."""
        session = make_session([make_entry()], entry_delay=5.0)
        client, _ = make_client(session, request_timeout=0.05)

        response = client.post("/scrape/testsource", json={})

        assert response.status_code == 408
        assert response.json()["error_type"] == ErrorType.TIMEOUT
        assert session.closed

    def test_unexpected_failure_returns_500(self, make_client, make_session, make_entry) -> None:
        """An exception escaping the orchestrator becomes a classified 500."""
        client, _ = make_client(make_session([make_entry()]))

        with patch(
            "job_scraper.api.app.ScrapeOrchestrator.run",
            new=AsyncMock(side_effect=RuntimeError("renderer exploded")),
        ):
            response = client.post("/scrape/testsource", json={})

        assert response.status_code == 500
        body = response.json()
        assert body["error_type"] == ErrorType.UNEXPECTED
        assert "renderer exploded" in body["error"]


class TestCachedResults:
    """REQUIREMENT: GET /scrape/{source}/{query_id} returns a cached result.

    WHO: The client re-reading an earlier scrape
    WHAT: A known id under the right source returns 200 with the cached
          postings and "Query Retrieved"; an unknown id, an id saved
          under another source, or an unknown source returns 404
    WHY: The queryId is the client's only handle on a past scrape
    MOCK BOUNDARY:
        Mock:  FakeSession (scripted browser)
        Real:  FastAPI app, ResultStore (tmp_path)
        Never: Playwright, network
    """

    def test_known_query_id_returns_cached_postings(
        self, make_client, make_session, make_entry
    ) -> None:
        """The GET body mirrors the POST body with the retrieved message."""
        client, _ = make_client(make_session([make_entry("First"), make_entry("Second")]))
        posted = client.post("/scrape/testsource", json={}).json()
        query_id = posted["metadata"]["queryId"]

        response = client.get(f"/scrape/testsource/{query_id}")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == MESSAGE_RETRIEVED
        assert body["metadata"]["queryId"] == query_id
        assert body["results"] == posted["results"]

    def test_unknown_query_id_returns_404(self, make_client, make_session) -> None:
        """An id that was never issued is not found."""
        client, _ = make_client(make_session([]))

        response = client.get("/scrape/testsource/424242")

        assert response.status_code == 404
        assert "not found in database" in response.json()["error"]

    def test_query_id_from_other_source_returns_404(
        self, make_client, make_session, store: ResultStore
    ) -> None:
        """A cached result is only visible under the source that produced it."""
        query_id = store.save(
            "indeed", ScrapeOutcome(postings=(JobPosting(title="Elsewhere"),), complete=True)
        )
        client, _ = make_client(make_session([]))

        assert client.get(f"/scrape/testsource/{query_id}").status_code == 404

    def test_unknown_source_returns_404(self, make_client, make_session) -> None:
        """The source segment is validated on reads too."""
        client, _ = make_client(make_session([]))

        assert client.get("/scrape/monster/1").status_code == 404

    def test_cache_read_failure_returns_500(
        self, make_client, make_session, store: ResultStore
    ) -> None:
        """A broken cache is reported as a persistence error."""
        client, _ = make_client(make_session([]))

        with patch.object(
            store,
            "load",
            side_effect=ActionableError.persistence("results.sqlite", "load", "corrupt"),
        ):
            response = client.get("/scrape/testsource/1")

        assert response.status_code == 500
        assert response.json()["error_type"] == ErrorType.PERSISTENCE


class TestBodyParsing:
    """REQUIREMENT: Request bodies are parsed strictly and case-insensitively.

    WHO: The HTTP handler turning raw bytes into scrape parameters
    WHAT: Empty or whitespace bodies mean all defaults; known properties
          map regardless of case; anything else raises VALIDATION
    WHY: Validation must happen before a browser is launched
    """

    @pytest.mark.parametrize("raw", [b"", b"   ", b"\n"])
    def test_blank_body_means_defaults(self, raw: bytes) -> None:
        """No properties set."""
        params = parse_scrape_body(raw)

        assert params.query is None
        assert params.location is None
        assert params.last_n_days is None

    def test_known_properties_are_mapped(self) -> None:
        """Mixed-case names land on the right fields."""
        params = parse_scrape_body(b'{"QUERY": "rust", "Location": "Berlin", "lastNDays": 14}')

        assert params.query == "rust"
        assert params.location == "Berlin"
        assert params.last_n_days == 14

    def test_explicit_null_means_default(self) -> None:
        """A property set to null is treated as absent."""
        assert parse_scrape_body(b'{"query": null}').query is None

    @pytest.mark.parametrize("raw", [b"[1, 2]", b'"query"', b"42"])
    def test_non_object_body_is_rejected(self, raw: bytes) -> None:
        """Only a JSON object can carry scrape parameters."""
        with pytest.raises(ActionableError) as exc_info:
            parse_scrape_body(raw)

        assert exc_info.value.error_type == ErrorType.VALIDATION
