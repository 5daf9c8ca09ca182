"""HTTP surface — ``POST /scrape/{source}`` and ``GET /scrape/{source}/{query_id}``.

A thin controller over :class:`~job_scraper.pipeline.orchestrator.ScrapeOrchestrator`
and :class:`~job_scraper.persistence.store.ResultStore`:

- 200 with ``{metadata: {queryId}, results, message}`` on a finished scrape,
  complete or not — the message tells the two apart
- 400 for a body with an unrecognized property or an ill-typed value
- 404 for an unknown source or query id
- 408 when the scrape exceeds ``[api].request_timeout``
- 500 on anything unexpected

A cache write failure never fails the request; the response carries
query id ``-1`` instead.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError

from job_scraper.adapters import AdapterRegistry
from job_scraper.adapters.base import JobSourceAdapter, ScrapeOutcome, ScrapeRequest
from job_scraper.adapters.session import BrowserSession, PlaywrightSession, SessionConfig
from job_scraper.config import Settings
from job_scraper.errors import ActionableError
from job_scraper.logging import logger
from job_scraper.persistence.store import ResultStore
from job_scraper.pipeline.orchestrator import ScrapeOrchestrator

MESSAGE_COMPLETE = "Full page scraped."
MESSAGE_PARTIAL = "Some job posts may be missing due to an exception hit while scraping."
MESSAGE_RETRIEVED = "Query Retrieved"

# Request body property (lower-cased) -> model field
_BODY_FIELDS = {
    "query": "query",
    "location": "location",
    "lastndays": "last_n_days",
}

SessionFactoryBuilder = Callable[[JobSourceAdapter], Callable[[], BrowserSession]]


class ScrapeParams(BaseModel):
    """Validated ``POST /scrape/{source}`` body.  Every property is optional."""

    model_config = ConfigDict(extra="forbid", strict=True)

    query: str | None = None
    location: str | None = None
    last_n_days: int | None = None


def parse_scrape_body(raw: bytes) -> ScrapeParams:
    """Parse and validate a request body.

    Property names match case-insensitively (``lastNdays``, ``LastNDays``).
    An empty body means "all defaults".

    Raises:
        ActionableError (VALIDATION): malformed JSON, non-object body,
        unrecognized property, or ill-typed value.
    """
    if not raw.strip():
        return ScrapeParams()

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ActionableError.validation("body", f"malformed JSON: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise ActionableError.validation("body", "must be a JSON object")

    normalized: dict[str, Any] = {}
    for name, value in data.items():
        field_name = _BODY_FIELDS.get(name.lower())
        if field_name is None:
            raise ActionableError.validation(
                name,
                f"Invalid parameter: {name}",
                suggestion="Allowed properties are query, location, lastNdays",
            )
        normalized[field_name] = value

    try:
        return ScrapeParams.model_validate(normalized)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first["loc"]) or "body"
        raise ActionableError.validation(loc, first["msg"]) from exc


def _playwright_sessions(settings: Settings) -> SessionFactoryBuilder:
    def build(adapter: JobSourceAdapter) -> Callable[[], BrowserSession]:
        config = SessionConfig.from_browser_config(adapter.source_name, settings.browser)
        return lambda: PlaywrightSession(config)

    return build


def _error_response(status_code: int, error: ActionableError) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error.to_dict())


def _posting_response(query_id: int, outcome_postings: Any, message: str) -> dict[str, Any]:
    return {
        "metadata": {"queryId": query_id},
        "results": [p.to_dict() for p in outcome_postings],
        "message": message,
    }


def create_app(
    settings: Settings,
    *,
    store: ResultStore | None = None,
    session_factories: SessionFactoryBuilder | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Validated settings.
        store: Result cache; defaults to a SQLite store at ``[cache].db_path``.
        session_factories: Maps an adapter to a browser session factory;
            defaults to Playwright sessions configured from ``[browser]``.
    """
    app = FastAPI(title="Job Scraper API")
    app.state.settings = settings
    app.state.store = store if store is not None else ResultStore(settings.cache.db_path)
    app.state.session_factories = session_factories or _playwright_sessions(settings)

    def _resolve_adapter(source: str) -> JobSourceAdapter | None:
        if source.lower() not in settings.enabled_sources:
            return None
        try:
            return AdapterRegistry.get(source)
        except ValueError:
            return None

    def _unknown_source(source: str) -> JSONResponse:
        return _error_response(
            404,
            ActionableError.validation(
                "source",
                f"Unknown source '{source}'",
                suggestion=f"Use one of: {', '.join(settings.enabled_sources)}",
            ),
        )

    @app.post("/scrape/{source}")
    async def scrape(source: str, request: Request) -> JSONResponse:
        try:
            params = parse_scrape_body(await request.body())
        except ActionableError as exc:
            logger.info("Rejected scrape request: %s", exc.error)
            return _error_response(400, exc)

        adapter = _resolve_adapter(source)
        if adapter is None:
            return _unknown_source(source)

        api = settings.api
        scrape_request = ScrapeRequest(
            query=params.query if params.query is not None else api.default_query,
            location=params.location if params.location is not None else api.default_location,
            max_age_days=(
                params.last_n_days if params.last_n_days is not None else api.default_last_n_days
            ),
        )
        source_cfg = settings.sources.get(adapter.source_name)
        orchestrator = ScrapeOrchestrator(
            adapter,
            app.state.session_factories(adapter),
            config=settings.scraper,
            pacing=source_cfg.pacing_seconds if source_cfg else None,
            base_url=source_cfg.base_url if source_cfg else None,
        )

        logger.info(
            "Scrape requested on %s: query=%r location=%r lastNdays=%s",
            adapter.source_name,
            scrape_request.query,
            scrape_request.location,
            scrape_request.max_age_days,
        )

        try:
            async with asyncio.timeout(api.request_timeout):
                outcome: ScrapeOutcome = await orchestrator.run(scrape_request)
        except TimeoutError:
            logger.warning("Scrape on %s exceeded %.0fs budget", adapter.source_name, api.request_timeout)
            return _error_response(
                408, ActionableError.timeout("scraping", api.request_timeout)
            )
        except Exception as exc:
            logger.exception("Unexpected failure scraping %s", adapter.source_name)
            return _error_response(
                500, ActionableError.from_exception(exc, adapter.source_name, "scrape")
            )

        store: ResultStore = app.state.store
        query_id = await asyncio.to_thread(store.save_or_sentinel, adapter.source_name, outcome)

        message = MESSAGE_COMPLETE if outcome.complete else MESSAGE_PARTIAL
        return JSONResponse(
            status_code=200,
            content=_posting_response(query_id, outcome.postings, message),
        )

    @app.get("/scrape/{source}/{query_id}")
    async def get_cached(source: str, query_id: int) -> JSONResponse:
        adapter = _resolve_adapter(source)
        if adapter is None:
            return _unknown_source(source)

        store: ResultStore = app.state.store
        try:
            cached = await asyncio.to_thread(store.load, query_id)
        except ActionableError as exc:
            logger.error("Result cache read failed: %s", exc.error)
            return _error_response(500, exc)

        if cached is None or cached.source != adapter.source_name:
            return _error_response(
                404,
                ActionableError.validation(
                    "queryId",
                    f"Query ID {query_id} not found in database.",
                    suggestion="Use the queryId returned by POST /scrape/{source}",
                ),
            )

        return JSONResponse(
            status_code=200,
            content=_posting_response(cached.query_id, cached.postings, MESSAGE_RETRIEVED),
        )

    return app
