"""CLI command handlers for the job scraper service.

Each public function corresponds to a CLI subcommand and encapsulates
the wiring, orchestration, and output for that command.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from job_scraper.adapters import AdapterRegistry


def handle_sources() -> None:
    """List all registered source adapters."""
    sources = AdapterRegistry.list_registered()
    if not sources:
        print("No adapters registered.")
        return
    print("Registered sources:")
    for name in sorted(sources):
        print(f"  - {name}")


def handle_scrape(args: argparse.Namespace) -> None:
    """Run one scrape from the command line and print or write the results."""
    from job_scraper.adapters.base import ScrapeRequest
    from job_scraper.adapters.session import PlaywrightSession, SessionConfig
    from job_scraper.config import load_settings
    from job_scraper.export import CSVExporter, JSONExporter
    from job_scraper.persistence.store import ResultStore
    from job_scraper.pipeline.orchestrator import ScrapeOrchestrator

    settings = load_settings(args.settings)

    if args.source.lower() not in settings.enabled_sources:
        print(
            f"Error: Source '{args.source}' is not enabled in {args.settings} "
            f"(enabled: {', '.join(settings.enabled_sources)})"
        )
        sys.exit(1)
    try:
        adapter = AdapterRegistry.get(args.source)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    source_cfg = settings.sources.get(adapter.source_name)
    session_config = SessionConfig.from_browser_config(adapter.source_name, settings.browser)
    if args.headed:
        session_config.headless = False

    orchestrator = ScrapeOrchestrator(
        adapter,
        lambda: PlaywrightSession(session_config),
        config=settings.scraper,
        pacing=source_cfg.pacing_seconds if source_cfg else None,
        base_url=source_cfg.base_url if source_cfg else None,
    )
    request = ScrapeRequest(
        query=args.query if args.query is not None else settings.api.default_query,
        location=args.location if args.location is not None else settings.api.default_location,
        max_age_days=(
            args.last_n_days if args.last_n_days is not None else settings.api.default_last_n_days
        ),
    )

    outcome = asyncio.run(orchestrator.run(request))

    query_id = None
    if args.cache:
        query_id = ResultStore(settings.cache.db_path).save_or_sentinel(
            adapter.source_name, outcome
        )

    if args.format == "csv":
        if not args.output:
            print("Error: --output is required for CSV export")
            sys.exit(1)
        CSVExporter().export(outcome.postings, args.output)
        print(f"Exported CSV → {args.output}")
    elif args.output:
        JSONExporter().export(outcome, args.output, query_id=query_id)
        print(f"Exported JSON → {args.output}")
    else:
        print(JSONExporter().render(outcome, query_id=query_id))

    if not outcome.complete:
        print(
            "Warning: some job posts may be missing due to an exception hit while scraping.",
            file=sys.stderr,
        )


def handle_show(args: argparse.Namespace) -> None:
    """Print a cached result set by query id."""
    import json

    from job_scraper.config import load_settings
    from job_scraper.persistence.store import ResultStore

    settings = load_settings(args.settings)
    cached = ResultStore(settings.cache.db_path).load(args.query_id)
    if cached is None:
        print(f"Error: No cached results with query id {args.query_id}")
        sys.exit(1)

    print(f"Query {cached.query_id} — {cached.source} — {cached.created_at}")
    print(f"Complete: {cached.complete}  Postings: {len(cached.postings)}")
    print(json.dumps([p.to_dict() for p in cached.postings], indent=2))


def handle_serve(args: argparse.Namespace) -> None:
    """Start the HTTP API under uvicorn."""
    import uvicorn

    from job_scraper.api.app import create_app
    from job_scraper.config import load_settings
    from job_scraper.logging import configure_file_logging

    settings = load_settings(args.settings)
    if args.log_dir:
        configure_file_logging(args.log_dir)

    app = create_app(settings)
    uvicorn.run(app, host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="job-scraper",
        description="Scrape job postings from JavaScript-rendered listing pages",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default="config/settings.toml",
        help="Path to settings.toml (default: config/settings.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug detail to stderr",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # -- serve ---------------------------------------------------------------
    serve_p = sub.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve_p.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_p.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Also write logs to a timestamped file in this directory",
    )

    # -- scrape --------------------------------------------------------------
    scrape_p = sub.add_parser("scrape", help="Run a single scrape and print the results")
    scrape_p.add_argument("--source", type=str, default="indeed", help="Source to scrape")
    scrape_p.add_argument("--query", type=str, default=None, help="Search keywords")
    scrape_p.add_argument("--location", type=str, default=None, help="Search location")
    scrape_p.add_argument(
        "--last-n-days",
        type=int,
        default=None,
        metavar="N",
        help="Only keep postings at most N days old (<= 0 disables)",
    )
    scrape_p.add_argument(
        "--format",
        choices=["json", "csv"],
        default="json",
        help="Output format (default: json)",
    )
    scrape_p.add_argument("--output", type=str, default=None, help="Write to this file")
    scrape_p.add_argument(
        "--cache",
        action="store_true",
        help="Also store the results in the result cache",
    )
    scrape_p.add_argument(
        "--headed",
        action="store_true",
        help="Show the browser window",
    )

    # -- show ----------------------------------------------------------------
    show_p = sub.add_parser("show", help="Print cached results by query id")
    show_p.add_argument("query_id", type=int, help="Query id from a previous scrape")

    # -- sources -------------------------------------------------------------
    sub.add_parser("sources", help="List registered source adapters")

    return parser
