"""CLI entry point for the job scraper service."""

from __future__ import annotations

import logging
import sys

from job_scraper.cli import (
    build_parser,
    handle_scrape,
    handle_serve,
    handle_show,
    handle_sources,
)
from job_scraper.errors import ActionableError
from job_scraper.logging import set_console_level


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    if args.verbose:
        set_console_level(logging.DEBUG)

    try:
        if args.command == "serve":
            handle_serve(args)
        elif args.command == "scrape":
            handle_scrape(args)
        elif args.command == "show":
            handle_show(args)
        elif args.command == "sources":
            handle_sources()
    except ActionableError as exc:
        print(f"Error: {exc.error}", file=sys.stderr)
        if exc.suggestion:
            print(f"  {exc.suggestion}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
