"""Configuration loading and validation.

Loads ``settings.toml`` and validates all fields at startup, before the
HTTP server accepts requests or any browser session is opened.  A bad
timeout discovered halfway through a scrape is far more costly than a
startup validation failure.

The validated config is exposed as a :class:`Settings` dataclass with
typed fields for each section: ``scraper``, ``sources``, ``browser``,
``api``, and ``cache``.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from job_scraper.errors import ActionableError

# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


@dataclass
class ScraperConfig:
    """Orchestration timing and retry budget from ``[scraper]``."""

    entry_wait_timeout: float = 10.0
    detail_wait_timeout: float = 10.0
    max_attempts: int = 3
    currency_markers: tuple[str, ...] = ("$",)


@dataclass
class SourceConfig:
    """Per-source overrides from ``[sources.<name>]``."""

    name: str
    base_url: str | None = None
    pacing_seconds: tuple[float, float] | None = None


@dataclass
class BrowserConfig:
    """Browser launch options from ``[browser]``."""

    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = 1440
    viewport_height: int = 900


@dataclass
class ApiConfig:
    """HTTP surface settings and request defaults from ``[api]``."""

    request_timeout: float = 60.0
    default_query: str = "Cannabis"
    default_location: str = "California"
    default_last_n_days: int = -1


@dataclass
class CacheConfig:
    """Result cache settings from ``[cache]``."""

    db_path: str = "data/results.sqlite"


@dataclass
class Settings:
    """Top-level validated configuration."""

    enabled_sources: list[str]
    sources: dict[str, SourceConfig] = field(default_factory=dict)
    scraper: ScraperConfig = field(default_factory=ScraperConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)


# ---------------------------------------------------------------------------
# Default settings path
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def load_settings(path: str | Path = DEFAULT_SETTINGS_PATH) -> Settings:
    """Load and validate settings from a TOML file.

    Raises :class:`~job_scraper.errors.ActionableError`:
      - CONFIG if the file is missing or a required field is absent
      - VALIDATION if field values are out of range
      - PARSE if the TOML is malformed

    Returns a fully validated :class:`Settings` instance.
    """
    filepath = Path(path)
    if not filepath.exists():
        raise ActionableError.config(
            field_name="settings_path",
            reason=f"Settings file not found: {filepath}",
            suggestion=f"Create {filepath} or copy from config/settings.toml",
        )

    raw_text = filepath.read_text(encoding="utf-8")
    try:
        data = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise ActionableError.parse(
            source="settings",
            locator="TOML syntax",
            raw_error=str(exc),
            suggestion=f"Fix TOML syntax in {filepath}",
        ) from None

    return _validate(data, filepath)


def _validate(data: dict[str, object], filepath: Path) -> Settings:
    """Validate raw TOML data and return a Settings instance."""

    # -- sources section -----------------------------------------------------
    sources_section = _require_section(data, "sources", filepath)
    enabled = _require_field(sources_section, "enabled", "sources", filepath)
    if not isinstance(enabled, list) or not enabled:
        raise ActionableError.config(
            field_name="sources.enabled",
            reason="sources.enabled must be a non-empty list of source names",
            suggestion="Add at least one source name to [sources].enabled",
        )

    source_configs: dict[str, SourceConfig] = {}
    for source_name in enabled:
        source_data = sources_section.get(source_name, {})
        if not isinstance(source_data, dict):
            raise ActionableError.config(
                field_name=f"sources.{source_name}",
                reason=f"[sources.{source_name}] must be a table, not {type(source_data).__name__}",
                suggestion=f"Define [sources.{source_name}] as a TOML table",
            )
        source_configs[source_name] = SourceConfig(
            name=source_name,
            base_url=source_data.get("base_url") or None,
            pacing_seconds=_validate_pacing(source_name, source_data.get("pacing_seconds")),
        )

    # -- scraper section -----------------------------------------------------
    scraper_data = _optional_section(data, "scraper")

    markers = scraper_data.get("currency_markers", ["$"])
    if not isinstance(markers, list) or not markers or not all(
        isinstance(m, str) and m for m in markers
    ):
        raise ActionableError.validation(
            field_name="scraper.currency_markers",
            reason="must be a non-empty list of non-empty strings",
            suggestion='Set [scraper].currency_markers = ["$"]',
        )

    scraper = ScraperConfig(
        entry_wait_timeout=float(scraper_data.get("entry_wait_timeout", 10.0)),
        detail_wait_timeout=float(scraper_data.get("detail_wait_timeout", 10.0)),
        max_attempts=int(scraper_data.get("max_attempts", 3)),
        currency_markers=tuple(markers),
    )

    for timeout_name in ("entry_wait_timeout", "detail_wait_timeout"):
        value = getattr(scraper, timeout_name)
        if value <= 0:
            raise ActionableError.validation(
                field_name=f"scraper.{timeout_name}",
                reason=f"is {value} — must be > 0",
                suggestion=f"Set [scraper].{timeout_name} to a positive number of seconds",
            )

    if scraper.max_attempts < 1:
        raise ActionableError.validation(
            field_name="scraper.max_attempts",
            reason=f"is {scraper.max_attempts} — must be >= 1",
            suggestion="Set [scraper].max_attempts to 3 (the usual budget)",
        )

    # -- browser section -----------------------------------------------------
    browser_data = _optional_section(data, "browser")

    browser = BrowserConfig(
        headless=bool(browser_data.get("headless", True)),
        user_agent=str(browser_data.get("user_agent", DEFAULT_USER_AGENT)),
        viewport_width=int(browser_data.get("viewport_width", 1440)),
        viewport_height=int(browser_data.get("viewport_height", 900)),
    )

    # -- api section ---------------------------------------------------------
    api_data = _optional_section(data, "api")

    api = ApiConfig(
        request_timeout=float(api_data.get("request_timeout", 60.0)),
        default_query=str(api_data.get("default_query", "Cannabis")),
        default_location=str(api_data.get("default_location", "California")),
        default_last_n_days=int(api_data.get("default_last_n_days", -1)),
    )

    if api.request_timeout <= 0:
        raise ActionableError.validation(
            field_name="api.request_timeout",
            reason=f"is {api.request_timeout} — must be > 0",
            suggestion="Set [api].request_timeout to a positive number of seconds",
        )

    # -- cache section -------------------------------------------------------
    cache_data = _optional_section(data, "cache")

    cache = CacheConfig(
        db_path=str(cache_data.get("db_path", "data/results.sqlite")),
    )

    return Settings(
        enabled_sources=list(enabled),
        sources=source_configs,
        scraper=scraper,
        browser=browser,
        api=api,
        cache=cache,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _validate_pacing(source_name: str, raw: object) -> tuple[float, float] | None:
    """Return a ``(lo, hi)`` pacing range, or None when not overridden."""
    if raw is None:
        return None
    if not isinstance(raw, list) or len(raw) != 2:
        raise ActionableError.validation(
            field_name=f"sources.{source_name}.pacing_seconds",
            reason="must be a two-element list [min, max]",
            suggestion=f"Set [sources.{source_name}].pacing_seconds = [0.1, 0.3]",
        )
    lo, hi = float(raw[0]), float(raw[1])
    if lo < 0 or hi < lo:
        raise ActionableError.validation(
            field_name=f"sources.{source_name}.pacing_seconds",
            reason=f"[{lo}, {hi}] — need 0 <= min <= max",
            suggestion=f"Set [sources.{source_name}].pacing_seconds = [0.1, 0.3]",
        )
    return (lo, hi)


def _optional_section(data: dict[str, object], name: str) -> dict[str, object]:
    """Return an optional top-level section, treating non-tables as empty."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        return {}
    return section


def _require_section(data: dict[str, object], name: str, filepath: Path) -> dict[str, object]:
    """Return a required top-level section, or raise CONFIG error."""
    section = data.get(name)
    if section is None or not isinstance(section, dict):
        raise ActionableError.config(
            field_name=name,
            reason=f"Required section [{name}] is missing from {filepath}",
            suggestion=f"Add a [{name}] section to {filepath}",
        )
    return section


def _require_field(
    section: dict[str, object], field_name: str, section_name: str, filepath: Path
) -> object:
    """Return a required field within a section, or raise CONFIG error."""
    value = section.get(field_name)
    if value is None:
        raise ActionableError.config(
            field_name=f"{section_name}.{field_name}",
            reason=f"Required field '{field_name}' is missing from [{section_name}] in {filepath}",
            suggestion=f"Add '{field_name}' to the [{section_name}] section in {filepath}",
        )
    return value
