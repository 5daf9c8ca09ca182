"""Actionable error hierarchy for the job scraper service.

An :class:`ActionableError` is serialized into HTTP error bodies and CLI
messages. ``error_type`` says what kind of failure it was; the rest says
what to fix (``suggestion``, ``troubleshooting``, ``ai_guidance``). It is raised
for bad settings, bad request bodies, cache failures, and unknown sources.

Browser failures are a separate, narrower family: the session capability
raises one of the :class:`BrowserSessionError` kinds and the scrape
pipeline decides, per kind, whether the failure nulls a field, retries
an entry, or aborts the page.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------


class ErrorType(StrEnum):
    """What went wrong, grouped by how the caller should respond."""

    CONFIG = "config"
    CONNECTION = "connection"
    PARSE = "parse"
    PERSISTENCE = "persistence"
    TIMEOUT = "timeout"
    VALIDATION = "validation"
    UNEXPECTED = "unexpected"


# ---------------------------------------------------------------------------
# Guidance dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AIGuidance:
    """Next actions for an automated client reading the error payload."""

    action_required: str
    command: str | None = None
    checks: list[str] | None = None
    steps: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"action_required": self.action_required}
        if self.command is not None:
            result["command"] = self.command
        if self.checks is not None:
            result["checks"] = self.checks
        if self.steps is not None:
            result["steps"] = self.steps
        return result


@dataclass(frozen=True)
class Troubleshooting:
    """Ordered steps for the person running the scraper."""

    steps: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {"steps": self.steps}


# ---------------------------------------------------------------------------
# Base actionable error
# ---------------------------------------------------------------------------


@dataclass
class ActionableError(Exception):
    """Classified failure carrying its own recovery guidance.

    Build instances through the factory classmethods; each one fills in
    the guidance for its failure kind.
    """

    error: str
    error_type: ErrorType
    service: str

    success: bool = field(default=False, init=False)
    suggestion: str | None = None
    ai_guidance: AIGuidance | None = None
    troubleshooting: Troubleshooting | None = None
    context: dict[str, Any] | None = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def __post_init__(self) -> None:
        super().__init__(self.error)

    # -- serialisation -------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Payload for logs and error responses, without unset fields."""
        result: dict[str, Any] = {
            "success": self.success,
            "error": self.error,
            "error_type": self.error_type.value,
            "service": self.service,
            "timestamp": self.timestamp,
        }
        if self.suggestion is not None:
            result["suggestion"] = self.suggestion
        if self.ai_guidance is not None:
            result["ai_guidance"] = self.ai_guidance.to_dict()
        if self.troubleshooting is not None:
            result["troubleshooting"] = self.troubleshooting.to_dict()
        if self.context is not None:
            result["context"] = self.context
        return result

    # -- factory methods -----------------------------------------------------

    @classmethod
    def config(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Missing or invalid configuration in settings.toml."""
        return cls(
            error=f"Configuration error — {field_name}: {reason}",
            error_type=ErrorType.CONFIG,
            service="settings.toml",
            suggestion=suggestion or f"Fix '{field_name}' in config/settings.toml",
            ai_guidance=AIGuidance(
                action_required=f"Correct the '{field_name}' value in config/settings.toml",
                checks=[
                    "Verify config/settings.toml exists",
                    f"Verify '{field_name}' is present and valid",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Open config/settings.toml",
                    f"2. Locate the '{field_name}' setting",
                    f"3. Fix the issue: {reason}",
                    "4. Save and restart the service",
                ]
            ),
        )

    @classmethod
    def connection(
        cls,
        service: str,
        target: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Browser could not be launched or a page could not be reached."""
        return cls(
            error=f"Cannot connect to {service} at {target}: {raw_error}",
            error_type=ErrorType.CONNECTION,
            service=service,
            suggestion=suggestion or f"Verify {service} is available at {target}",
            ai_guidance=AIGuidance(
                action_required=f"Verify {service} is reachable",
                checks=[
                    f"Is {service} installed and runnable?",
                    f"Is {target} reachable from this host?",
                    "Is a VPN or firewall blocking the connection?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Run: playwright install chromium",
                    f"2. Verify {target} loads in a regular browser",
                    "3. Retry the request",
                ]
            ),
        )

    @classmethod
    def parse(
        cls,
        source: str,
        locator: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Page structure changed — locator no longer matches."""
        return cls(
            error=f"Parse failure on {source} — locator '{locator}': {raw_error}",
            error_type=ErrorType.PARSE,
            service=source,
            suggestion=suggestion or f"The {source} page structure may have changed; update the locator",
            ai_guidance=AIGuidance(
                action_required=f"Inspect {source} page and update locator '{locator}'",
                checks=[
                    f"Open a {source} search result page in a real browser",
                    f"Verify the locator '{locator}' still matches",
                    "Update the adapter if the page structure changed",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Open a {source} search result page in your browser",
                    "2. Inspect the page structure with DevTools",
                    f"3. Verify the locator '{locator}' still exists",
                    f"4. Update the {source} adapter if needed",
                ]
            ),
        )

    @classmethod
    def persistence(
        cls,
        store: str,
        operation: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Result cache could not be read or written."""
        return cls(
            error=f"Persistence failure in {store} during {operation}: {raw_error}",
            error_type=ErrorType.PERSISTENCE,
            service=store,
            suggestion=suggestion or f"Verify {store} is writable and not locked",
            ai_guidance=AIGuidance(
                action_required=f"Check the health of {store}",
                checks=[
                    f"Does the directory holding {store} exist and is it writable?",
                    "Is another process holding a write lock on the database?",
                ],
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    "1. Check [cache].db_path in config/settings.toml",
                    "2. Verify file permissions on the database and its directory",
                    "3. Retry the request",
                ]
            ),
        )

    @classmethod
    def timeout(
        cls,
        operation: str,
        seconds: float,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Operation exceeded its wall-clock budget."""
        return cls(
            error=f"The {operation} operation timed out after {seconds:g}s",
            error_type=ErrorType.TIMEOUT,
            service=operation,
            suggestion=suggestion or "Narrow the query or raise [api].request_timeout",
            ai_guidance=AIGuidance(
                action_required="Retry with a narrower query",
                checks=[
                    "Is the source site responding slowly?",
                    "Is [api].request_timeout set too low?",
                ],
            ),
        )

    @classmethod
    def validation(
        cls,
        field_name: str,
        reason: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Input validation failure (TOML values, request bodies, CLI args)."""
        return cls(
            error=f"Validation error — {field_name}: {reason}",
            error_type=ErrorType.VALIDATION,
            service="validation",
            suggestion=suggestion or f"Fix '{field_name}': {reason}",
            ai_guidance=AIGuidance(
                action_required=f"Correct the value for '{field_name}'",
            ),
            troubleshooting=Troubleshooting(
                steps=[
                    f"1. Check the value of '{field_name}'",
                    f"2. Issue: {reason}",
                    "3. Correct and retry",
                ]
            ),
        )

    @classmethod
    def unexpected(
        cls,
        service: str,
        operation: str,
        raw_error: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Catch-all for truly unexpected failures."""
        return cls(
            error=f"Unexpected error in {service} during {operation}: {raw_error}",
            error_type=ErrorType.UNEXPECTED,
            service=service,
            suggestion=suggestion or "This is an unexpected error — check logs for details",
            ai_guidance=AIGuidance(
                action_required="Analyze the error and escalate if needed",
                checks=[
                    "Check the full traceback in logs",
                    f"Is {service} in a known-good state?",
                ],
            ),
        )

    @classmethod
    def from_exception(
        cls,
        error: Exception,
        service: str,
        operation: str,
        *,
        suggestion: str | None = None,
    ) -> ActionableError:
        """Auto-classify an exception by keyword patterns.

        A caller-supplied ``suggestion`` is always preserved — it carries
        context the generic classifier cannot infer.
        """
        error_str = str(error).lower()
        raw_error = str(error)

        if isinstance(error, TimeoutError) or any(
            kw in error_str for kw in ("timeout", "timed out")
        ):
            return cls.connection(service, operation, raw_error, suggestion=suggestion)

        if any(kw in error_str for kw in ("connection refused", "unreachable", "resolve")):
            return cls.connection(service, operation, raw_error, suggestion=suggestion)

        if any(kw in error_str for kw in ("executable doesn't exist", "playwright install")):
            return cls.connection(
                service,
                operation,
                raw_error,
                suggestion=suggestion or "Run 'playwright install chromium' on this host",
            )

        return cls.unexpected(service, operation, raw_error, suggestion=suggestion)


# ---------------------------------------------------------------------------
# Browser session failure kinds
# ---------------------------------------------------------------------------


class BrowserSessionError(Exception):
    """Base class for failures raised through the browser session capability."""

    def __init__(self, locator: str, message: str = "") -> None:
        self.locator = locator
        super().__init__(message or locator)


class ElementNotFoundError(BrowserSessionError):
    """No element matched the locator."""


class StaleElementError(BrowserSessionError):
    """The element handle's node was detached by a page mutation."""


class InteractionBlockedError(BrowserSessionError):
    """Another element (usually an overlay) intercepted the interaction."""


class WaitTimeoutError(BrowserSessionError):
    """A bounded wait elapsed before the locator resolved."""
