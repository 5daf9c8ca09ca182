"""Field extraction — one semantic field at a time, failures isolated.

Every field is read through :func:`extract_field`, which converts any
location or read failure into ``None`` so that one missing field never
costs the whole record.  The single exception is a stale reference:
the entry changed underneath us, which is an item-level condition and
must reach the item processor's retry loop.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from job_scraper.errors import StaleElementError
from job_scraper.logging import logger

if TYPE_CHECKING:
    from job_scraper.adapters.session import BrowserSession, Element

_LEADING_DIGITS = re.compile(r"\d+")


async def extract_field(
    session: BrowserSession,
    name: str,
    locator: str,
    *,
    scope: Element | None = None,
) -> str | None:
    """Return the text of the element *locator* resolves to, or None.

    Args:
        session: Active browser session.
        name: Field name, used only for logging.
        locator: Locator expression for the field's element.
        scope: Element to search under; ``None`` searches the document.

    Raises:
        StaleElementError: propagated so the entry can be retried.
    """
    try:
        element = await session.find_one(locator, scope=scope)
        return await session.text(element)
    except StaleElementError:
        raise
    except Exception as exc:
        logger.warning("Failed to find job %s: %s", name, exc)
        return None


def is_salary(text: str, currency_markers: tuple[str, ...] = ("$",)) -> bool:
    """True when *text* begins with one of the currency markers."""
    return text.startswith(currency_markers)


async def extract_salary(
    session: BrowserSession,
    container_locator: str,
    text_locator: str,
    *,
    currency_markers: tuple[str, ...] = ("$",),
) -> str | None:
    """Read the salary from the detail view's salary container.

    The container also holds job-type chips ("Full-time"), so the text is
    only accepted when it starts with a currency marker.
    """
    try:
        container = await session.find_one(container_locator)
        element = await session.find_one(text_locator, scope=container)
        text = await session.text(element)
    except StaleElementError:
        raise
    except Exception as exc:
        logger.warning("Failed to find job salary: %s", exc)
        return None

    if not is_salary(text, currency_markers):
        logger.debug("Discarding non-salary text in salary container: %r", text)
        return None
    return text


def parse_age_days(text: str | None) -> int | None:
    """Parse the leading run of digits from a "posted N days ago" label.

    Returns None when *text* is missing or carries no digits, e.g.
    ``"Just posted"`` or ``"Today"``.

    >>> parse_age_days("Posted 10 days ago")
    10
    >>> parse_age_days("30+ days ago")
    30
    """
    if not text:
        return None
    match = _LEADING_DIGITS.search(text)
    if match is None:
        return None
    return int(match.group())
