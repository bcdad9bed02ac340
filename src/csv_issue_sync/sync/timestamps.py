"""ISO-8601 timestamp helpers.

Timestamps are stored as the strings the tracker hands out, but every
ordering decision goes through ``parse_timestamp`` so that values with
different precision or offsets still compare chronologically.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted and naive values are taken as UTC.

    Args:
        value: Timestamp string, possibly blank.

    Returns:
        The parsed instant, or ``None`` when *value* is blank or cannot
        be parsed (a warning is logged in the latter case).
    """
    if value is None or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning("Ignoring unparseable timestamp %r", value)
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def is_newer(candidate: str | None, reference: str | None) -> bool:
    """Return ``True`` if *candidate* is strictly later than *reference*.

    An unparseable *candidate* is never newer.  A parseable *candidate*
    is newer than an unparseable *reference*.
    """
    left = parse_timestamp(candidate)
    if left is None:
        return False
    right = parse_timestamp(reference)
    if right is None:
        return True
    return left > right


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()
