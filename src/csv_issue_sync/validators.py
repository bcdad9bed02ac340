"""
Input validation functions for CSV cells.

Each validator returns ``(is_valid, error_message)`` so the CSV store can
attach the row number before raising.
"""

import re

VALID_STATES = ("open", "closed")

_DIGITS = re.compile(r"[0-9]+")


# ---------------------------------------------------------------------------
# Error message formatting helpers
# ---------------------------------------------------------------------------


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Issue id")
        reason: Description of validation failure (e.g., "must be a number")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_key(key: str) -> tuple[bool, str]:
    """
    Validate the ``id`` cell of a row.

    Args:
        key: The raw cell value (already trimmed)

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Empty is valid (the row is not linked yet)
        - Otherwise must be a positive integer
    """
    if not key:
        return (True, "")

    if not _DIGITS.fullmatch(key) or int(key) <= 0:
        return (
            False,
            format_validation_error(
                "Issue id", f"must be a positive integer, got {key!r}"
            ),
        )

    return (True, "")


def validate_state(state: str) -> tuple[bool, str]:
    """
    Validate the ``state`` cell of a row.

    Args:
        state: The raw cell value (already trimmed)

    Returns:
        Tuple of (is_valid, error_message).

    Validation rules:
        - Blank is valid (treated as open)
        - Otherwise must be one of ``open`` / ``closed``, any case
    """
    if not state:
        return (True, "")

    if state.lower() not in VALID_STATES:
        return (
            False,
            format_validation_error(
                "State", f"must be one of {', '.join(VALID_STATES)}, got {state!r}"
            ),
        )

    return (True, "")


def parse_labels(raw: str) -> tuple[str, ...]:
    """
    Split a comma-joined label cell.

    Entries are trimmed, blanks dropped and repeated names collapsed,
    keeping first-seen order.
    """
    if not raw or not raw.strip():
        return ()
    seen: list[str] = []
    for label in raw.split(","):
        label = label.strip()
        if label and label not in seen:
            seen.append(label)
    return tuple(seen)
