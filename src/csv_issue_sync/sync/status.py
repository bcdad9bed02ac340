"""Codec between the auxiliary status and the remote label list.

On the tracker side a status travels as an ordinary label carrying a
fixed prefix (``status:in-progress``).  Locally it is its own column.
This module is the only place that decides whether a label is a status
marker.
"""

from __future__ import annotations

import re

_STATUS_NOISE = re.compile(r"[\s_\-]+")


def normalize_status(value: str | None) -> str:
    """Normalise a status for comparison.

    ``"In Progress"``, ``"in-progress"`` and ``"in_progress"`` all map to
    ``"inprogress"``.
    """
    if not value:
        return ""
    return _STATUS_NOISE.sub("", value.strip().lower())


def statuses_equal(left: str | None, right: str | None) -> bool:
    return normalize_status(left) == normalize_status(right)


class StatusCodec:
    """Encode / decode the auxiliary status into a label list.

    Args:
        prefix: Label prefix marking a status label.
        enabled: When ``False`` both directions are the identity, so
            status labels are treated as plain labels.
    """

    def __init__(self, prefix: str = "status:", enabled: bool = True) -> None:
        self.prefix = prefix
        self.enabled = enabled

    def is_status_label(self, label: str) -> bool:
        return self.enabled and label.lower().startswith(self.prefix.lower())

    def decode(
        self, labels: tuple[str, ...] | list[str]
    ) -> tuple[str | None, tuple[str, ...]]:
        """Split *labels* into ``(status, other_labels)``.

        The first status label wins; any further status labels are
        dropped.
        """
        if not self.enabled:
            return None, tuple(labels)

        status: str | None = None
        rest: list[str] = []
        for label in labels:
            if self.is_status_label(label):
                if status is None:
                    status = label[len(self.prefix):].strip() or None
                continue
            rest.append(label)
        return status, tuple(rest)

    def encode(
        self, labels: tuple[str, ...] | list[str], status: str | None
    ) -> tuple[str, ...]:
        """Return *labels* with exactly one status label for *status*."""
        if not self.enabled:
            return tuple(labels)

        rest = [label for label in labels if not self.is_status_label(label)]
        if status:
            rest.append(f"{self.prefix}{status.strip()}")
        return tuple(rest)
