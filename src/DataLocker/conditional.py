"""
Conditional Request Helpers

Builds the ``If-Modified-Since`` precondition from a source's
``.last_modified`` marker and classifies origin responses into the three
outcomes the fetch coordinator acts on.

Key Features:
- Marker mtime rendered as an RFC 1123 HTTP date (always GMT).
- Missing or unreadable markers produce an unconditional request.
- Marker updates pin the mtime to the fetch timestamp used for the history
  reference.

Usage:
    from DataLocker.conditional import build_conditional_headers, classify_status

    headers = build_conditional_headers(marker_path)
    response = client.get(url, headers=headers)
    status = classify_status(response.status_code)
"""

from __future__ import annotations

import os
from datetime import datetime
from email.utils import formatdate
from enum import Enum
from pathlib import Path
from typing import Dict

from DataLocker.errors import StorageIOError

__all__ = [
    "FetchDecision",
    "build_conditional_headers",
    "classify_status",
    "if_modified_since",
    "touch_marker",
]

HTTP_NOT_MODIFIED = 304


class FetchDecision(str, Enum):
    MODIFIED = "modified"
    NOT_MODIFIED = "not_modified"
    ERROR = "error"


def if_modified_since(marker: Path) -> str:
    """Return the HTTP date of ``marker``'s mtime, or ``""`` if it is not readable.

    Examples:
        >>> if_modified_since(Path("/nonexistent/.last_modified"))
        ''
    """

    if not os.access(marker, os.R_OK):
        return ""
    try:
        mtime = marker.stat().st_mtime
    except OSError:
        return ""
    return formatdate(mtime, usegmt=True)


def build_conditional_headers(marker: Path) -> Dict[str, str]:
    """Generate request headers carrying the marker precondition, if any."""

    value = if_modified_since(marker)
    return {"If-Modified-Since": value} if value else {}


def classify_status(status_code: int) -> FetchDecision:
    """Map a final HTTP status to the coordinator's decision.

    Examples:
        >>> classify_status(304).value
        'not_modified'
        >>> classify_status(503).value
        'error'
        >>> classify_status(200).value
        'modified'
    """

    if status_code == HTTP_NOT_MODIFIED:
        return FetchDecision.NOT_MODIFIED
    if status_code >= 400:
        return FetchDecision.ERROR
    return FetchDecision.MODIFIED


def touch_marker(marker: Path, when: datetime) -> None:
    """Create ``marker`` if needed and set its mtime to ``when``.

    Raises:
        StorageIOError: If the marker cannot be created or stamped.
    """

    stamp = when.timestamp()
    try:
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.touch(exist_ok=True)
        os.utime(marker, (stamp, stamp))
    except OSError as exc:
        raise StorageIOError(f"Cannot touch last modified file {marker}: {exc}", path=marker) from exc
