# === NAVMAP v1 ===
# {
#   "module": "DataLocker.errors",
#   "purpose": "Exception taxonomy and per-source outcome codes.",
#   "sections": [
#     {"id": "datalockererror", "name": "DataLockerError", "anchor": "class-datalockererror", "kind": "class"},
#     {"id": "storageioerror", "name": "StorageIOError", "anchor": "class-storageioerror", "kind": "class"},
#     {"id": "malformedurlerror", "name": "MalformedURLError", "anchor": "class-malformedurlerror", "kind": "class"},
#     {"id": "sourcestatus", "name": "SourceStatus", "anchor": "class-sourcestatus", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Exception taxonomy and per-source outcome codes.

Responsibilities
----------------
- Define the hard failures (:class:`StorageIOError` and its subclasses,
  :class:`MalformedURLError`, :class:`UrlListError`) that propagate out of a
  source update up to the orchestrator boundary.
- Provide :class:`SourceStatus`, the closed set of outcomes a single source can
  end a run with. Soft outcomes (lock contention, not-modified, remote errors)
  are reported through this enum and never raised.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

__all__ = (
    "DataLockerError",
    "StorageIOError",
    "LockIOError",
    "HistoryLinkError",
    "MalformedURLError",
    "UrlListError",
    "SourceStatus",
)


class DataLockerError(Exception):
    """Base class for all DataLocker failures."""


class StorageIOError(DataLockerError):
    """Raised when the storage tree cannot be read or written."""

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.path = path


class LockIOError(StorageIOError):
    """Raised when a lock file cannot be created, read, or rewritten."""


class HistoryLinkError(StorageIOError):
    """Raised when a dated history reference cannot be created."""


class MalformedURLError(DataLockerError, ValueError):
    """Raised when a URL cannot be split into host and resource name."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url


class UrlListError(DataLockerError):
    """Raised when the URL list file is missing or unreadable."""


class SourceStatus(str, Enum):
    """Final state of one source after a run."""

    STORED = "stored"
    NOT_MODIFIED = "not_modified"
    REMOTE_ERROR = "remote_error"
    LOCKED = "locked"
    MALFORMED = "malformed"
    FAILED = "failed"

    @property
    def is_failure(self) -> bool:
        return self in (SourceStatus.MALFORMED, SourceStatus.FAILED)
