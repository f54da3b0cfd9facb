"""DataLocker: content-addressed, versioned snapshots of a URL list.

Public entry points are re-exported here for scripting; the CLI lives in
:mod:`DataLocker.cli`.
"""

from DataLocker.errors import (
    DataLockerError,
    HistoryLinkError,
    LockIOError,
    MalformedURLError,
    SourceStatus,
    StorageIOError,
    UrlListError,
)
from DataLocker.fetch import FetchCoordinator, FetchOutcome
from DataLocker.history import HistoryEntry, HistoryLinker
from DataLocker.locks import LockManager, LockState, ProcessTable, PsutilProcessTable
from DataLocker.paths import SourcePaths
from DataLocker.runner import Orchestrator, RunResult
from DataLocker.store import Blob, ContentStore, content_digest

__version__ = "0.1.0"

__all__ = [
    "Blob",
    "ContentStore",
    "DataLockerError",
    "FetchCoordinator",
    "FetchOutcome",
    "HistoryEntry",
    "HistoryLinkError",
    "HistoryLinker",
    "LockIOError",
    "LockManager",
    "LockState",
    "MalformedURLError",
    "Orchestrator",
    "ProcessTable",
    "PsutilProcessTable",
    "RunResult",
    "SourcePaths",
    "SourceStatus",
    "StorageIOError",
    "UrlListError",
    "content_digest",
]
