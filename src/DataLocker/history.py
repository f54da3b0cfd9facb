"""Dated history references into the blob store.

Each successful fetch adds one hard link under the source directory
(``<YYYY>/<Mon>/<DD>/<HHMMSS>``) pointing at the stored blob, so history costs
no extra bytes. Hard links require the history tree and ``.store`` to live on
the same filesystem; cross-volume deployments are rejected rather than
silently copied.
"""

from __future__ import annotations

import errno
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from DataLocker.errors import HistoryLinkError, StorageIOError
from DataLocker.paths import MONTH_ABBREVIATIONS, SourcePaths

__all__ = ["HistoryEntry", "HistoryLinker"]

logger = logging.getLogger(__name__)

_MONTH_NUMBERS = {name: index + 1 for index, name in enumerate(MONTH_ABBREVIATIONS)}


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    path: Path


def _entry_from_parts(year: str, month: str, day: str, hms: str) -> Optional[datetime]:
    if month not in _MONTH_NUMBERS or len(hms) != 6:
        return None
    try:
        return datetime(
            int(year),
            _MONTH_NUMBERS[month],
            int(day),
            int(hms[0:2]),
            int(hms[2:4]),
            int(hms[4:6]),
            tzinfo=timezone.utc,
        )
    except ValueError:
        return None


class HistoryLinker:
    def __init__(self, paths: SourcePaths) -> None:
        self._paths = paths

    def link(self, blob_path: Path, url: str, when: datetime) -> Path:
        """Create the history reference for ``url`` at ``when`` pointing at ``blob_path``.

        Raises:
            HistoryLinkError: If a reference already exists for that second or
                the blob lives on another filesystem.
            StorageIOError: If the dated directories cannot be created.
        """

        link_path = self._paths.history_path(url, when)
        try:
            link_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageIOError(
                f"Cannot create history directory {link_path.parent}: {exc}", path=link_path
            ) from exc

        try:
            os.link(blob_path, link_path)
        except FileExistsError as exc:
            raise HistoryLinkError(
                f"History reference already exists for this second: {link_path}", path=link_path
            ) from exc
        except OSError as exc:
            if exc.errno == errno.EXDEV:
                raise HistoryLinkError(
                    f"Cannot hard-link {blob_path} to {link_path}: history and store must "
                    "share one filesystem",
                    path=link_path,
                ) from exc
            raise HistoryLinkError(
                f"Cannot make link from {blob_path} to {link_path}: {exc}", path=link_path
            ) from exc

        logger.debug("history-linked url=%s link=%s blob=%s", url, link_path, blob_path)
        return link_path

    def entries(self, url: str) -> List[HistoryEntry]:
        """Return the history references of ``url`` in chronological order."""

        source_dir = self._paths.source_dir(url)
        found: List[HistoryEntry] = []
        for candidate in source_dir.glob("*/*/*/*"):
            if not candidate.is_file():
                continue
            rel = candidate.relative_to(source_dir).parts
            stamp = _entry_from_parts(*rel)
            if stamp is not None:
                found.append(HistoryEntry(timestamp=stamp, path=candidate))
        found.sort(key=lambda entry: entry.timestamp)
        return found
