"""Path derivation for sources and their well-known files.

Every component resolves on-disk locations through :class:`SourcePaths` so the
layout below is defined in exactly one place::

    <root>/.store/<d1>/<d2>/<digest>              content blobs
    <root>/<host>/<resource>/.lock                per-source lock
    <root>/<host>/<resource>/.last_modified       last successful fetch marker
    <root>/<host>/<resource>/<YYYY>/<Mon>/<DD>/<HHMMSS>   history references
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Tuple
from urllib.parse import unquote, urlsplit

from DataLocker.errors import MalformedURLError

__all__ = [
    "STORE_DIR_NAME",
    "LOCK_FILE_NAME",
    "LAST_MODIFIED_FILE_NAME",
    "MONTH_ABBREVIATIONS",
    "SourcePaths",
    "split_source_url",
    "to_utc",
]

STORE_DIR_NAME = ".store"
LOCK_FILE_NAME = ".lock"
LAST_MODIFIED_FILE_NAME = ".last_modified"

# Fixed English names; strftime("%b") would follow the process locale.
MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


def split_source_url(url: str) -> Tuple[str, str]:
    """Return ``(host, resource)`` for ``url``.

    The host is lower-cased without port or credentials; the resource is the
    percent-decoded final path segment.

    Raises:
        MalformedURLError: If either component is missing or the resource
            would escape the host directory.
    """

    try:
        parts = urlsplit(url.strip())
        host = parts.hostname
    except ValueError as exc:
        raise MalformedURLError(f"Cannot parse URL {url!r}: {exc}", url=url) from exc

    if not host:
        raise MalformedURLError(f"URL has no host: {url!r}", url=url)

    resource = unquote(parts.path.rsplit("/", 1)[-1])
    if not resource or resource in (".", "..") or "/" in resource or "\x00" in resource:
        raise MalformedURLError(f"URL has no usable resource name: {url!r}", url=url)
    try:
        os.fsencode(host)
        os.fsencode(resource)
    except UnicodeError as exc:
        raise MalformedURLError(f"URL is not a valid file name: {url!r}", url=url) from exc
    return host, resource


def to_utc(when: datetime) -> datetime:
    """Normalise ``when`` to an aware UTC datetime; naive values are taken as UTC."""

    if when.tzinfo is None:
        return when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc)


@dataclass(frozen=True)
class SourcePaths:
    """Storage-root-bound path resolver."""

    root: Path

    def __post_init__(self) -> None:
        object.__setattr__(self, "root", Path(self.root).expanduser().absolute())

    @property
    def store_dir(self) -> Path:
        return self.root / STORE_DIR_NAME

    def source_dir(self, url: str) -> Path:
        host, resource = split_source_url(url)
        return self.root / host / resource

    def last_modified_path(self, url: str) -> Path:
        return self.source_dir(url) / LAST_MODIFIED_FILE_NAME

    def lock_path(self, url: str) -> Path:
        return self.source_dir(url) / LOCK_FILE_NAME

    def history_path(self, url: str, when: datetime) -> Path:
        """Return the dated history reference path for ``when`` (second resolution, UTC)."""

        stamp = to_utc(when)
        return (
            self.source_dir(url)
            / f"{stamp.year:04d}"
            / MONTH_ABBREVIATIONS[stamp.month - 1]
            / f"{stamp.day:02d}"
            / stamp.strftime("%H%M%S")
        )
