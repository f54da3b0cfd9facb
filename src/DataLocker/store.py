"""Content-addressable blob store.

Blobs live under ``<root>/.store`` keyed by a filename-safe SHA-256 digest,
with a two-level directory fan-out taken from the first four digest
characters to avoid hot directories::

    .store/Xy/Zw/XyZw...   (43-character digest)
"""

from __future__ import annotations

import base64
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

from DataLocker.errors import StorageIOError
from DataLocker.paths import SourcePaths

__all__ = ["Blob", "ContentStore", "content_digest"]

logger = logging.getLogger(__name__)

DIGEST_LENGTH = 43


def content_digest(data: bytes) -> str:
    """Return the unpadded, URL-safe base64 SHA-256 digest of ``data``.

    ``+`` and ``/`` are mapped to ``-`` and ``_`` so the digest can be used as a
    path component.
    """

    raw = hashlib.sha256(data).digest()
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class Blob:
    digest: str
    path: Path


class ContentStore:
    """Write-through store; every call touches disk."""

    def __init__(self, paths: SourcePaths) -> None:
        self._paths = paths

    @property
    def root(self) -> Path:
        return self._paths.store_dir

    def path_for(self, digest: str) -> Path:
        """Return the storage path for ``digest``.

        Raises:
            ValueError: If ``digest`` is not a store digest.
        """
        if len(digest) != DIGEST_LENGTH or "/" in digest or "." in digest:
            raise ValueError(f"Invalid digest: {digest!r}")
        return self.root / digest[:2] / digest[2:4] / digest

    def put(self, data: bytes) -> Blob:
        digest = content_digest(data)
        path = self.path_for(digest)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # Rewritten even when present: same bytes, and repairs a damaged copy.
            with path.open("wb") as handle:
                handle.write(data)
        except OSError as exc:
            raise StorageIOError(f"Cannot write blob {path}: {exc}", path=path) from exc
        logger.debug("blob-stored digest=%s bytes=%d path=%s", digest, len(data), path)
        return Blob(digest=digest, path=path)

    def store(self, data: bytes) -> Path:
        """Store ``data`` and return the absolute blob path."""

        return self.put(data).path
