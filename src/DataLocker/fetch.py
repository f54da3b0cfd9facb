# === NAVMAP v1 ===
# {
#   "module": "DataLocker.fetch",
#   "purpose": "Conditional fetch of one source and the store/link/mark sequence",
#   "sections": [
#     {"id": "build-http-client", "name": "build_http_client", "anchor": "function-build-http-client", "kind": "function"},
#     {"id": "fetchoutcome", "name": "FetchOutcome", "anchor": "class-fetchoutcome", "kind": "class"},
#     {"id": "fetchcoordinator", "name": "FetchCoordinator", "anchor": "class-fetchcoordinator", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Conditional fetch of a single source.

Responsibilities
----------------
- Issue a GET carrying ``If-Modified-Since`` derived from the source's
  ``.last_modified`` marker.
- Short-circuit on 304 and on error responses or transport failures; these
  are logged and reported, never raised.
- On fresh content: store the body, link it into the source history, then
  stamp the marker with the same timestamp.

The caller must hold the source lock for the duration of :meth:`update`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

import httpx

from DataLocker.conditional import (
    FetchDecision,
    build_conditional_headers,
    classify_status,
    touch_marker,
)
from DataLocker.config.models import HttpClientConfig
from DataLocker.errors import MalformedURLError, SourceStatus
from DataLocker.history import HistoryLinker
from DataLocker.paths import SourcePaths
from DataLocker.store import ContentStore

__all__ = ["FetchCoordinator", "FetchOutcome", "build_http_client"]

LOGGER = logging.getLogger(__name__)


def build_http_client(config: HttpClientConfig) -> httpx.Client:
    """Build the HTTPX client shared by every source of a run."""

    return httpx.Client(
        headers={"User-Agent": config.user_agent},
        timeout=httpx.Timeout(config.timeout_s),
        follow_redirects=config.follow_redirects,
        limits=httpx.Limits(max_keepalive_connections=config.max_keepalive_connections),
        verify=config.verify_tls,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FetchOutcome:
    url: str
    status: SourceStatus
    http_status: Optional[int] = None
    blob_path: Optional[Path] = None
    history_path: Optional[Path] = None
    detail: Optional[str] = None


class FetchCoordinator:
    def __init__(
        self,
        paths: SourcePaths,
        client: httpx.Client,
        *,
        store: Optional[ContentStore] = None,
        linker: Optional[HistoryLinker] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._paths = paths
        self._client = client
        self._store = store if store is not None else ContentStore(paths)
        self._linker = linker if linker is not None else HistoryLinker(paths)
        self._now = now

    def update(self, url: str) -> FetchOutcome:
        """Fetch ``url`` and record new content.

        Raises:
            StorageIOError: If the blob, history reference, or marker cannot
                be written.
            MalformedURLError: If the client rejects the URL before sending.
        """

        marker = self._paths.last_modified_path(url)
        headers = build_conditional_headers(marker)
        LOGGER.debug(
            "fetch-start url=%s if_modified_since=%s",
            url,
            headers.get("If-Modified-Since", "-"),
        )

        try:
            response = self._client.get(url, headers=headers)
        except httpx.RequestError as exc:
            LOGGER.info("fetch-error url=%s error=%s: %s", url, type(exc).__name__, exc)
            return FetchOutcome(url, SourceStatus.REMOTE_ERROR, detail=str(exc))
        except (httpx.InvalidURL, UnicodeError) as exc:
            raise MalformedURLError(f"Cannot request URL {url!r}: {exc}", url=url) from exc

        status_line = f"{response.status_code} {response.reason_phrase}".strip()
        decision = classify_status(response.status_code)
        if decision is FetchDecision.NOT_MODIFIED:
            LOGGER.info("fetch-not-modified url=%s status=%s", url, status_line)
            return FetchOutcome(
                url, SourceStatus.NOT_MODIFIED, http_status=response.status_code, detail=status_line
            )
        if decision is FetchDecision.ERROR:
            LOGGER.info("fetch-remote-error url=%s status=%s", url, status_line)
            return FetchOutcome(
                url, SourceStatus.REMOTE_ERROR, http_status=response.status_code, detail=status_line
            )

        when = self._now()
        blob = self._store.put(response.content)
        link_path = self._linker.link(blob.path, url, when)
        touch_marker(marker, when)
        LOGGER.info(
            "fetch-stored url=%s digest=%s bytes=%d history=%s",
            url,
            blob.digest,
            len(response.content),
            link_path,
        )
        return FetchOutcome(
            url,
            SourceStatus.STORED,
            http_status=response.status_code,
            blob_path=blob.path,
            history_path=link_path,
            detail=status_line,
        )
