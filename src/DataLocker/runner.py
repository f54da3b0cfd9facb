# === NAVMAP v1 ===
# {
#   "module": "DataLocker.runner",
#   "purpose": "Sequential Lock → Fetch → Store/Link → Unlock loop over the URL list",
#   "sections": [
#     {"id": "runresult", "name": "RunResult", "anchor": "class-runresult", "kind": "class"},
#     {"id": "orchestrator", "name": "Orchestrator", "anchor": "class-orchestrator", "kind": "class"}
#   ]
# }
# === /NAVMAP ===
"""Execution harness for a DataLocker run.

Responsibilities
----------------
- Drive each source through lock, conditional fetch, and release, one source
  at a time.
- Contain failures per source: a malformed URL or a storage failure is logged
  and recorded, and the loop moves on to the next source.
- Own the HTTP client when built from configuration.

Usage:
    config = load_config("datalocker.yaml")
    with Orchestrator.from_config(config) as orchestrator:
        result = orchestrator.run(read_url_list(config.url_list_path))
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import httpx

from DataLocker.config.models import DataLockerConfig
from DataLocker.errors import DataLockerError, MalformedURLError, SourceStatus
from DataLocker.fetch import FetchCoordinator, FetchOutcome, build_http_client
from DataLocker.locks import LockManager, ProcessTable, PsutilProcessTable
from DataLocker.paths import SourcePaths

__all__ = ["Orchestrator", "RunResult"]

_LOGGER = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Per-source outcomes of one run, in processing order."""

    outcomes: List[FetchOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    def counts(self) -> Dict[SourceStatus, int]:
        tally = Counter(outcome.status for outcome in self.outcomes)
        return {status: tally.get(status, 0) for status in SourceStatus}

    @property
    def has_failures(self) -> bool:
        return any(outcome.status.is_failure for outcome in self.outcomes)


class Orchestrator:
    """Sequential per-source driver; see module docstring."""

    def __init__(
        self,
        locks: LockManager,
        coordinator: FetchCoordinator,
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.locks = locks
        self.coordinator = coordinator
        self._client = client

    @classmethod
    def from_config(
        cls,
        config: DataLockerConfig,
        *,
        client: Optional[httpx.Client] = None,
        process_table: Optional[ProcessTable] = None,
    ) -> Orchestrator:
        """Build every collaborator from ``config``.

        A client passed in stays owned by the caller; otherwise one is built
        and closed with the orchestrator.
        """

        paths = SourcePaths(config.root)
        owned_client = None
        if client is None:
            client = owned_client = build_http_client(config.http)
        locks = LockManager(
            paths,
            process_table=process_table or PsutilProcessTable(config.locks.process_marker),
            stale_after=config.locks.stale_after_seconds,
            stop_stale_owner=config.locks.stop_stale_owner,
        )
        return cls(locks, FetchCoordinator(paths, client), client=owned_client)

    def __enter__(self) -> Orchestrator:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def process(self, url: str) -> FetchOutcome:
        """Run one source; never raises for per-source failures."""

        _LOGGER.debug("source-start url=%s pid=%s", url, self.locks.pid)
        try:
            with self.locks.hold(url) as acquired:
                if not acquired:
                    _LOGGER.debug("source-skipped url=%s reason=locked", url)
                    return FetchOutcome(url, SourceStatus.LOCKED)
                return self.coordinator.update(url)
        except MalformedURLError as exc:
            _LOGGER.error("source-malformed url=%s error=%s", url, exc)
            return FetchOutcome(url, SourceStatus.MALFORMED, detail=str(exc))
        except (DataLockerError, OSError, httpx.HTTPError) as exc:
            _LOGGER.exception("source-failed url=%s pid=%s", url, self.locks.pid)
            return FetchOutcome(url, SourceStatus.FAILED, detail=str(exc))

    def run(self, urls: Iterable[str]) -> RunResult:
        result = RunResult()
        for url in urls:
            result.outcomes.append(self.process(url))
        counts = result.counts()
        _LOGGER.info(
            "run-complete total=%d %s",
            result.total,
            " ".join(f"{status.value}={counts[status]}" for status in SourceStatus),
        )
        return result
