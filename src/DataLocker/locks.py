# === NAVMAP v1 ===
# {
#   "module": "DataLocker.locks",
#   "purpose": "Per-source PID lock files with stale-owner reclamation",
#   "sections": [
#     {"id": "processtable", "name": "ProcessTable", "anchor": "class-processtable", "kind": "class"},
#     {"id": "psutilprocesstable", "name": "PsutilProcessTable", "anchor": "class-psutilprocesstable", "kind": "class"},
#     {"id": "lockstatus", "name": "LockStatus", "anchor": "class-lockstatus", "kind": "class"},
#     {"id": "lockmanager", "name": "LockManager", "anchor": "class-lockmanager", "kind": "class"}
#   ]
# }
# === /NAVMAP ===

"""Advisory per-source locking for concurrent DataLocker invocations.

Responsibilities
----------------
- Map each source to a ``.lock`` sentinel file holding the owner's PID.
- Refuse the lock while a live instance of this tool holds it and the lock is
  younger than the staleness threshold.
- Reclaim locks whose owner is gone, is not this tool, or has held the lock
  past the threshold; a stale but still running owner is sent a best-effort
  termination signal first.
- Only ever delete a lock file that carries the caller's own PID.

Design Notes
------------
- Liveness is answered by a :class:`ProcessTable`; :class:`PsutilProcessTable`
  is the production implementation and tests inject fakes.
- The protocol is best-effort: the exclusive create narrows the window between
  two first-time acquirers but stale reclamation is not atomic. This suits a
  low-frequency scheduled job, not a high-contention service.
"""

from __future__ import annotations

import contextlib
import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterator, Optional, Protocol

import psutil

from DataLocker.errors import LockIOError
from DataLocker.paths import SourcePaths

__all__ = [
    "STALE_AFTER_SECONDS",
    "LockManager",
    "LockState",
    "LockStatus",
    "ProcessTable",
    "PsutilProcessTable",
]

LOGGER = logging.getLogger(__name__)

STALE_AFTER_SECONDS = 180.0
DEFAULT_PROCESS_MARKER = "datalocker"
_LOCK_FILE_MODE = 0o644


class ProcessTable(Protocol):
    """Liveness oracle consulted before a lock is refused or reclaimed."""

    def is_tool_process(self, pid: int) -> bool:
        """Return ``True`` if ``pid`` is alive and is an instance of this tool."""
        ...

    def stop(self, pid: int) -> None:
        """Ask ``pid`` to terminate; must not raise if it is already gone."""
        ...


class PsutilProcessTable:
    """:class:`ProcessTable` backed by :mod:`psutil`.

    A process counts as this tool when ``marker`` appears (case-insensitively)
    in its command line, which covers both the ``datalocker`` console script
    and ``python -m DataLocker``.
    """

    def __init__(self, marker: str = DEFAULT_PROCESS_MARKER) -> None:
        self.marker = marker.lower()

    def is_tool_process(self, pid: int) -> bool:
        if pid <= 0:
            return False
        try:
            cmdline = " ".join(psutil.Process(pid).cmdline())
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            # Alive but opaque; refusing while fresh is the safe reading.
            return True
        return self.marker in cmdline.lower()

    def stop(self, pid: int) -> None:
        try:
            psutil.Process(pid).terminate()
        except (psutil.NoSuchProcess, psutil.AccessDenied) as exc:
            LOGGER.debug("lock-stop-skipped pid=%s reason=%s", pid, type(exc).__name__)
        else:
            LOGGER.info("lock-stop-sent pid=%s", pid)


class LockState(str, Enum):
    UNLOCKED = "unlocked"
    LOCKED_BY_ME = "locked_by_me"
    LOCKED_BY_OTHER = "locked_by_other"
    STALE = "stale"


@dataclass(frozen=True)
class LockStatus:
    state: LockState
    owner_pid: Optional[int] = None
    age_seconds: Optional[float] = None
    owner_alive: bool = False


def _parse_pid(text: str) -> Optional[int]:
    token = text.strip().split("\n", 1)[0].strip()
    try:
        pid = int(token)
    except ValueError:
        return None
    return pid if pid > 0 else None


class LockManager:
    """Acquire and release per-source lock files.

    Args:
        paths: Resolver for the lock file locations.
        process_table: Liveness oracle; defaults to :class:`PsutilProcessTable`.
        pid: PID recorded as owner; defaults to the current process.
        stale_after: Seconds after which a held lock may be reclaimed.
        stop_stale_owner: Signal a live owner before reclaiming its stale lock.
        clock: Wall-clock source compared against lock file mtimes.
    """

    def __init__(
        self,
        paths: SourcePaths,
        *,
        process_table: Optional[ProcessTable] = None,
        pid: Optional[int] = None,
        stale_after: float = STALE_AFTER_SECONDS,
        stop_stale_owner: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if stale_after <= 0:
            raise ValueError(f"stale_after must be > 0, got {stale_after}")
        self._paths = paths
        self._processes = process_table if process_table is not None else PsutilProcessTable()
        self._pid = pid
        self._stale_after = float(stale_after)
        self._stop_stale_owner = stop_stale_owner
        self._clock = clock

    @property
    def pid(self) -> int:
        return self._pid if self._pid is not None else os.getpid()

    def inspect(self, url: str) -> LockStatus:
        """Classify the current lock state of ``url`` from the caller's point of view."""

        lock_path = self._paths.lock_path(url)
        try:
            text = lock_path.read_text(encoding="utf-8")
            mtime = lock_path.stat().st_mtime
        except FileNotFoundError:
            return LockStatus(LockState.UNLOCKED)
        except OSError as exc:
            raise LockIOError(f"Cannot read lock file {lock_path}: {exc}", path=lock_path) from exc

        owner = _parse_pid(text)
        age = max(self._clock() - mtime, 0.0)
        if owner is not None and owner == self.pid:
            return LockStatus(LockState.LOCKED_BY_ME, owner, age, owner_alive=True)

        alive = owner is not None and self._processes.is_tool_process(owner)
        if alive and age < self._stale_after:
            return LockStatus(LockState.LOCKED_BY_OTHER, owner, age, owner_alive=True)
        return LockStatus(LockState.STALE, owner, age, owner_alive=alive)

    def acquire(self, url: str) -> bool:
        """Try to take the lock for ``url``.

        Returns:
            ``False`` when another live instance holds a fresh lock, ``True``
            otherwise.

        Raises:
            LockIOError: If the lock file cannot be created or written.
        """

        lock_path = self._paths.lock_path(url)
        try:
            lock_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LockIOError(
                f"Cannot create lock directory {lock_path.parent}: {exc}", path=lock_path
            ) from exc

        if self._create_exclusive(lock_path):
            LOGGER.debug("lock-acquired url=%s pid=%s lock_file=%s", url, self.pid, lock_path)
            return True

        status = self.inspect(url)
        if status.state is LockState.LOCKED_BY_OTHER:
            LOGGER.debug(
                "lock-refused url=%s pid=%s owner=%s age_s=%.1f",
                url,
                self.pid,
                status.owner_pid,
                status.age_seconds or 0.0,
            )
            return False

        if status.state is LockState.STALE:
            LOGGER.info(
                "lock-reclaim url=%s pid=%s owner=%s owner_alive=%s age_s=%.1f",
                url,
                self.pid,
                status.owner_pid,
                status.owner_alive,
                status.age_seconds or 0.0,
            )
            if status.owner_alive and status.owner_pid is not None and self._stop_stale_owner:
                self._processes.stop(status.owner_pid)

        self._write_owner(lock_path)
        LOGGER.debug("lock-acquired url=%s pid=%s lock_file=%s", url, self.pid, lock_path)
        return True

    def release(self, url: str) -> bool:
        """Remove the lock for ``url`` if, and only if, the caller owns it."""

        lock_path = self._paths.lock_path(url)
        try:
            text = lock_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            LOGGER.debug(
                "lock-release-skipped url=%s pid=%s reason=already-removed", url, self.pid
            )
            return False
        except OSError as exc:
            raise LockIOError(f"Cannot read lock file {lock_path}: {exc}", path=lock_path) from exc

        owner = _parse_pid(text)
        if owner != self.pid:
            LOGGER.debug(
                "lock-release-skipped url=%s pid=%s reason=owned-by owner=%s", url, self.pid, owner
            )
            return False

        try:
            lock_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise LockIOError(f"Cannot remove lock file {lock_path}: {exc}", path=lock_path) from exc
        LOGGER.debug("lock-released url=%s pid=%s", url, self.pid)
        return True

    @contextlib.contextmanager
    def hold(self, url: str) -> Iterator[bool]:
        """Yield whether the lock was acquired; release it on exit if it was."""

        acquired = self.acquire(url)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(url)

    def _create_exclusive(self, lock_path: Path) -> bool:
        try:
            fd = os.open(lock_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _LOCK_FILE_MODE)
        except FileExistsError:
            return False
        except OSError as exc:
            raise LockIOError(f"Cannot create lock file {lock_path}: {exc}", path=lock_path) from exc
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(f"{self.pid}\n")
        return True

    def _write_owner(self, lock_path: Path) -> None:
        try:
            lock_path.write_text(f"{self.pid}\n", encoding="utf-8")
        except OSError as exc:
            raise LockIOError(
                f"Cannot open lock file {lock_path} for write: {exc}", path=lock_path
            ) from exc
