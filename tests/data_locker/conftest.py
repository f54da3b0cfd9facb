"""Shared fixtures for DataLocker tests."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Set

import httpx
import pytest

from DataLocker.paths import SourcePaths


class FakeProcessTable:
    """In-memory process table: ``live`` PIDs are instances of the tool."""

    def __init__(self, live: Set[int] | None = None) -> None:
        self.live: Set[int] = set(live or ())
        self.stopped: List[int] = []

    def is_tool_process(self, pid: int) -> bool:
        return pid in self.live

    def stop(self, pid: int) -> None:
        self.stopped.append(pid)
        self.live.discard(pid)


class SteppingClock:
    """Returns successive UTC datetimes one second apart."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = datetime.fromtimestamp(value.timestamp() + 1, tz=timezone.utc)
        return value


@pytest.fixture()
def storage_root(tmp_path: Path) -> Path:
    root = tmp_path / "locker"
    root.mkdir()
    return root


@pytest.fixture()
def source_paths(storage_root: Path) -> SourcePaths:
    return SourcePaths(storage_root)


@pytest.fixture()
def process_table() -> FakeProcessTable:
    return FakeProcessTable()


@pytest.fixture()
def clock() -> SteppingClock:
    return SteppingClock(datetime(2024, 3, 5, 14, 7, 9, tzinfo=timezone.utc))


@pytest.fixture()
def make_client() -> Iterator[Callable[[Callable[[httpx.Request], httpx.Response]], httpx.Client]]:
    """Build HTTPX clients over a MockTransport handler; closed at teardown."""

    clients: List[httpx.Client] = []

    def _factory(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()


@pytest.fixture()
def age_file() -> Callable[[Path, float], None]:
    """Push a file's mtime the given number of seconds into the past."""

    def _age(path: Path, seconds: float) -> None:
        stamp = path.stat().st_mtime - seconds
        os.utime(path, (stamp, stamp))

    return _age


@pytest.fixture()
def history_files() -> Callable[[Path], List[Path]]:
    def _list(source_dir: Path) -> List[Path]:
        return sorted(p for p in source_dir.glob("*/*/*/*") if p.is_file())

    return _list
