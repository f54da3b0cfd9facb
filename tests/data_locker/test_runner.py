"""End-to-end tests for the orchestrator loop."""

from __future__ import annotations

import logging

import httpx
import pytest

from DataLocker.config import DataLockerConfig
from DataLocker.errors import SourceStatus
from DataLocker.fetch import FetchCoordinator
from DataLocker.locks import LockManager
from DataLocker.runner import Orchestrator

NEWS = "http://example.org/feeds/news.xml"
DATA = "https://data.example.net/exports/daily.csv"

MY_PID = 1000
OTHER_PID = 2000


class ConditionalServer:
    """Serves a fixed body, answering 304 once a precondition is sent."""

    def __init__(self, bodies: dict[str, bytes]) -> None:
        self.bodies = bodies
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if "If-Modified-Since" in request.headers:
            return httpx.Response(304)
        body = self.bodies.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, content=body)


@pytest.fixture()
def build(source_paths, process_table, make_client, clock):
    def _build(handler) -> Orchestrator:
        locks = LockManager(source_paths, process_table=process_table, pid=MY_PID)
        coordinator = FetchCoordinator(source_paths, make_client(handler), now=clock)
        return Orchestrator(locks, coordinator)

    return _build


def test_first_run_stores_second_run_is_not_modified(build, source_paths, history_files):
    server = ConditionalServer({NEWS: b"<rss>hello</rss>"})
    orchestrator = build(server)

    first = orchestrator.run([NEWS])
    second = orchestrator.run([NEWS])

    assert [o.status for o in first.outcomes] == [SourceStatus.STORED]
    assert [o.status for o in second.outcomes] == [SourceStatus.NOT_MODIFIED]
    assert "If-Modified-Since" not in server.requests[0].headers
    assert "If-Modified-Since" in server.requests[1].headers
    links = history_files(source_paths.source_dir(NEWS))
    assert len(links) == 1
    assert links[0].read_bytes() == b"<rss>hello</rss>"
    assert not source_paths.lock_path(NEWS).exists()


def test_identical_content_across_sources_is_stored_once(build, source_paths):
    server = ConditionalServer({NEWS: b"same", DATA: b"same"})

    result = build(server).run([NEWS, DATA])

    assert result.counts()[SourceStatus.STORED] == 2
    blobs = [p for p in source_paths.store_dir.rglob("*") if p.is_file()]
    assert len(blobs) == 1
    assert blobs[0].stat().st_nlink == 3


def test_contended_source_is_skipped_untouched(build, source_paths, process_table):
    process_table.live.add(OTHER_PID)
    LockManager(source_paths, process_table=process_table, pid=OTHER_PID).acquire(NEWS)
    server = ConditionalServer({NEWS: b"a", DATA: b"b"})

    result = build(server).run([NEWS, DATA])

    assert [o.status for o in result.outcomes] == [SourceStatus.LOCKED, SourceStatus.STORED]
    assert [str(r.url) for r in server.requests] == [DATA]
    assert source_paths.lock_path(NEWS).read_text(encoding="utf-8").strip() == str(OTHER_PID)
    assert result.has_failures is False


def test_malformed_url_does_not_stop_the_batch(build):
    server = ConditionalServer({DATA: b"b"})

    result = build(server).run(["http://example.org/", DATA])

    assert [o.status for o in result.outcomes] == [SourceStatus.MALFORMED, SourceStatus.STORED]
    assert result.has_failures is True


@pytest.mark.parametrize(
    "bad_url",
    ["http://example.org/x\x7f.txt", "http://example.org/x\ud800.txt"],
)
def test_unrequestable_url_is_malformed_and_the_batch_continues(build, source_paths, bad_url):
    server = ConditionalServer({DATA: b"b"})

    result = build(server).run([bad_url, DATA])

    assert [o.status for o in result.outcomes] == [SourceStatus.MALFORMED, SourceStatus.STORED]
    assert [str(r.url) for r in server.requests] == [DATA]
    assert not source_paths.lock_path(DATA).exists()


def test_storage_failure_releases_lock_and_continues(build, source_paths):
    source_paths.store_dir.parent.mkdir(parents=True, exist_ok=True)
    source_paths.store_dir.write_text("in the way")
    server = ConditionalServer({NEWS: b"a", DATA: b"b"})

    result = build(server).run([NEWS, DATA])

    assert [o.status for o in result.outcomes] == [SourceStatus.FAILED, SourceStatus.FAILED]
    assert len(server.requests) == 2
    assert not source_paths.lock_path(NEWS).exists()
    assert not source_paths.lock_path(DATA).exists()
    assert not source_paths.last_modified_path(NEWS).exists()


def test_remote_error_is_soft(build, source_paths):
    result = build(ConditionalServer({})).run([NEWS])

    assert [o.status for o in result.outcomes] == [SourceStatus.REMOTE_ERROR]
    assert result.has_failures is False
    assert not source_paths.lock_path(NEWS).exists()


def test_from_config_uses_injected_client(storage_root, make_client, process_table):
    config = DataLockerConfig(root=storage_root)
    client = make_client(ConditionalServer({NEWS: b"x"}))

    with Orchestrator.from_config(config, client=client, process_table=process_table) as orch:
        result = orch.run([NEWS])

    assert result.outcomes[0].status is SourceStatus.STORED
    assert not client.is_closed


def test_log_lines_carry_the_lock_owner_pid(build, caplog):
    server = ConditionalServer({DATA: b"b"})

    with caplog.at_level(logging.DEBUG, logger="DataLocker"):
        build(server).run([DATA])

    pids = [m for m in caplog.messages if "pid=" in m]
    assert pids
    assert all(f"pid={MY_PID}" in m for m in pids)
