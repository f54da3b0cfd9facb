"""Tests for the content-addressable blob store."""

from __future__ import annotations

import base64
import hashlib
from pathlib import Path

import pytest

from DataLocker.errors import StorageIOError
from DataLocker.paths import SourcePaths
from DataLocker.store import ContentStore, content_digest


class TestContentDigest:
    def test_digest_is_filename_safe_base64_sha256(self):
        data = b"\xfb\xff" * 50
        expected = (
            base64.b64encode(hashlib.sha256(data).digest())
            .decode("ascii")
            .rstrip("=")
            .replace("+", "-")
            .replace("/", "_")
        )

        assert content_digest(data) == expected
        assert len(content_digest(data)) == 43
        assert "/" not in content_digest(data)
        assert "+" not in content_digest(data)


class TestContentStore:
    def test_path_uses_two_level_fanout(self, source_paths: SourcePaths):
        store = ContentStore(source_paths)
        path = store.store(b"hello world")
        digest = content_digest(b"hello world")

        assert path == source_paths.root / ".store" / digest[:2] / digest[2:4] / digest
        assert path.is_absolute()
        assert path.read_bytes() == b"hello world"

    def test_identical_bytes_share_a_path(self, source_paths: SourcePaths):
        store = ContentStore(source_paths)

        assert store.store(b"same") == store.store(bytes(b"same"))

    def test_distinct_bytes_get_distinct_paths(self, source_paths: SourcePaths):
        store = ContentStore(source_paths)

        assert store.store(b"one") != store.store(b"two")

    def test_store_is_idempotent(self, source_paths: SourcePaths):
        store = ContentStore(source_paths)

        first = store.store(b"payload")
        second = store.store(b"payload")

        blobs = [p for p in store.root.rglob("*") if p.is_file()]
        assert first == second
        assert blobs == [first]
        assert first.read_bytes() == b"payload"

    def test_store_repairs_corrupted_blob(self, source_paths: SourcePaths):
        store = ContentStore(source_paths)
        path = store.store(b"original")
        path.write_bytes(b"garbage")

        assert store.store(b"original") == path
        assert path.read_bytes() == b"original"

    def test_empty_payload_is_storable(self, source_paths: SourcePaths):
        blob = ContentStore(source_paths).put(b"")

        assert blob.path.exists()
        assert blob.path.read_bytes() == b""

    def test_path_for_rejects_non_digests(self, source_paths: SourcePaths):
        store = ContentStore(source_paths)

        with pytest.raises(ValueError):
            store.path_for("abc")
        with pytest.raises(ValueError):
            store.path_for("../" + "a" * 40)

    def test_unwritable_root_raises_storage_error(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        store = ContentStore(SourcePaths(blocker))

        with pytest.raises(StorageIOError) as excinfo:
            store.store(b"data")
        assert excinfo.value.path is not None
