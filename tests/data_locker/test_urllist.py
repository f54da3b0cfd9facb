from __future__ import annotations

from pathlib import Path

import pytest

from DataLocker.errors import UrlListError
from DataLocker.urllist import parse_url_lines, read_url_list


def test_comments_and_blank_lines_are_dropped():
    lines = [
        "# header comment\n",
        "http://example.org/a.xml\n",
        "\n",
        "   \n",
        "http://example.org/b.xml  # trailing comment\r\n",
        "  http://example.org/c.xml\n",
        "#http://example.org/disabled.xml\n",
    ]

    assert list(parse_url_lines(lines)) == [
        "http://example.org/a.xml",
        "http://example.org/b.xml",
        "http://example.org/c.xml",
    ]


def test_read_url_list(tmp_path: Path):
    path = tmp_path / ".urllist"
    path.write_text("http://h.test/one\n# skip\nhttp://h.test/two", encoding="utf-8")

    assert read_url_list(path) == ["http://h.test/one", "http://h.test/two"]


def test_missing_list_raises(tmp_path: Path):
    with pytest.raises(UrlListError, match="Cannot open URL list"):
        read_url_list(tmp_path / ".urllist")


def test_undecodable_bytes_stay_on_their_own_line(tmp_path: Path):
    path = tmp_path / ".urllist"
    path.write_bytes(b"http://h.test/\xff.txt\nhttp://h.test/two\n")

    assert read_url_list(path) == ["http://h.test/\ufffd.txt", "http://h.test/two"]
