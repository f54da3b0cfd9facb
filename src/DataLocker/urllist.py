"""URL list reading: one URL per line, ``#`` starts a comment."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Iterator, List

from DataLocker.errors import UrlListError

__all__ = ["parse_url_lines", "read_url_list"]

_COMMENT = re.compile(r"#.*$")


def parse_url_lines(lines: Iterable[str]) -> Iterator[str]:
    """Yield the URLs in ``lines`` with comments and blank lines removed."""

    for line in lines:
        url = _COMMENT.sub("", line.rstrip("\r\n")).strip()
        if url:
            yield url


def read_url_list(path: Path) -> List[str]:
    """Read ``path``; undecodable bytes are replaced so one bad line stays one bad source."""

    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise UrlListError(f"Cannot open URL list {path}: {exc}") from exc
    return list(parse_url_lines(text.splitlines()))
