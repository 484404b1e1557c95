"""Shrink OCR text to a character budget by dropping noise and repeated lines."""

from __future__ import annotations

import re
from typing import List

KEY_PREFIX_CHARS = 24
MIN_KEY_CHARS = 8

_WS_RE = re.compile(r"\s")
_TRAILING_WS_RE = re.compile(r"[ \t]+\n")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def strip_noise(text: str | None) -> str:
    return _BLANK_RUN_RE.sub(
        "\n\n", _TRAILING_WS_RE.sub("\n", (text or "").replace("\r", ""))
    ).strip()


def dedup_key(line: str) -> str:
    """Whitespace-insensitive prefix used to spot repeated lines."""

    return _WS_RE.sub("", line)[:KEY_PREFIX_CHARS]


def _unique_lines(text: str) -> List[str]:
    seen: set[str] = set()
    kept: List[str] = []
    for raw_line in strip_noise(text).split("\n"):
        line = raw_line.strip()
        key = dedup_key(line)
        if len(key) < MIN_KEY_CHARS or key in seen:
            continue
        seen.add(key)
        kept.append(line)
    return kept


def compact(text: str | None, max_chars: int) -> str:
    """Deduplicate lines and truncate the result to ``max_chars``.

    Lines are appended until the joined text first exceeds the budget, then
    the text is cut at exactly ``max_chars``. A cut-off final line that a
    second pass would discard is dropped, which keeps ``compact`` a fixed
    point on its own output.
    """

    if max_chars <= 0 or not text:
        return ""
    out: List[str] = []
    length = -1
    for line in _unique_lines(text):
        out.append(line)
        length += len(line) + 1
        if length > max_chars:
            break
    if length <= max_chars:
        return "\n".join(out)

    lines = "\n".join(out)[:max_chars].rstrip().split("\n")
    tail = lines[-1].strip()
    earlier = {dedup_key(line) for line in lines[:-1]}
    tail_key = dedup_key(tail)
    if len(tail_key) < MIN_KEY_CHARS or tail_key in earlier:
        lines = lines[:-1]
    else:
        lines[-1] = tail
    return "\n".join(lines).rstrip()
