"""Canonical line-oriented form for OCR text."""

from __future__ import annotations

import re

STOP_TOKEN_RE = re.compile(r"X[UV]RTH", re.IGNORECASE)
PAGE_COUNTER_RE = re.compile(r"^(?:-\s*\d{1,3}\s*-|\d{1,3}\s*/\s*\d{1,3})$")
_HORIZONTAL_WS_RE = re.compile(r"[ \t\u00a0\u3000\v]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")
_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


def is_page_marker(line: str, stop_token: str | None = None) -> bool:
    stripped = line.strip()
    if not stripped:
        return False
    if STOP_TOKEN_RE.search(stripped):
        return True
    if stop_token and stop_token in stripped:
        return True
    return bool(PAGE_COUNTER_RE.match(stripped))


def normalize_text(text: str | None, stop_token: str | None = None) -> str:
    """Strip layout artifacts and collapse whitespace.

    Carriage returns and form feeds become line breaks, page markers are
    dropped, horizontal whitespace collapses to one space and runs of blank
    lines collapse to a single blank line. Never raises; ``None`` and empty
    input both return ``""``.
    """

    if not text:
        return ""
    value = str(text).replace("\r\n", "\n").replace("\r", "\n").replace("\f", "\n")
    value = value.translate(_QUOTES)
    lines = []
    for line in value.split("\n"):
        if is_page_marker(line, stop_token):
            continue
        lines.append(_HORIZONTAL_WS_RE.sub(" ", line).strip())
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()
