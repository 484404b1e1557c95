"""Guarantee generated answers carry both required section markers."""

from __future__ import annotations

SECTION_PLACEHOLDER = "(답안이 중간에 끊겼습니다. 이 표시 아래에 이어서 작성하세요.)"


def has_sections(text: str, first_marker: str, second_marker: str) -> bool:
    start = text.find(first_marker)
    return start >= 0 and text.find(second_marker, start + len(first_marker)) >= 0


def ensure_sections(
    text: str | None,
    first_marker: str,
    second_marker: str,
    prefix: str | None = None,
    placeholder: str = SECTION_PLACEHOLDER,
) -> str:
    body = (text or "").strip()
    if not has_sections(body, first_marker, second_marker):
        if first_marker not in body:
            body = f"{first_marker}\n{body}" if body else first_marker
        if not has_sections(body, first_marker, second_marker):
            body = f"{body}\n{second_marker}\n{placeholder}"
    if prefix and not body.startswith(prefix):
        separator = "" if prefix[-1].isspace() else "\n"
        body = f"{prefix}{separator}{body}"
    return body
