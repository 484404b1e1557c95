"""Tests for section marker enforcement."""

from __future__ import annotations

import pytest

from answer_app.services.answer_postprocessor import SECTION_PLACEHOLDER, ensure_sections, has_sections

FIRST = "[문제 1]"
SECOND = "[문제 2]"


def test_complete_answer_is_unchanged():
    answer = f"{FIRST}\n첫 번째 답안\n{SECOND}\n두 번째 답안"
    assert ensure_sections(answer, FIRST, SECOND) == answer


def test_missing_markers_are_added():
    result = ensure_sections("just text", FIRST, SECOND)
    assert result.startswith(FIRST)
    assert has_sections(result, FIRST, SECOND)
    assert result.endswith(SECTION_PLACEHOLDER)


def test_second_marker_must_follow_first():
    result = ensure_sections(f"{SECOND} early {FIRST} body", FIRST, SECOND)
    assert has_sections(result, FIRST, SECOND)


def test_empty_answer_still_has_both_markers():
    result = ensure_sections("", FIRST, SECOND)
    assert result == f"{FIRST}\n{SECOND}\n{SECTION_PLACEHOLDER}"


def test_prefix_is_prepended_once():
    result = ensure_sections(f"{FIRST}\na\n{SECOND}\nb", FIRST, SECOND, prefix="Q7")
    assert result.startswith(f"Q7\n{FIRST}")
    assert ensure_sections(result, FIRST, SECOND, prefix="Q7") == result


def test_prefix_ending_in_whitespace_is_not_padded():
    result = ensure_sections(f"{FIRST}\na\n{SECOND}\nb", FIRST, SECOND, prefix="Q7 ")
    assert result.startswith(f"Q7 {FIRST}")


@pytest.mark.parametrize(
    "answer",
    ["", "plain", f"{FIRST} only first", f"{SECOND} only second", f"{FIRST}\na\n{SECOND}\nb"],
)
def test_enforcement_is_idempotent(answer):
    once = ensure_sections(answer, FIRST, SECOND, prefix="P")
    assert ensure_sections(once, FIRST, SECOND, prefix="P") == once
