"""Split OCR exam text into numbered five-choice questions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .text_normalizer import normalize_text

MIN_NUMBER = 1
MAX_NUMBER = 50
CHOICE_COUNT = 5
SAMPLE_CHARS = 200

# Circled numbers are choice delimiters wherever they appear.
CIRCLED_DELIMITERS = "①②③④⑤⑥⑦⑧⑨⑩❶❷❸❹❺"
# Bullets and OCR renderings of circled numbers; "·" also appears inside
# Korean words ("정치·경제"), so these only count when they stand alone.
BULLET_DELIMITERS = "•·∙●○◦*@©®"
CHOICE_MARK = "•"

_QUESTION_START_RE = re.compile(r"^(\d{1,2})\.?\s+(.*)$")
_DELIMITER_RE = re.compile(
    rf"[{re.escape(CIRCLED_DELIMITERS)}]|(?<!\S)[{re.escape(BULLET_DELIMITERS)}](?=\s|$)"
)
_LINE_CHOICE_RE = re.compile(rf"^(?:[{re.escape(BULLET_DELIMITERS)}]|[1-5]\))[\s.]*(.*)$")
_GAP_RE = re.compile(r"(?<=\.)\s+|\s{2,}")

ChoiceStrategy = Callable[[str], Optional[List[str]]]


@dataclass(frozen=True)
class Question:
    number: int
    stem: str
    choices: Tuple[str, ...]

    def serialize(self) -> dict:
        return {"number": self.number, "stem": self.stem, "choices": list(self.choices)}


@dataclass
class ParseResult:
    questions: List[Question] = field(default_factory=list)
    error: str | None = None
    sample: str | None = None
    length: int = 0

    @property
    def ok(self) -> bool:
        return bool(self.questions)

    def serialize(self) -> dict:
        if self.ok:
            return {
                "ok": True,
                "count": len(self.questions),
                "questions": [question.serialize() for question in self.questions],
            }
        return {
            "ok": False,
            "error": self.error or "No questions parsed",
            "debug": {"length": self.length, "sample": self.sample or ""},
        }


def _clean_fragment(fragment: str) -> str:
    return fragment.strip().lstrip(".").strip()


def split_on_delimiters(region: str) -> Optional[List[str]]:
    """Primary pass: every delimiter glyph starts a new choice."""

    choices = [c for c in (_clean_fragment(part) for part in _DELIMITER_RE.split(region)) if c]
    if len(choices) < CHOICE_COUNT:
        return None
    return choices[:CHOICE_COUNT]


def split_on_gaps(region: str) -> Optional[List[str]]:
    """Fallback pass for choices whose glyph was lost by the OCR engine.

    Glyphs turn into spaces, so wide gaps and sentence breaks become the
    boundaries. The trailing five fragments are kept since stray stem text
    tends to leak into the front of the region.
    """

    flattened = _DELIMITER_RE.sub(" ", region)
    choices = [c for c in (_clean_fragment(part) for part in _GAP_RE.split(flattened)) if c]
    if len(choices) < CHOICE_COUNT:
        return None
    return choices[-CHOICE_COUNT:]


CHOICE_STRATEGIES: Tuple[ChoiceStrategy, ...] = (split_on_delimiters, split_on_gaps)


def _mark_choice_line(line: str) -> str:
    """Rewrite a line-leading bullet or ``1)`` enumeration as a standalone mark."""

    match = _LINE_CHOICE_RE.match(line)
    if not match:
        return line
    return f"{CHOICE_MARK} {match.group(1)}".rstrip()


def iter_blocks(text: str) -> Iterator[Tuple[int, str]]:
    """Yield ``(number, folded block text)`` for each line-leading question number."""

    number: int | None = None
    parts: List[str] = []
    for line in text.split("\n"):
        line = line.strip()
        if not line:
            continue
        match = _QUESTION_START_RE.match(line)
        if match and MIN_NUMBER <= int(match.group(1)) <= MAX_NUMBER:
            if number is not None:
                yield number, " ".join(parts)
            number = int(match.group(1))
            parts = [match.group(2).strip()]
            continue
        if number is not None:
            parts.append(_mark_choice_line(line))
    if number is not None:
        yield number, " ".join(parts)


def split_block(block: str) -> Tuple[str, str]:
    """Return ``(stem, choices_region)`` split at the first delimiter glyph."""

    match = _DELIMITER_RE.search(block)
    if not match:
        return block.strip(), ""
    return block[: match.start()].strip(), block[match.start():]


def extract_choices(
    region: str, strategies: Sequence[ChoiceStrategy] = CHOICE_STRATEGIES
) -> Optional[List[str]]:
    if not region:
        return None
    for strategy in strategies:
        choices = strategy(region)
        if choices and len(choices) >= CHOICE_COUNT:
            return choices[:CHOICE_COUNT]
    return None


def build_question(number: int, block: str) -> Question | None:
    stem, region = split_block(block)
    if not stem:
        return None
    choices = extract_choices(region)
    if choices is None:
        return None
    return Question(number=number, stem=stem, choices=tuple(choices))


def parse_questions(raw: str | None, stop_token: str | None = None) -> List[Question]:
    text = normalize_text(raw, stop_token)
    questions = [
        question
        for question in (build_question(number, block) for number, block in iter_blocks(text))
        if question is not None
    ]
    # sorted() is stable, so repeated numbers keep their source order.
    return sorted(questions, key=lambda question: question.number)


def segment(raw: str | None, stop_token: str | None = None) -> ParseResult:
    text = normalize_text(raw, stop_token)
    questions = parse_questions(text, stop_token)
    if questions:
        return ParseResult(questions=questions, length=len(text))
    return ParseResult(
        error="No questions parsed",
        sample=text[:SAMPLE_CHARS],
        length=len(text),
    )
