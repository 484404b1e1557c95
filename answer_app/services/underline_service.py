"""Read underlined expressions off an exam photo with a vision model."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List

from flask import current_app

from .generation_client import GenerationFailure, get_generation_client

MAX_QUESTION_NUMBER = 60
HINT_MAX_CHARS = 6000

SYSTEM_PROMPT = " ".join(
    [
        "Return ONLY valid JSON. No extra text.",
        'Output format exactly: {"underlined":{"6":"...","7":"..."}}',
        "Keys must be question numbers as strings.",
        "Values must be the EXACT underlined word/phrase as printed. If you can't see one, use an empty string.",
    ]
)


class UnderlineError(Exception):
    def __init__(self, message: str, status: int = 502):
        super().__init__(message)
        self.message = message
        self.status = status


def coerce_question_numbers(values: Iterable[Any]) -> List[int]:
    numbers: List[int] = []
    for value in values or []:
        try:
            number = int(value)
        except (TypeError, ValueError):
            continue
        if 1 <= number <= MAX_QUESTION_NUMBER:
            numbers.append(number)
    return numbers


def extract_json_object(text: str) -> Dict[str, Any] | None:
    """Parse the reply directly, falling back to the outermost ``{...}`` slice."""
    trimmed = (text or "").strip()
    candidates = [trimmed]
    first, last = trimmed.find("{"), trimmed.rfind("}")
    if first != -1 and last > first:
        candidates.append(trimmed[first:last + 1])
    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


def _user_text(numbers: List[int], hint_text: str) -> str:
    return (
        "You are looking at a photo of an English multiple-choice exam page.\n"
        "Task: For the following question numbers, extract ONLY the underlined expression (the text that is underlined).\n"
        f"Question numbers: {', '.join(str(n) for n in numbers)}\n"
        "If the page contains multiple underlines, map each underline to the correct question number.\n"
        "If helpful, here is OCR hint text (may contain errors):\n"
        f"{hint_text}"
    )


def extract_underlined(image_data_url: str, question_numbers: Iterable[Any], hint_text: str = "") -> Dict[str, str]:
    if not isinstance(image_data_url, str) or not image_data_url.startswith("data:image/"):
        raise UnderlineError("Invalid imageDataUrl", status=400)
    numbers = coerce_question_numbers(question_numbers)
    if not numbers:
        raise UnderlineError("questionNumbers is required", status=400)

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": _user_text(numbers, (hint_text or "")[:HINT_MAX_CHARS])},
                {"type": "image_url", "image_url": {"url": image_data_url}},
            ],
        },
    ]
    config = current_app.config
    try:
        reply = get_generation_client().chat(
            messages,
            model=config.get("AI_VISION_MODEL"),
            temperature=0,
            max_tokens=220,
            timeout=config.get("UNDERLINE_TIMEOUT_SEC", 25),
            max_attempts=1,
            purpose="underline",
        )
    except GenerationFailure as exc:
        raise UnderlineError(exc.describe()) from exc

    data = extract_json_object(reply)
    underlined = data.get("underlined") if data else None
    if not isinstance(underlined, dict):
        raise UnderlineError("Model output is not valid JSON {underlined:{...}}", status=200)
    result: Dict[str, str] = {}
    for number in numbers:
        value = underlined.get(str(number))
        result[str(number)] = "" if value is None else str(value).strip()
    return result
