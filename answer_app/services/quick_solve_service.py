"""Synchronous single-shot solver for TOEFL style screens."""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .generation_client import GenerationFailure, get_generation_client

MODES = ("reading", "listening", "writing", "speaking")
DEFAULT_MODE = "reading"


@dataclass(frozen=True)
class ModeSettings:
    system: str
    instructions: str
    max_tokens: int
    temperature: float
    timeout: int


_CHOICE_SYSTEM = """
You are an expert TOEFL iBT Reading and Listening tutor. You solve ONLY TOEFL-style questions.

You will receive:
- OCR_TEXT: text recognized from the screen (passages, questions, answer choices).
- AUDIO_TEXT: transcript of the audio (for listening questions). It may be empty.

Focus ONLY on the CURRENT question near the end of the OCR_TEXT and pick the single best
answer label. Choices may be rendered as "①②③④", "A.", "-", "•" or bare circles; infer a
clear label such as "1" or "A". For "select TWO answers" return both labels separated by a
comma. For sentence insertion questions choose the option marking the correct square.
If you are less than 0.1 confident, answer "?" and explain why.

Output format (exactly):

[ANSWER] <label or "?" only>
[P] <probability 0.00-1.00>
[WHY]
Short Korean explanation (2-5 bullet points) of why this answer is right and the others are wrong.
""".strip()

_WRITING_SYSTEM = """
You are an expert TOEFL iBT Writing tutor for Korean students.

Decide whether the task is Integrated (reading + lecture) or Academic Discussion, then write a
model essay of about 180-230 words (never above 260) using the academy template structure:
Integrated essays contrast each lecture point with the reading; discussion essays pick a side
and give two reasons, each as main reason, detail and example, ending with
"To make a long story short, I firmly think (that) ...".

Output format (exactly):

[ESSAY]
<English essay here>
[FEEDBACK]
2-5 Korean sentences: task type, one line on structure, 3-7 key English expressions.
""".strip()

_SPEAKING_SYSTEM = """
You are an expert TOEFL iBT Speaking tutor for Korean students.

Identify the task type (campus reading + conversation, academic reading + lecture, or
lecture only) and write a single model script of about 48-80 words (3-5 sentences) that
follows the academy template for that type. The student's own answer is never included.

Output format (exactly):

[ANSWER]
Short English script to read aloud.
[WORDS]
3-7 difficult words with a simple hangul pronunciation, e.g. project (프라젝트)
[KOREAN]
1-3 Korean sentences: task type, key content, one pronunciation tip.
""".strip()

_CHOICE_SETTINGS = ModeSettings(
    system=_CHOICE_SYSTEM,
    instructions="Use OCR_TEXT and AUDIO_TEXT to infer the current TOEFL question and then produce the answer label, probability, and Korean explanation.",
    max_tokens=512,
    temperature=0.25,
    timeout=30,
)

MODE_SETTINGS = {
    "reading": _CHOICE_SETTINGS,
    "listening": _CHOICE_SETTINGS,
    "writing": ModeSettings(
        system=_WRITING_SYSTEM,
        instructions="먼저 통합형인지 토론형인지 판별한 뒤, 해당 템플릿 구조로 영어 에세이와 한국어 피드백을 작성하세요.",
        max_tokens=640,
        temperature=0.25,
        timeout=240,
    ),
    "speaking": ModeSettings(
        system=_SPEAKING_SYSTEM,
        instructions="유형을 파악한 뒤 학원 템플릿 구조로 짧고 자연스러운 모범 답안 스크립트만 제공하세요.",
        max_tokens=384,
        temperature=0.35,
        timeout=90,
    ),
}

DEFAULT_ERROR_MESSAGE = "서버 내부 오류가 발생했습니다. 잠시 후 다시 시도해 주세요."


def resolve_mode(raw: str | None) -> str:
    mode = (raw or DEFAULT_MODE).strip().lower()
    return mode if mode in MODES else DEFAULT_MODE


def error_text(mode: str, message: str | None = None) -> str:
    """Render a failure in the same section layout the mode normally returns."""
    msg = message or DEFAULT_ERROR_MESSAGE
    if mode == "writing":
        return f"[ESSAY]\n(작성 불가: 서버 오류로 인해 모델 답안을 생성하지 못했습니다.)\n[FEEDBACK]\n{msg}"
    if mode == "speaking":
        return f"[ANSWER]\n(서버 오류로 스피킹 모델 답안을 생성하지 못했습니다.)\n[WORDS]\n-\n[KOREAN]\n{msg}"
    return f"[ANSWER] ?\n[P] 0.00\n[WHY] {msg}"


def build_user_prompt(mode: str, ocr_text: str, audio_text: str) -> str:
    settings = MODE_SETTINGS[mode]
    return "\n".join(
        [
            "You must only answer in the format described above.",
            "",
            f"MODE: {mode.upper()}",
            "",
            "OCR_TEXT:",
            ocr_text.strip() or "(none)",
            "",
            "AUDIO_TEXT:",
            audio_text.strip() or "(none)",
            "",
            settings.instructions,
        ]
    )


def quick_solve(mode: str | None, ocr_text: str | None, audio_text: str | None = None) -> dict:
    mode = resolve_mode(mode)
    settings = MODE_SETTINGS[mode]
    client = get_generation_client()
    try:
        text = client.complete(
            settings.system,
            build_user_prompt(mode, ocr_text or "", audio_text or ""),
            model=current_app.config.get("AI_QUICK_MODEL") or None,
            temperature=settings.temperature,
            max_tokens=settings.max_tokens,
            timeout=settings.timeout,
            max_attempts=1,
            purpose=f"quick-{mode}",
        )
    except GenerationFailure as exc:
        current_app.logger.warning("Quick solve (%s) failed: %s", mode, exc.describe())
        return {"ok": False, "mode": mode, "text": error_text(mode, exc.describe())}
    return {"ok": True, "mode": mode, "text": text}
