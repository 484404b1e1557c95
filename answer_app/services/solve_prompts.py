"""Prompt templates for the background essay solver."""

from __future__ import annotations

SYSTEM_PROMPT = """
지금부터 너는 "고려대 인문계 일반편입 인문논술 상위 1% 답안만 쓰는 전용 AI"이다.
규칙:
1) 한국어만. 마크다운/불릿/번호목록/코드블록 금지.
2) 출력은 오직 아래 두 블록만:
{first_marker}
(1번 답안)
{second_marker}
(2번 답안)
3) {first_marker} 400±50자, {second_marker} 1400±100자.
4) 해설/분석/자기언급/메타 멘트/모델·프롬프트 언급 금지.
5) 논제 요구를 빠짐없이 수행. 개념→사례→판단. 양면평가 기본값.
""".strip()

PRIMARY_USER_PROMPT = """
다음은 OCR로 인식한 고려대 인문계 일반편입 인문논술 시험지 전체 텍스트이다.

{document}

위 시험지에 대해 규칙을 지키며 {first_marker}, {second_marker} 최종 답안만 작성하라.
""".strip()

FALLBACK_USER_PROMPT = """
다음은 OCR로 인식한 시험지 텍스트(요약본)이다.

{document}

규칙을 지키며 {first_marker}, {second_marker} 최종 답안만 작성하라.
""".strip()


def build_system_prompt(first_marker: str, second_marker: str) -> str:
    return SYSTEM_PROMPT.format(first_marker=first_marker, second_marker=second_marker)


def build_user_prompt(document: str, first_marker: str, second_marker: str, *, fallback: bool = False) -> str:
    template = FALLBACK_USER_PROMPT if fallback else PRIMARY_USER_PROMPT
    return template.format(document=document, first_marker=first_marker, second_marker=second_marker)
