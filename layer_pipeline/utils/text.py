"""소스 텍스트 비교용 유틸리티.

변경 라인 수, 라인 단위 유사도, 콘텐츠 지문(fingerprint) 등
여러 컴포넌트가 공유하는 순수 함수를 모아둔 모듈입니다.
"""

import re
from difflib import SequenceMatcher
from typing import Iterable


# 최상위 선언 (export/async 접두어 허용). 들여쓰기된 선언은 제외됩니다.
DECLARATION_PATTERN = re.compile(
    r"^(?:export\s+(?:default\s+)?)?(?:async\s+)?"
    r"(?:function\*?|class|const|let|var|def)\s+([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)

FUNCTION_PATTERN = re.compile(r"\bfunction\s+\w+|\bdef\s+\w+")


def count_line_changes(before: str, after: str) -> int:
    """
    라인 단위 변경 수 계산.

    라인 수 차이 + 겹치는 구간에서 인덱스별로 다른 라인 수.

    Args:
        before: 변환 전 코드
        after: 변환 후 코드

    Returns:
        변경 라인 수 (동일하면 0)
    """
    if before == after:
        return 0

    before_lines = before.split("\n")
    after_lines = after.split("\n")

    changes = abs(len(before_lines) - len(after_lines))
    for old, new in zip(before_lines, after_lines):
        if old != new:
            changes += 1

    return changes


def line_similarity(a: str, b: str) -> float:
    """두 코드의 라인 단위 유사도 (0.0 ~ 1.0)."""
    if a == b:
        return 1.0
    return SequenceMatcher(None, a.split("\n"), b.split("\n"), autojunk=False).ratio()


def content_fingerprint(code: str) -> str:
    """
    다항식 롤링 해시 기반 32비트 콘텐츠 지문.

    충돌 가능성이 있으므로 캐시 조회 시 원본 코드 비교와 함께 사용해야 합니다.
    """
    value = 0
    for char in code:
        value = (value * 31 + ord(char)) & 0xFFFFFFFF
    return f"{value:08x}"


def layer_signature(layer_ids: Iterable[int]) -> str:
    """정렬/중복 제거된 레이어 ID 목록 문자열 (예: "1,2,3")."""
    return ",".join(str(layer_id) for layer_id in sorted(set(layer_ids)))


def extract_declared_names(code: str) -> list[str]:
    """최상위에 선언된 함수/클래스/상수 이름 목록."""
    return DECLARATION_PATTERN.findall(code)


def count_functions(code: str) -> int:
    return len(FUNCTION_PATTERN.findall(code))
