"""변경 체크리스트 모듈.

(before, after) 쌍에 대한 이름 붙은 판정 함수(predicate) 목록입니다.
RollbackManager는 이 목록을 주입받아 개선점(improvements)과 위험(risks)을 판단하므로,
대상 언어/프레임워크 관용구는 이 모듈 안에만 존재합니다.

사용 예시:
    checks = DEFAULT_RISK_CHECKS + [ChangeCheck("custom-risk", my_predicate)]
    manager = RollbackManager(risk_checks=checks)
"""

import re
from typing import Callable, Iterable, NamedTuple

from .text import count_functions, extract_declared_names


# 위험 태그
FUNCTIONALITY_REMOVED = "functionality-removed"
BREAKING_CHANGE = "breaking-change"
SECURITY_CONCERN = "security-concern"
ACCESSIBILITY_LOSS = "accessibility-loss"
PERFORMANCE_REGRESSION = "performance-regression"
TYPE_SAFETY_REDUCED = "type-safety-reduced"

DEFAULT_RISK_WEIGHTS: dict[str, float] = {
    FUNCTIONALITY_REMOVED: 0.9,
    BREAKING_CHANGE: 0.8,
    SECURITY_CONCERN: 0.8,
    ACCESSIBILITY_LOSS: 0.7,
    PERFORMANCE_REGRESSION: 0.6,
    TYPE_SAFETY_REDUCED: 0.5,
}
UNKNOWN_RISK_WEIGHT = 0.3


class ChangeCheck(NamedTuple):
    """이름 붙은 변경 판정 함수."""

    name: str
    predicate: Callable[[str, str], bool]


def _added(pattern: str) -> Callable[[str, str], bool]:
    """변환 전에는 없고 변환 후에 생긴 패턴."""
    regex = re.compile(pattern)
    return lambda before, after: not regex.search(before) and bool(regex.search(after))


def _removed(pattern: str) -> Callable[[str, str], bool]:
    """변환 전에는 있었고 변환 후에 사라진 패턴."""
    regex = re.compile(pattern)
    return lambda before, after: bool(regex.search(before)) and not regex.search(after)


def _declarations_removed(before: str, after: str) -> bool:
    remaining = set(extract_declared_names(after))
    return any(name not in remaining for name in extract_declared_names(before))


def _function_count_shift(before: str, after: str) -> bool:
    return abs(count_functions(before) - count_functions(after)) > 2


_ANY_TYPE = r":\s*any\b"
_MEMOIZATION = r"\buseMemo\b|\buseCallback\b|\bReact\.memo\b|\bmemo\(|@lru_cache|@cache\b"
_ARIA = r"aria-[a-z]+\s*="

DEFAULT_IMPROVEMENT_CHECKS: list[ChangeCheck] = [
    ChangeCheck("Added error handling", _added(r"\btry\s*[{:]")),
    ChangeCheck("Improved accessibility", _added(_ARIA + r"|\brole\s*=|<img[^>]*\balt\s*=")),
    ChangeCheck("Added performance optimization", _added(_MEMOIZATION)),
    ChangeCheck("Improved type safety", _removed(_ANY_TYPE)),
    ChangeCheck("Fixed HTML entity corruption", _removed(r"&quot;|&#x27;|&amp;|&lt;|&gt;")),
    ChangeCheck("Added client directive", _added(r"""(?m)^\s*['"]use client['"]""")),
    ChangeCheck("Added missing key props", _added(r"\bkey\s*=\s*\{")),
    ChangeCheck("Added SSR guards", _added(r"typeof\s+window")),
]

DEFAULT_RISK_CHECKS: list[ChangeCheck] = [
    ChangeCheck(FUNCTIONALITY_REMOVED, _declarations_removed),
    ChangeCheck(BREAKING_CHANGE, _function_count_shift),
    ChangeCheck(
        SECURITY_CONCERN,
        _added(r"\beval\s*\(|\.innerHTML\b|dangerouslySetInnerHTML|new\s+Function\s*\("),
    ),
    ChangeCheck(ACCESSIBILITY_LOSS, _removed(_ARIA)),
    ChangeCheck(PERFORMANCE_REGRESSION, _removed(_MEMOIZATION)),
    ChangeCheck(TYPE_SAFETY_REDUCED, _added(_ANY_TYPE)),
]


def run_checks(checks: Iterable[ChangeCheck], before: str, after: str) -> list[str]:
    """조건을 만족하는 체크 이름 목록을 반환합니다."""
    if before == after:
        return []
    return [check.name for check in checks if check.predicate(before, after)]


def risk_score(risks: Iterable[str], weights: dict[str, float] = None) -> float:
    """위험 가중치 합계 (최대 1.0). 등록되지 않은 태그는 0.3으로 계산합니다."""
    weights = weights if weights is not None else DEFAULT_RISK_WEIGHTS
    total = sum(weights.get(risk, UNKNOWN_RISK_WEIGHT) for risk in risks)
    return min(1.0, total)
