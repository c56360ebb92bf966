"""변환 검증 서비스.

레이어 1회 실행의 (before, after) 쌍을 검사하여 입력이 손상되었는지 판정합니다.
부수 효과가 없는 순수 함수이므로 단위 테스트와 파이프라인에서 동일하게 사용됩니다.
"""

import re
from typing import Iterable, Optional

from layer_pipeline.config import Settings, get_settings
from layer_pipeline.exceptions import ValidationFailure
from layer_pipeline.models import ValidationOutcome
from layer_pipeline.utils.checks import ChangeCheck, DEFAULT_IMPROVEMENT_CHECKS, run_checks
from layer_pipeline.utils.syntax import BaseSyntaxChecker, get_syntax_checker
from layer_pipeline.utils.text import count_line_changes, extract_declared_names


# 단순 문자열 치환이 만들어내는 알려진 손상 패턴: (설명, 정규식)
CORRUPTION_SIGNATURES: list[tuple[str, re.Pattern]] = [
    ("Nested import block", re.compile(r"import\s*\{\s*\n\s*import\b")),
    ("Unterminated import braces", re.compile(r"(?m)^\s*import\s*\{[^}]*?\n\s*(?:import|export|const|function)\b")),
    ("Duplicated directive", re.compile(r"""(['"])use (?:client|server)\1;?\s*\n?\s*\1use (?:client|server)\1""")),
    ("Doubled arrow", re.compile(r"=>\s*=>")),
    ("Doubled statement terminator", re.compile(r"(?m)^(?!\s*for\b).*;;\s*$")),
    ("Double-encoded HTML entity", re.compile(r"&amp;(?:amp|quot|lt|gt|#x27);")),
    ("Duplicated import line", re.compile(r"(?m)^(import\s.+)\n\1$")),
]


class TransformationValidator:
    """
    변환 결과 검증기.

    검사 순서 (첫 실패에서 중단):
    ┌───────────────────────────────────────────────────────────┐
    │ 단계           │ 조건                    │ 결과            │
    ├───────────────────────────────────────────────────────────┤
    │ 1. No-op       │ before == after         │ 유효, 신뢰도 1.0 │
    │ 2. 구문        │ after 파싱 실패         │ 되돌림, 1.0     │
    │ 3. 손상 패턴   │ after에만 존재          │ 되돌림          │
    │ 4. 통과        │ -                       │ 변경량 기반 신뢰도│
    └───────────────────────────────────────────────────────────┘
    """

    def __init__(
        self,
        syntax_checker: Optional[BaseSyntaxChecker] = None,
        improvement_checks: Optional[Iterable[ChangeCheck]] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.syntax_checker = syntax_checker or get_syntax_checker(self.settings.source_language)
        self.improvement_checks = list(
            improvement_checks if improvement_checks is not None else DEFAULT_IMPROVEMENT_CHECKS
        )

    def validate(self, before: str, after: str) -> ValidationOutcome:
        """
        변환 결과를 검증합니다.

        Args:
            before: 레이어 실행 전 코드
            after: 레이어 실행 후 코드

        Returns:
            ValidationOutcome (should_revert, reason, confidence, warnings)

        Raises:
            ValidationFailure: 구문 검사기 자체가 실패한 경우
        """
        # 1. No-op
        if before == after:
            return ValidationOutcome(should_revert=False, confidence=1.0)

        # 2. 구문 검사
        try:
            syntax_error = self.syntax_checker.check(after)
        except Exception as e:
            raise ValidationFailure(
                f"Syntax checker failed: {e}",
                details={"language": self.syntax_checker.language},
            ) from e
        if syntax_error:
            return ValidationOutcome(
                should_revert=True,
                reason=f"Syntax error: {syntax_error}",
                confidence=1.0,
            )

        # 3. 손상 패턴 (변환 전에는 없던 것만)
        corruption = self.detect_corruption(before, after)
        if corruption:
            return ValidationOutcome(
                should_revert=True,
                reason=f"Corruption detected: {corruption}",
                confidence=0.95,
            )

        # 4. 통과: 신뢰도 계산
        warnings = self._collect_warnings(before, after)
        return ValidationOutcome(
            should_revert=False,
            confidence=self.score_confidence(before, after, len(warnings)),
            warnings=warnings,
        )

    @staticmethod
    def detect_corruption(before: str, after: str) -> Optional[str]:
        """after에는 있고 before에는 없는 첫 번째 손상 패턴 설명."""
        for description, pattern in CORRUPTION_SIGNATURES:
            if pattern.search(after) and not pattern.search(before):
                return description
        return None

    def score_confidence(self, before: str, after: str, warning_count: int = 0) -> float:
        """
        신뢰도 점수 계산 (0.0 ~ 1.0).

        - 기본값 1.0에서 변경 라인당 감점 (최대 감점 max_change_penalty)
        - 인식된 개선 패턴마다 가산점
        - 경고마다 감점
        """
        settings = self.settings
        changes = count_line_changes(before, after)
        penalty = min(settings.max_change_penalty, changes * settings.confidence_penalty_per_line)
        improvements = run_checks(self.improvement_checks, before, after)

        confidence = 1.0 - penalty
        confidence += len(improvements) * settings.improvement_bonus
        confidence -= warning_count * settings.warning_penalty

        return round(max(0.0, min(1.0, confidence)), 4)

    @staticmethod
    def _collect_warnings(before: str, after: str) -> list[str]:
        """되돌릴 정도는 아닌 구조 변화 (최상위 선언 삭제 등)."""
        remaining = set(extract_declared_names(after))
        return [
            f"Top-level declaration removed: {name}"
            for name in dict.fromkeys(extract_declared_names(before))
            if name not in remaining
        ]
