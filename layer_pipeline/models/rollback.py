"""
검증 결과, 변환 스냅샷, 롤백 결정 모델입니다.
"""

from enum import Enum
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
import uuid


class ValidationOutcome(BaseModel):
    """TransformationValidator의 판정 결과입니다."""

    model_config = ConfigDict(frozen=True)

    should_revert: bool = False
    reason: Optional[str] = None  # 되돌려야 하는 이유 (파서 에러 메시지 등)
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    warnings: list[str] = Field(default_factory=list)  # 되돌릴 정도는 아닌 문제

    @property
    def is_hard_error(self) -> bool:
        return self.should_revert


class RollbackAction(str, Enum):
    """롤백 결정 종류입니다."""

    ACCEPT = "accept"                      # 변환 결과 채택
    PARTIAL_ROLLBACK = "partial-rollback"  # 안전한 개선만 유지
    FULL_ROLLBACK = "full-rollback"        # 변환 전 코드로 복원
    MANUAL_REVIEW = "manual-review"        # 사람의 검토 필요 (코드는 복원)


class RollbackMode(str, Enum):
    """perform_rollback()에 전달하는 복원 방식입니다."""

    FULL = "full"
    PARTIAL = "partial"


class TransformationSnapshot(BaseModel):
    """
    레이어 1회 실행의 변환 전/후 상태와 파생 메타데이터입니다.
    생성 후 변경되지 않으며, RollbackManager의 이력에 보관됩니다.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"snapshot_{uuid.uuid4().hex[:12]}")
    layer_id: int
    before_code: str
    after_code: str
    timestamp: datetime = Field(default_factory=datetime.now)
    confidence: float = Field(..., ge=0.0, le=1.0)
    risks: list[str] = Field(default_factory=list)
    change_count: int = 0
    improvements: list[str] = Field(default_factory=list)
    validation: ValidationOutcome = Field(default_factory=ValidationOutcome)


class RollbackDecision(BaseModel):
    """스냅샷으로부터 계산되는 롤백 결정입니다. 저장되지 않습니다."""

    model_config = ConfigDict(frozen=True)

    should_rollback: bool
    reason: str
    confidence: float = Field(..., ge=0.0, le=1.0)
    action: RollbackAction


class RollbackOutcome(BaseModel):
    """perform_rollback()의 복원 결과입니다."""

    model_config = ConfigDict(frozen=True)

    snapshot_id: str
    mode: RollbackMode
    restored_code: str
    kept_changes: bool  # True면 변환 결과(after_code)가 유지됨
    message: str
