"""
파이프라인 실행 관련 데이터 모델입니다.
레이어별 실행 기록, 실행 옵션, 최종 결과를 정의합니다.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from .context import ExecutionContext
from .rollback import RollbackAction


class LayerStatus(str, Enum):
    """
    레이어 실행의 최종 상태입니다.
    """

    ACCEPTED = "accepted"                            # 결과 채택
    PARTIALLY_ROLLED_BACK = "partially_rolled_back"  # 부분 롤백 판정
    ROLLED_BACK = "rolled_back"                      # 전체 롤백
    FLAGGED_FOR_REVIEW = "flagged_for_review"        # 검토 필요 (코드는 복원)
    FAILED = "failed"                                # transform 예외
    TIMED_OUT = "timed_out"                          # 시간 초과
    SKIPPED = "skipped"                              # 선행 레이어 실패로 건너뜀
    CANCELLED = "cancelled"                          # 실행 중 취소되어 결과 폐기


class LayerExecutionRecord(BaseModel):
    """
    레이어 1회 시도의 기록입니다.
    after_code는 레이어가 제안한 결과이며, success가 True일 때만 다음 레이어의 입력이 됩니다.
    """

    model_config = ConfigDict(frozen=True)

    layer_id: int
    layer_name: str = ""
    before_code: str
    after_code: str
    execution_time_ms: float = 0.0
    success: bool
    status: LayerStatus
    change_count: int = 0
    improvements: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    error: Optional[str] = None
    action: Optional[RollbackAction] = None
    reason: str = ""  # 사람이 읽을 수 있는 결과 설명
    confidence: Optional[float] = None
    snapshot_id: Optional[str] = None

    @property
    def rolled_back(self) -> bool:
        return self.status in (
            LayerStatus.ROLLED_BACK,
            LayerStatus.FLAGGED_FOR_REVIEW,
        ) or (self.status == LayerStatus.PARTIALLY_ROLLED_BACK and not self.success)


class PipelineOptions(BaseModel):
    """run() 호출 옵션입니다. None인 값은 설정(Settings)의 기본값을 따릅니다."""

    use_cache: bool = True
    timeout_ms_per_layer: Optional[int] = Field(default=None, gt=0)
    skip_optimization: bool = False
    strict_prerequisites: Optional[bool] = None


class DependencyResolution(BaseModel):
    """의존성 해결 결과입니다."""

    model_config = ConfigDict(frozen=True)

    corrected_layers: list[int] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    unknown_layers: list[int] = Field(default_factory=list)


class PipelineResult(BaseModel):
    """
    외부 호출자에게 반환되는 유일한 결과 객체입니다.
    모든 레이어가 실패해도 항상 반환되며, 이 경우 final_code는 원본 코드입니다.
    """

    model_config = ConfigDict(frozen=True)

    final_code: str
    original_code: str = ""
    layer_results: list[LayerExecutionRecord] = Field(default_factory=list)
    total_execution_time_ms: float = 0.0
    successful_layer_count: int = 0

    requested_layers: list[int] = Field(default_factory=list)
    resolved_layers: list[int] = Field(default_factory=list)
    skipped_layers: list[int] = Field(default_factory=list)  # 최적화로 제외된 레이어
    warnings: list[str] = Field(default_factory=list)
    context: Optional[ExecutionContext] = None

    from_cache: bool = False
    cancelled: bool = False
    attempts: int = 1

    @property
    def changed(self) -> bool:
        return self.final_code != self.original_code

    def get_layer_result(self, layer_id: int) -> Optional[LayerExecutionRecord]:
        """특정 레이어의 실행 기록을 반환합니다."""
        for record in self.layer_results:
            if record.layer_id == layer_id:
                return record
        return None

    def summary(self) -> dict:
        """결과 요약 정보를 계산하여 반환합니다."""
        improvements: list[str] = []
        for record in self.layer_results:
            if record.success:
                improvements.extend(i for i in record.improvements if i not in improvements)

        return {
            "total_changes": sum(r.change_count for r in self.layer_results if r.success),
            "executed_layers": [r.layer_id for r in self.layer_results if r.success],
            "failed_layers": [r.layer_id for r in self.layer_results if r.error],
            "rolled_back_layers": [r.layer_id for r in self.layer_results if r.rolled_back],
            "skipped_layers": list(self.skipped_layers),
            "improvements": improvements,
            "execution_time_ms": round(self.total_execution_time_ms, 2),
            "from_cache": self.from_cache,
        }
