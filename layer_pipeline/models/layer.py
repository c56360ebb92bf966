"""
레이어 정의 관련 데이터 모델입니다.
레이어 메타데이터와 외부 transform 함수의 반환 형식을 정의합니다.
"""

from typing import Any, Awaitable, Callable, Optional, Union
from pydantic import BaseModel, ConfigDict, Field


class Layer(BaseModel):
    """
    하나의 변환 단계(Layer) 정의입니다.
    프로세스 시작 시 등록되며 이후 변경되지 않습니다.
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="안정적인 실행 순서를 결정하는 레이어 ID")
    name: str
    description: str = ""
    prerequisites: frozenset[int] = Field(
        default_factory=frozenset, description="먼저 실행되어야 하는 레이어 ID 목록"
    )
    structural: bool = Field(
        default=False, description="구조 분석 지원 여부 (False면 텍스트 패턴 전용)"
    )
    trigger_patterns: tuple[str, ...] = Field(
        default=(),
        description="레이어가 처리하는 패턴 (정규식). 하나도 없으면 건너뛸 수 있음",
    )
    relevant_features: frozenset[str] = Field(
        default_factory=frozenset,
        description="레이어와 관련된 컨텍스트 기능 (예: browser-storage)",
    )


class LayerTransformResult(BaseModel):
    """외부 transform 함수가 반환할 수 있는 구조화된 결과입니다."""

    code: str
    change_count: Optional[int] = None  # 레이어가 직접 보고한 변경 수
    error: Optional[str] = None  # 설정되면 레이어 실패로 처리


# transform(code, context) -> str | LayerTransformResult | dict (동기 또는 비동기)
TransformOutput = Union[str, LayerTransformResult, dict]
TransformFn = Callable[[str, Any], Union[TransformOutput, Awaitable[TransformOutput]]]
