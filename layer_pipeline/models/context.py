"""
입력 문서 분류 결과(실행 컨텍스트) 모델입니다.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class DocumentRole(str, Enum):
    """문서의 역할 분류입니다."""

    COMPONENT = "component"  # UI 컴포넌트
    PAGE = "page"            # 라우팅 대상 페이지
    HOOK = "hook"            # 상태 훅
    UTILITY = "utility"      # 일반 유틸리티
    CONFIG = "config"        # 설정 파일
    TEST = "test"            # 테스트 코드


class Environment(str, Enum):
    """실행 환경 분류입니다."""

    FRAMEWORK_MANAGED = "framework-managed"    # 프레임워크가 라우팅/렌더링을 관리
    FRAMEWORK_AGNOSTIC = "framework-agnostic"  # UI 라이브러리만 사용
    PLAIN = "plain"                            # 프레임워크 표식 없음


class ExecutionContext(BaseModel):
    """
    실행 1회당 한 번 생성되는 문서 분류 결과입니다.
    실행 중에는 읽기 전용이며, 레이어 가지치기와 transform 함수 인자로만 사용됩니다.
    """

    model_config = ConfigDict(frozen=True)

    document_role: DocumentRole = DocumentRole.UTILITY
    environment: Environment = Environment.PLAIN
    features: frozenset[str] = Field(default_factory=frozenset)
    dependencies: frozenset[str] = Field(default_factory=frozenset)
    patterns: frozenset[str] = Field(default_factory=frozenset)
    file_path: Optional[str] = None

    def has_feature(self, feature: str) -> bool:
        return feature in self.features
