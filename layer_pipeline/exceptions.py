"""
레이어 파이프라인 커스텀 예외 계층입니다.
각 컴포넌트별 구조화된 에러 코드와 메시지를 제공합니다.

이 예외들은 파이프라인 내부에서 발생하고 처리됩니다.
PipelineExecutor.run()은 이 예외들을 LayerExecutionRecord.error로 변환하며
호출자에게 전파하지 않습니다.
"""

from typing import Optional, Any


class PipelineError(Exception):
    """레이어 파이프라인 기본 예외 클래스."""

    def __init__(
        self,
        message: str,
        error_code: str = "ERR_UNKNOWN",
        details: Optional[Any] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class UnknownLayerError(PipelineError):
    """레지스트리에 없는 레이어 ID 요청."""

    def __init__(self, layer_id: int, details: Optional[Any] = None):
        self.layer_id = layer_id
        super().__init__(
            f"Unknown layer {layer_id}",
            error_code="ERR_LAYER_001",
            details=details,
        )


class LayerRegistrationError(PipelineError):
    """잘못된 레이어 정의 (중복 ID, 잘못된 선행 레이어 등)."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_LAYER_002", details=details)


class LayerTimeoutError(PipelineError):
    """레이어 실행 시간 초과."""

    def __init__(self, layer_id: int, timeout_ms: int, details: Optional[Any] = None):
        self.layer_id = layer_id
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Layer {layer_id} timed out after {timeout_ms}ms",
            error_code="ERR_TIMEOUT_001",
            details=details,
        )


class LayerExecutionError(PipelineError):
    """외부 transform 함수에서 발생한 예외를 감싸는 에러."""

    def __init__(self, layer_id: int, message: str, details: Optional[Any] = None):
        self.layer_id = layer_id
        super().__init__(
            f"Layer {layer_id} failed: {message}",
            error_code="ERR_EXEC_001",
            details=details,
        )


class ValidationFailure(PipelineError):
    """변환 결과의 구문 손상. 항상 전체 롤백을 유발합니다."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_VALID_001", details=details)


class SnapshotNotFoundError(PipelineError):
    """존재하지 않는 스냅샷 ID."""

    def __init__(self, snapshot_id: str, details: Optional[Any] = None):
        self.snapshot_id = snapshot_id
        super().__init__(
            f"Snapshot not found: {snapshot_id}",
            error_code="ERR_SNAPSHOT_001",
            details=details,
        )


class CacheError(PipelineError):
    """캐시 엔트리 손상. 호출 측에서는 캐시 미스로 처리됩니다."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message, error_code="ERR_CACHE_001", details=details)
