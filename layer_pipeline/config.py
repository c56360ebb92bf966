from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """
    파이프라인 동작을 결정하는 설정 클래스입니다.
    환경 변수(LAYER_PIPELINE_ 접두어) 또는 .env 파일에서 값을 읽어옵니다.

    임계값들은 검증된 최적값이 아니라 기본값입니다.
    각 컴포넌트는 생성자 인자로 개별 값을 덮어쓸 수 있습니다.
    """

    # 검증 설정: 구문 검사에 사용할 언어 (javascript, typescript, python)
    source_language: str = "javascript"

    # 실행 설정
    layer_timeout_ms: int = 10_000  # 레이어 1개당 최대 실행 시간
    worker_threads: int = 4  # 동기 transform 함수 실행용 스레드 수
    strict_prerequisites: bool = False  # 선행 레이어 실패 시 의존 레이어 건너뛰기

    # 롤백 판단 기준
    rollback_confidence_threshold: float = 0.6
    manual_review_floor: float = 0.3  # 이 값 미만이면 검토 없이 전체 롤백
    risk_score_threshold: float = 0.7
    max_unimproved_changes: int = 50  # 개선 없이 허용되는 최대 변경 라인 수
    snapshot_history_limit: int = 100

    # 신뢰도 계산 상수
    confidence_penalty_per_line: float = 0.0025
    max_change_penalty: float = 0.4
    improvement_bonus: float = 0.05
    warning_penalty: float = 0.15

    # 캐시 설정
    cache_ttl_minutes: int = 30
    cache_max_entries: int = 500
    cache_similarity_threshold: float = 0.85
    cache_eviction_fraction: float = 0.2  # 용량 초과 시 점수 하위 20% 제거

    # 재시도 설정: 파이프라인 전체 재실행
    max_retries: int = 3
    retry_delay_seconds: float = 2.0

    class Config:
        env_prefix = "LAYER_PIPELINE_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """
    설정을 가져오는 함수입니다.
    @lru_cache로 한 번 읽은 설정을 재사용합니다.
    """
    return Settings()
