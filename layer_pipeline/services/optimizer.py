"""
성능 최적화 서비스.

두 가지 최적화를 제공합니다:
1. 적응형 레이어 건너뛰기: 변경이 없을 것이 확실한 레이어를 실행 전에 제외
2. 결과 캐싱: 같은 입력 + 같은 레이어 조합이면 이전 결과 재사용

건너뛰기는 보수적으로 판단합니다. 레이어가 트리거 패턴을 선언했고,
그 중 어느 것도 일치하지 않으며, 컨텍스트에도 관련 기능이 없을 때만 건너뜁니다.
컨텍스트 분석 결과만으로 레이어를 제외하지는 않습니다.
"""

import logging
import re
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from layer_pipeline.config import Settings, get_settings
from layer_pipeline.layers import LayerRegistry
from layer_pipeline.models import ExecutionContext, LayerExecutionRecord
from .cache import CacheEntry, ContentCache

logger = logging.getLogger(__name__)


@dataclass
class LayerProfile:
    """레이어별 실행 통계."""
    layer_id: int
    execution_count: int = 0
    average_execution_time_ms: float = 0.0
    success_rate: float = 0.0

    def record(self, execution_time_ms: float, success: bool) -> None:
        """누적 평균 갱신."""
        self.execution_count += 1
        n = self.execution_count
        self.average_execution_time_ms += (execution_time_ms - self.average_execution_time_ms) / n
        self.success_rate += ((1.0 if success else 0.0) - self.success_rate) / n


@dataclass
class OptimizerStats:
    """최적화 통계 요약."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    hit_rate: float = 0.0
    cache_entries: int = 0
    skipped_layers: int = 0
    profiles: Dict[int, LayerProfile] = field(default_factory=dict)


class PerformanceOptimizer:
    """
    레이어 건너뛰기 판단과 결과 캐시를 담당하는 클래스입니다.
    """

    def __init__(
        self,
        registry: LayerRegistry,
        settings: Optional[Settings] = None,
        cache: Optional[ContentCache] = None,
    ):
        self.registry = registry
        self.settings = settings or get_settings()
        self.cache = cache or ContentCache(settings=self.settings)

        self._compiled: Dict[int, list[re.Pattern]] = {}
        self._profiles: Dict[int, LayerProfile] = {}
        self._skipped_count = 0
        self._lock = threading.RLock()

    # ========================================
    # 레이어 건너뛰기
    # ========================================

    def should_skip_layer(
        self,
        code: str,
        layer_id: int,
        context: Optional[ExecutionContext] = None,
    ) -> bool:
        """
        레이어를 건너뛸 수 있는지 판단합니다.

        Args:
            code: 현재 입력 코드
            layer_id: 레이어 ID
            context: 문서 컨텍스트 (선택)

        Returns:
            True면 이 레이어는 변경을 만들지 않을 것이 확실함

        Raises:
            UnknownLayerError: 등록되지 않은 레이어
        """
        layer = self.registry.get(layer_id)
        patterns = self._patterns_for(layer_id, layer.trigger_patterns)

        # 트리거를 선언하지 않은 레이어는 항상 실행
        if not patterns:
            return False

        if any(pattern.search(code) for pattern in patterns):
            return False

        if context is not None and layer.relevant_features & context.features:
            return False

        return True

    def filter_layers(
        self,
        code: str,
        layer_ids: Iterable[int],
        context: Optional[ExecutionContext] = None,
    ) -> tuple[list[int], list[int]]:
        """
        실행할 레이어와 건너뛸 레이어를 분리합니다.

        Returns:
            (실행 레이어 목록, 건너뛴 레이어 목록)
        """
        selected: list[int] = []
        skipped: list[int] = []

        for layer_id in layer_ids:
            if self.should_skip_layer(code, layer_id, context):
                skipped.append(layer_id)
            else:
                selected.append(layer_id)

        if skipped:
            with self._lock:
                self._skipped_count += len(skipped)
            logger.info(f"[Optimizer] 변경 가능성 없는 레이어 건너뜀: {skipped}")

        return selected, skipped

    def _patterns_for(self, layer_id: int, sources: tuple[str, ...]) -> list[re.Pattern]:
        with self._lock:
            compiled = self._compiled.get(layer_id)
            if compiled is None:
                compiled = [re.compile(source) for source in sources]
                self._compiled[layer_id] = compiled
            return compiled

    # ========================================
    # 결과 캐시
    # ========================================

    def make_key(self, code: str, layer_ids: Iterable[int]) -> str:
        return self.cache.make_key(code, layer_ids)

    def lookup(self, code: str, layer_ids: Iterable[int]) -> Optional[CacheEntry]:
        """캐시된 결과 조회. 미스면 None."""
        return self.cache.get(self.make_key(code, layer_ids), code)

    def store(
        self,
        code: str,
        layer_ids: Iterable[int],
        result_code: str,
        successful_layer_count: int = 0,
        execution_time_ms: float = 0.0,
    ) -> CacheEntry:
        """파이프라인 결과를 캐시에 저장합니다."""
        return self.cache.set(
            self.make_key(code, layer_ids),
            original_code=code,
            result_code=result_code,
            successful_layer_count=successful_layer_count,
            performance_gain_ms=execution_time_ms,
        )

    # ========================================
    # 성능 프로파일
    # ========================================

    def record_layer_execution(self, record: LayerExecutionRecord) -> LayerProfile:
        """레이어 실행 기록으로 프로파일을 갱신합니다."""
        with self._lock:
            profile = self._profiles.get(record.layer_id)
            if profile is None:
                profile = LayerProfile(layer_id=record.layer_id)
                self._profiles[record.layer_id] = profile
            profile.record(record.execution_time_ms, record.success)
            return profile

    def get_profile(self, layer_id: int) -> Optional[LayerProfile]:
        with self._lock:
            return self._profiles.get(layer_id)

    def get_stats(self) -> OptimizerStats:
        """캐시와 건너뛰기 통계를 합친 요약."""
        cache_stats = self.cache.stats
        with self._lock:
            profiles = {
                layer_id: LayerProfile(**vars(profile))
                for layer_id, profile in self._profiles.items()
            }
            skipped = self._skipped_count

        return OptimizerStats(
            hits=cache_stats.hits,
            misses=cache_stats.misses,
            evictions=cache_stats.evictions,
            hit_rate=cache_stats.hit_rate,
            cache_entries=len(self.cache),
            skipped_layers=skipped,
            profiles=profiles,
        )

    def clear(self) -> None:
        """캐시와 프로파일 초기화."""
        self.cache.clear()
        with self._lock:
            self._profiles.clear()
            self._skipped_count = 0
