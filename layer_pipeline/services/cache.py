"""Content cache for pipeline results.

입력 코드 지문 + 레이어 조합을 키로 파이프라인 결과를 메모리에 캐싱합니다.

주요 기능:
- 32비트 다항식 해시 기반 콘텐츠 지문
- 30분 TTL (Time-To-Live)
- 라인 유사도 검증 (지문 충돌 방지)
- 용량 초과 시 점수 하위 20% 제거
- 캐시 히트율 통계

사용 예시:
    cache = ContentCache()

    cache_key = cache.make_key(code, [1, 2, 3])

    entry = cache.get(cache_key, code)
    if entry:
        return entry.result_code

    result = await pipeline.run(code)
    cache.set(cache_key, code, result.final_code)
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from layer_pipeline.config import Settings, get_settings
from layer_pipeline.exceptions import CacheError
from layer_pipeline.utils.text import content_fingerprint, layer_signature, line_similarity

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """캐시 엔트리."""
    key: str
    result_code: str
    original_code: str
    original_fingerprint: str
    created_at: float
    last_accessed: float
    hit_count: int = 0
    performance_gain_ms: float = 0.0
    score: float = 0.0
    successful_layer_count: int = 0


@dataclass
class CacheStats:
    """캐시 통계."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        """캐시 히트율 계산."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class ContentCache:
    """
    메모리 기반 콘텐츠 캐시.

    여러 파이프라인 실행이 동시에 접근할 수 있으므로 모든 연산은 락으로 보호합니다.

    Attributes:
        ttl_minutes: 캐시 만료 시간 (분 단위)
        max_entries: 최대 엔트리 수
        similarity_threshold: 히트로 인정할 최소 라인 유사도
        eviction_fraction: 용량 초과 시 제거할 비율
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        ttl_minutes: Optional[int] = None,
        max_entries: Optional[int] = None,
        similarity_threshold: Optional[float] = None,
        eviction_fraction: Optional[float] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        ContentCache 초기화.

        Args:
            settings: 기본값을 읽을 설정. None이면 get_settings() 사용.
            ttl_minutes: 캐시 만료 시간 (기본값: 30분)
            max_entries: 최대 크기 (기본값: 500)
            similarity_threshold: 최소 유사도 (기본값: 0.85)
            eviction_fraction: 제거 비율 (기본값: 0.2)
            clock: 현재 시각(초) 함수. 테스트에서 교체 가능.
        """
        settings = settings or get_settings()

        self.ttl_minutes = ttl_minutes if ttl_minutes is not None else settings.cache_ttl_minutes
        self.max_entries = max_entries if max_entries is not None else settings.cache_max_entries
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else settings.cache_similarity_threshold
        )
        self.eviction_fraction = (
            eviction_fraction if eviction_fraction is not None else settings.cache_eviction_fraction
        )
        self._clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._stats = CacheStats()
        self._lock = threading.RLock()

        logger.info(
            f"[Cache] 초기화 완료: TTL={self.ttl_minutes}m, max_entries={self.max_entries}"
        )

    @staticmethod
    def make_key(code: str, layer_ids: Iterable[int]) -> str:
        """
        캐시키 생성.

        Args:
            code: 입력 코드
            layer_ids: 실행 레이어 ID 목록 (정렬/중복 제거됨)

        Returns:
            캐시키 문자열 (예: "1a2b3c4d:1,2,3")
        """
        return f"{content_fingerprint(code)}:{layer_signature(layer_ids)}"

    def get(self, key: str, code: str) -> Optional[CacheEntry]:
        """
        캐시에서 엔트리 조회.

        아래 경우는 모두 미스로 처리합니다:
        - 키 없음
        - 손상된 엔트리 (제거됨)
        - TTL 만료 (제거됨)
        - 입력 코드의 지문 불일치
        - 원본 코드와의 라인 유사도가 임계값 미만

        Args:
            key: 캐시키
            code: 현재 입력 코드

        Returns:
            캐시 엔트리. 히트가 아니면 None.
        """
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)

            if entry is None:
                return self._miss(key)

            try:
                self._verify(entry)
            except CacheError as e:
                logger.warning(f"[Cache] 캐시 엔트리 손상: {key}, {e.message}")
                del self._entries[key]
                return self._miss(key)

            if self._is_expired(entry, now):
                del self._entries[key]
                self._stats.evictions += 1
                logger.debug(f"[Cache] 만료 엔트리 제거: {key}")
                return self._miss(key)

            if content_fingerprint(code) != entry.original_fingerprint:
                return self._miss(key)

            similarity = line_similarity(code, entry.original_code)
            if similarity < self.similarity_threshold:
                logger.debug(f"[Cache] 유사도 부족 ({similarity:.2f}): {key}")
                return self._miss(key)

            entry.hit_count += 1
            entry.last_accessed = now
            self._stats.hits += 1
            logger.debug(f"[Cache] 캐시 히트: {key}")
            return entry

    def set(
        self,
        key: str,
        original_code: str,
        result_code: str,
        successful_layer_count: int = 0,
        performance_gain_ms: float = 0.0,
    ) -> CacheEntry:
        """
        캐시에 결과 저장.

        용량이 가득 차 있으면 먼저 점수 하위 엔트리를 제거합니다.

        Args:
            key: 캐시키
            original_code: 입력 코드
            result_code: 파이프라인 최종 코드
            successful_layer_count: 결과를 만든 성공 레이어 수
            performance_gain_ms: 히트 시 절약되는 실행 시간

        Returns:
            저장된 엔트리
        """
        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                self._evict(now)

            entry = CacheEntry(
                key=key,
                result_code=result_code,
                original_code=original_code,
                original_fingerprint=content_fingerprint(original_code),
                created_at=now,
                last_accessed=now,
                performance_gain_ms=performance_gain_ms,
                successful_layer_count=successful_layer_count,
            )
            entry.score = self._score(entry, now)
            self._entries[key] = entry

        logger.debug(f"[Cache] 캐시 저장: {key}")
        return entry

    def delete(self, key: str) -> bool:
        """
        캐시에서 엔트리 삭제.

        Returns:
            삭제 성공 여부
        """
        with self._lock:
            deleted = self._entries.pop(key, None) is not None

        if deleted:
            logger.debug(f"[Cache] 캐시 삭제: {key}")
        return deleted

    def clear(self) -> int:
        """
        모든 캐시 삭제.

        Returns:
            삭제된 엔트리 수
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()

        logger.info(f"[Cache] 캐시 초기화: {count}개 삭제")
        return count

    def cleanup_expired(self) -> int:
        """
        만료된 캐시 정리.

        Returns:
            정리된 엔트리 수
        """
        with self._lock:
            now = self._clock()
            expired_keys = [
                key for key, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for key in expired_keys:
                del self._entries[key]
            self._stats.evictions += len(expired_keys)

        if expired_keys:
            logger.info(f"[Cache] 만료 캐시 정리: {len(expired_keys)}개")
        return len(expired_keys)

    @property
    def stats(self) -> CacheStats:
        """캐시 통계 반환."""
        return self._stats

    def get_stats_summary(self) -> str:
        """캐시 통계 요약 문자열."""
        return (
            f"히트: {self._stats.hits}, "
            f"미스: {self._stats.misses}, "
            f"제거: {self._stats.evictions}, "
            f"히트율: {self._stats.hit_rate:.1%}, "
            f"엔트리: {len(self)}"
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def _miss(self, key: str) -> None:
        self._stats.misses += 1
        logger.debug(f"[Cache] 캐시 미스: {key}")
        return None

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at >= self.ttl_minutes * 60

    @staticmethod
    def _verify(entry: CacheEntry) -> None:
        """엔트리 자체 무결성 검사 (타입과 저장된 지문 일치)."""
        if not isinstance(entry.result_code, str) or not isinstance(entry.original_code, str):
            raise CacheError("cached code is not text", details={"key": entry.key})
        if content_fingerprint(entry.original_code) != entry.original_fingerprint:
            raise CacheError("fingerprint does not match stored code", details={"key": entry.key})

    def _score(self, entry: CacheEntry, now: float) -> float:
        """
        보존 점수 계산 (높을수록 오래 유지).

        - 최근 접근: TTL 대비 경과 시간만큼 감점
        - 히트 수: 로그 스케일 가산
        - 성능 이득: 1초당 0.5점, 최대 1점
        """
        ttl_seconds = max(self.ttl_minutes * 60, 1)
        recency = 1.0 - min(1.0, (now - entry.last_accessed) / ttl_seconds)
        usage = math.log1p(entry.hit_count)
        gain = min(1.0, entry.performance_gain_ms / 2000)
        return round(recency + usage + gain, 4)

    def _evict(self, now: float) -> None:
        """점수 하위 엔트리 제거 (엔트리가 있으면 최소 1개)."""
        for entry in self._entries.values():
            entry.score = self._score(entry, now)

        ranked = sorted(self._entries.values(), key=lambda e: (e.score, e.last_accessed))
        eviction_count = min(len(ranked), max(1, math.floor(len(ranked) * self.eviction_fraction)))
        if eviction_count == 0:
            return

        for entry in ranked[:eviction_count]:
            del self._entries[entry.key]

        self._stats.evictions += eviction_count
        logger.info(f"[Cache] 용량 초과로 {eviction_count}개 엔트리 제거")
