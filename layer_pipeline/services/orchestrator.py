"""
레이어 파이프라인의 전체 흐름을 관리하는 '지휘자' 역할을 하는 실행기입니다.

처리 단계(파이프라인):
1. 분류 (Context): 입력 코드의 역할, 실행 환경, 기능 표면을 판별합니다.
2. 의존성 해결 (Resolve): 요청 레이어에 누락된 선행 레이어를 추가합니다.
3. 캐시 조회 (Cache): 같은 입력 + 같은 레이어 조합이면 이전 결과를 반환합니다.
4. 최적화 (Prune): 변경을 만들지 않을 것이 확실한 레이어를 제외합니다.
5. 실행 (Execute): 레이어를 ID 오름차순으로 하나씩 실행합니다.
   transform → 검증 → 스냅샷 → 롤백 판단 → 결정 적용 → 기록
6. 캐시 저장 (Cache): 오류 없이 끝난 실행 결과를 저장합니다.

레이어 하나의 실패, 시간 초과, 롤백은 파이프라인을 중단시키지 않습니다.
다음 레이어는 항상 마지막으로 안전하다고 판정된 코드로 실행됩니다.
"""

import asyncio
import inspect
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from layer_pipeline.config import Settings, get_settings
from layer_pipeline.exceptions import (
    LayerExecutionError,
    LayerTimeoutError,
    PipelineError,
    ValidationFailure,
)
from layer_pipeline.layers import LayerRegistry, create_default_registry
from layer_pipeline.models import (
    DependencyResolution,
    ExecutionContext,
    Layer,
    LayerExecutionRecord,
    LayerStatus,
    LayerTransformResult,
    PipelineOptions,
    PipelineResult,
    RollbackAction,
    RollbackMode,
    TransformFn,
    ValidationOutcome,
)
from .context_analyzer import ContextAnalyzer
from .dependency_resolver import DependencyResolver
from .optimizer import PerformanceOptimizer
from .rollback_manager import RollbackManager
from .validator import TransformationValidator

logger = logging.getLogger(__name__)

# 재시도 판단 및 선행 레이어 실패 판단에 사용하는 상태
_ERROR_STATUSES = frozenset({LayerStatus.FAILED, LayerStatus.TIMED_OUT})


class PipelineExecutor:
    """
    레이어 파이프라인 실행기입니다.

    캐시와 스냅샷 이력은 이 인스턴스가 소유하며, 동시에 실행되는 여러 run() 호출이
    공유합니다. 그 외의 상태(컨텍스트, 실행 중인 코드, 결과)는 run() 호출마다 독립적입니다.

    Attributes:
        registry: 레이어 카탈로그와 transform 함수
        validator: 변환 결과 검증기
        rollback_manager: 스냅샷 및 롤백 판단
        optimizer: 레이어 건너뛰기와 결과 캐시
    """

    def __init__(
        self,
        registry: Optional[LayerRegistry] = None,
        settings: Optional[Settings] = None,
        validator: Optional[TransformationValidator] = None,
        rollback_manager: Optional[RollbackManager] = None,
        optimizer: Optional[PerformanceOptimizer] = None,
        context_analyzer: Optional[ContextAnalyzer] = None,
        resolver: Optional[DependencyResolver] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry or create_default_registry()

        self.validator = validator or TransformationValidator(settings=self.settings)
        self.rollback_manager = rollback_manager or RollbackManager(settings=self.settings)
        self.optimizer = optimizer or PerformanceOptimizer(self.registry, settings=self.settings)
        self.context_analyzer = context_analyzer or ContextAnalyzer()
        self.resolver = resolver or DependencyResolver(self.registry)

        # 동기 transform 함수 실행용
        self._executor = ThreadPoolExecutor(max_workers=self.settings.worker_threads)

    def resolve_dependencies(self, requested_layers: Optional[Iterable[int]] = None) -> DependencyResolution:
        """의존성 해결 (진단/도구용으로 단독 노출)."""
        return self.resolver.resolve(requested_layers)

    async def run(
        self,
        code: str,
        requested_layers: Optional[Iterable[int]] = None,
        options: Optional[PipelineOptions] = None,
        file_path: Optional[str] = None,
        cancel_event: Optional[Any] = None,
    ) -> PipelineResult:
        """
        파이프라인을 실행하는 메인 함수입니다.

        Args:
            code: 입력 소스 코드
            requested_layers: 요청 레이어 ID 목록. 비어 있으면 전체 레이어.
            options: 실행 옵션 (캐시, 레이어별 시간 제한, 최적화 생략, 선행 레이어 정책)
            file_path: 문서 분류에 사용할 경로 힌트
            cancel_event: is_set()을 가진 이벤트 (asyncio.Event 등). 레이어 사이에서 확인.

        Returns:
            PipelineResult. 레이어 문제로 예외를 발생시키지 않습니다.
        """
        options = options or PipelineOptions()
        started = time.perf_counter()
        requested = list(requested_layers or [])

        timeout_ms = options.timeout_ms_per_layer or self.settings.layer_timeout_ms
        strict = (
            options.strict_prerequisites
            if options.strict_prerequisites is not None
            else self.settings.strict_prerequisites
        )

        # ========== 1단계: 분류 ==========
        context = self.context_analyzer.analyze(code, file_path)
        logger.debug(
            f"[Pipeline] 컨텍스트: role={context.document_role.value}, "
            f"env={context.environment.value}, features={sorted(context.features)}"
        )

        # ========== 2단계: 의존성 해결 ==========
        resolution = self.resolve_dependencies(requested)
        warnings = list(resolution.warnings)
        for warning in warnings:
            logger.warning(f"[Pipeline] {warning}")
        resolved = list(resolution.corrected_layers)

        # ========== 3단계: 캐시 조회 ==========
        if options.use_cache and resolved:
            entry = self.optimizer.lookup(code, resolved)
            if entry is not None:
                logger.info(f"[Pipeline] 캐시 히트: layers={resolved}")
                return PipelineResult(
                    final_code=entry.result_code,
                    original_code=code,
                    total_execution_time_ms=self._elapsed_ms(started),
                    successful_layer_count=entry.successful_layer_count,
                    requested_layers=requested,
                    resolved_layers=resolved,
                    warnings=warnings,
                    context=context,
                    from_cache=True,
                )

        # ========== 4단계: 최적화 ==========
        layers, skipped = resolved, []
        if not options.skip_optimization:
            layers, skipped = self.optimizer.filter_layers(code, resolved, context)
            for warning in self._pruned_prerequisite_warnings(layers, skipped):
                warnings.append(warning)
                logger.warning(f"[Pipeline] {warning}")

        # ========== 5단계: 실행 ==========
        current = code
        records: list[LayerExecutionRecord] = []
        blocked_layers: set[int] = set()
        cancelled = False

        for layer_id in layers:
            if self._is_cancelled(cancel_event):
                cancelled = True
                logger.info(f"[Pipeline] 실행 취소: Layer {layer_id}부터 실행하지 않음")
                break

            layer = self.registry.get(layer_id)

            failed_prerequisites = sorted(layer.prerequisites & blocked_layers)
            if failed_prerequisites:
                if strict:
                    blocked_layers.add(layer_id)
                    reason = f"Skipped: prerequisite layer(s) {failed_prerequisites} did not complete"
                    logger.warning(f"[Pipeline] Layer {layer_id} {reason}")
                    records.append(self._skipped_record(layer, current, reason))
                    continue
                warning = (
                    f"Layer {layer_id} runs although prerequisite layer(s) "
                    f"{failed_prerequisites} did not complete"
                )
                warnings.append(warning)
                logger.warning(f"[Pipeline] {warning}")

            record = await self._execute_layer(layer, current, context, timeout_ms, cancel_event)
            records.append(record)

            if record.status == LayerStatus.CANCELLED:
                cancelled = True
                break

            self.optimizer.record_layer_execution(record)
            if record.status in _ERROR_STATUSES:
                blocked_layers.add(layer_id)
            if record.success:
                current = record.after_code

        successful = sum(1 for record in records if record.success)
        elapsed_ms = self._elapsed_ms(started)

        # ========== 6단계: 캐시 저장 ==========
        errored = any(record.status in _ERROR_STATUSES for record in records)
        if options.use_cache and resolved and not errored and not cancelled:
            self.optimizer.store(
                code,
                resolved,
                result_code=current,
                successful_layer_count=successful,
                execution_time_ms=elapsed_ms,
            )

        logger.info(
            f"[Pipeline] 완료: {successful}/{len(records)}개 레이어 성공, "
            f"건너뜀 {skipped}, {elapsed_ms:.1f}ms"
        )

        return PipelineResult(
            final_code=current,
            original_code=code,
            layer_results=records,
            total_execution_time_ms=elapsed_ms,
            successful_layer_count=successful,
            requested_layers=requested,
            resolved_layers=resolved,
            skipped_layers=skipped,
            warnings=warnings,
            context=context,
            cancelled=cancelled,
        )

    async def run_with_retry(
        self,
        code: str,
        requested_layers: Optional[Iterable[int]] = None,
        options: Optional[PipelineOptions] = None,
        file_path: Optional[str] = None,
        cancel_event: Optional[Any] = None,
        max_retries: Optional[int] = None,
    ) -> PipelineResult:
        """
        실행한 모든 레이어가 시간 초과된 경우 파이프라인 전체를 재실행합니다.

        재시도는 항상 원본 입력부터 다시 시작하며,
        대기 시간은 retry_delay_seconds * 2^attempt 로 증가합니다.
        """
        max_retries = max_retries if max_retries is not None else self.settings.max_retries
        requested = list(requested_layers or [])
        result: Optional[PipelineResult] = None

        for attempt in range(max(1, max_retries)):
            result = await self.run(code, requested, options, file_path, cancel_event)
            result = result.model_copy(update={"attempts": attempt + 1})

            if result.cancelled or not self._all_timed_out(result):
                return result

            if attempt < max_retries - 1:
                wait_time = self.settings.retry_delay_seconds * (2 ** attempt)
                logger.warning(
                    f"[Pipeline] 모든 레이어 시간 초과, 재시도 ({attempt + 1}/{max_retries}), "
                    f"{wait_time:.1f}초 대기"
                )
                await asyncio.sleep(wait_time)

        logger.error(f"[Pipeline] 재시도 {max_retries}회 모두 시간 초과")
        return result

    def shutdown(self) -> None:
        """스레드 풀 종료. 실행 중인 transform은 기다리지 않습니다."""
        self._executor.shutdown(wait=False)

    async def _execute_layer(
        self,
        layer: Layer,
        code: str,
        context: ExecutionContext,
        timeout_ms: int,
        cancel_event: Optional[Any],
    ) -> LayerExecutionRecord:
        """레이어 1개 실행: transform → 검증 → 스냅샷 → 롤백 판단 → 결정 적용."""
        started = time.perf_counter()

        try:
            transform = self.registry.get_transform(layer.id)
            if transform is None:
                raise LayerExecutionError(layer.id, "no transform bound to this layer")

            output = await asyncio.wait_for(
                self._invoke(transform, code, context),
                timeout=timeout_ms / 1000,
            )
            after, reported_changes = self._normalize_output(layer.id, output)

        except asyncio.TimeoutError:
            error = LayerTimeoutError(layer.id, timeout_ms)
            logger.warning(f"[Pipeline] {error.message}, 이전 코드로 계속 진행")
            return self._error_record(layer, code, started, error, LayerStatus.TIMED_OUT)
        except LayerExecutionError as e:
            logger.warning(f"[Pipeline] {e.message}")
            return self._error_record(layer, code, started, e, LayerStatus.FAILED)
        except Exception as e:
            error = LayerExecutionError(layer.id, str(e) or type(e).__name__, details={"type": type(e).__name__})
            logger.warning(f"[Pipeline] {error.message}")
            return self._error_record(layer, code, started, error, LayerStatus.FAILED)

        # 레이어 완료 후 스냅샷 전에 취소된 경우 결과를 폐기
        if self._is_cancelled(cancel_event):
            logger.info(f"[Pipeline] Layer {layer.id} 완료 직후 취소됨, 결과 폐기")
            return LayerExecutionRecord(
                layer_id=layer.id,
                layer_name=layer.name,
                before_code=code,
                after_code=after,
                execution_time_ms=self._elapsed_ms(started),
                success=False,
                status=LayerStatus.CANCELLED,
                reason="Cancelled before the layer result was recorded; output discarded",
            )

        try:
            validation = self.validator.validate(code, after)
        except ValidationFailure as e:
            logger.warning(f"[Pipeline] Layer {layer.id} 검증 실패: {e.message}")
            validation = ValidationOutcome(should_revert=True, reason=e.message, confidence=1.0)

        # 동시 실행 중 이력에서 제거될 수 있으므로 받은 스냅샷으로 판단과 복원을 수행
        snapshot = self.rollback_manager.record_snapshot(layer.id, code, after, validation)
        decision = self.rollback_manager.decide(snapshot)

        base = dict(
            layer_id=layer.id,
            layer_name=layer.name,
            before_code=code,
            after_code=after,
            change_count=reported_changes if reported_changes is not None else snapshot.change_count,
            improvements=snapshot.improvements,
            risks=snapshot.risks,
            action=decision.action,
            reason=decision.reason,
            confidence=snapshot.confidence,
            snapshot_id=snapshot.id,
        )

        if decision.action == RollbackAction.ACCEPT:
            logger.info(f"[Pipeline] Layer {layer.id} 채택 ({base['change_count']}개 라인 변경)")
            return LayerExecutionRecord(
                **base,
                execution_time_ms=self._elapsed_ms(started),
                success=True,
                status=LayerStatus.ACCEPTED,
            )

        if decision.action == RollbackAction.PARTIAL_ROLLBACK:
            outcome = self.rollback_manager.restore(snapshot, RollbackMode.PARTIAL)
            return LayerExecutionRecord(
                **base,
                execution_time_ms=self._elapsed_ms(started),
                success=outcome.kept_changes,
                status=LayerStatus.PARTIALLY_ROLLED_BACK,
            )

        # full-rollback, manual-review: 변환 전 코드 복원
        self.rollback_manager.restore(snapshot, RollbackMode.FULL)
        if decision.action == RollbackAction.MANUAL_REVIEW:
            logger.warning(f"[Pipeline] Layer {layer.id} 검토 필요: {decision.reason}")
            status = LayerStatus.FLAGGED_FOR_REVIEW
        else:
            logger.warning(f"[Pipeline] Layer {layer.id} 전체 롤백: {decision.reason}")
            status = LayerStatus.ROLLED_BACK

        return LayerExecutionRecord(
            **base,
            execution_time_ms=self._elapsed_ms(started),
            success=False,
            status=status,
            error=validation.reason if validation.is_hard_error else None,
        )

    async def _invoke(self, transform: TransformFn, code: str, context: ExecutionContext) -> Any:
        """transform 호출. 동기 함수는 스레드 풀에서 실행합니다."""
        if inspect.iscoroutinefunction(transform):
            return await transform(code, context)

        loop = asyncio.get_running_loop()
        output = await loop.run_in_executor(self._executor, transform, code, context)
        if inspect.isawaitable(output):
            output = await output
        return output

    @staticmethod
    def _normalize_output(layer_id: int, output: Any) -> tuple[str, Optional[int]]:
        """transform 반환값을 (코드, 보고된 변경 수)로 변환합니다."""
        if isinstance(output, str):
            return output, None

        if isinstance(output, dict):
            try:
                output = LayerTransformResult.model_validate(output)
            except ValidationError as e:
                raise LayerExecutionError(layer_id, f"invalid transform result: {e}") from e

        if isinstance(output, LayerTransformResult):
            if output.error:
                raise LayerExecutionError(layer_id, output.error)
            return output.code, output.change_count

        raise LayerExecutionError(
            layer_id, f"unsupported transform result type: {type(output).__name__}"
        )

    def _pruned_prerequisite_warnings(self, layers: list[int], skipped: list[int]) -> list[str]:
        """최적화로 제외된 선행 레이어 없이 실행되는 레이어마다 경고를 만듭니다."""
        pruned = set(skipped)
        warnings = []
        for layer_id in layers:
            missing = sorted(self.registry.get(layer_id).prerequisites & pruned)
            if missing:
                warnings.append(
                    f"Layer {layer_id} runs without prerequisite layer(s) {missing} "
                    f"skipped by optimizer"
                )
        return warnings

    def _error_record(
        self,
        layer: Layer,
        code: str,
        started: float,
        error: PipelineError,
        status: LayerStatus,
    ) -> LayerExecutionRecord:
        return LayerExecutionRecord(
            layer_id=layer.id,
            layer_name=layer.name,
            before_code=code,
            after_code=code,
            execution_time_ms=self._elapsed_ms(started),
            success=False,
            status=status,
            error=error.message,
            reason=error.message,
        )

    @staticmethod
    def _skipped_record(layer: Layer, code: str, reason: str) -> LayerExecutionRecord:
        return LayerExecutionRecord(
            layer_id=layer.id,
            layer_name=layer.name,
            before_code=code,
            after_code=code,
            success=False,
            status=LayerStatus.SKIPPED,
            reason=reason,
        )

    @staticmethod
    def _all_timed_out(result: PipelineResult) -> bool:
        executed = [r for r in result.layer_results if r.status != LayerStatus.SKIPPED]
        return bool(executed) and all(r.status == LayerStatus.TIMED_OUT for r in executed)

    @staticmethod
    def _is_cancelled(cancel_event: Optional[Any]) -> bool:
        return cancel_event is not None and cancel_event.is_set()

    @staticmethod
    def _elapsed_ms(started: float) -> float:
        return round((time.perf_counter() - started) * 1000, 3)
