"""스냅샷 기반 롤백 판단 서비스.

레이어 실행마다 변환 전/후 스냅샷을 남기고, 위험도와 신뢰도를 점수화하여
채택 / 부분 롤백 / 전체 롤백 / 수동 검토 중 하나를 결정합니다.

상태 흐름:
    Executed → Evaluated → {Accepted, PartiallyRolledBack, FullyRolledBack, FlaggedForReview}

스냅샷 이력은 크기가 제한된 추가 전용(append-only) 목록이며,
용량 초과 시 가장 오래된 스냅샷부터 제거됩니다.
여러 실행이 동시에 접근할 수 있으므로 이력은 락으로 보호합니다.
"""

import logging
import threading
from collections import OrderedDict
from typing import Iterable, Optional

from layer_pipeline.config import Settings, get_settings
from layer_pipeline.exceptions import SnapshotNotFoundError
from layer_pipeline.models import (
    RollbackAction,
    RollbackDecision,
    RollbackMode,
    RollbackOutcome,
    TransformationSnapshot,
    ValidationOutcome,
)
from layer_pipeline.utils.checks import (
    ChangeCheck,
    DEFAULT_IMPROVEMENT_CHECKS,
    DEFAULT_RISK_CHECKS,
    DEFAULT_RISK_WEIGHTS,
    FUNCTIONALITY_REMOVED,
    risk_score,
    run_checks,
)
from layer_pipeline.utils.text import count_line_changes

logger = logging.getLogger(__name__)


class RollbackManager:
    """
    변환 스냅샷을 보관하고 롤백 여부를 결정하는 클래스입니다.

    Attributes:
        confidence_threshold: 이 값 미만이면 검토 또는 롤백 (기본값 0.6)
        review_floor: 이 값 미만이면 검토 없이 전체 롤백 (기본값 0.3)
        risk_threshold: 위험 점수가 이 값을 넘으면 수동 검토 (기본값 0.7)
        max_unimproved_changes: 개선 없이 허용되는 변경 라인 수 (기본값 50)
        history_limit: 스냅샷 이력 최대 크기
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        improvement_checks: Optional[Iterable[ChangeCheck]] = None,
        risk_checks: Optional[Iterable[ChangeCheck]] = None,
        risk_weights: Optional[dict[str, float]] = None,
        history_limit: Optional[int] = None,
    ):
        settings = settings or get_settings()

        self.confidence_threshold = settings.rollback_confidence_threshold
        self.review_floor = settings.manual_review_floor
        self.risk_threshold = settings.risk_score_threshold
        self.max_unimproved_changes = settings.max_unimproved_changes
        self.history_limit = history_limit or settings.snapshot_history_limit

        self.improvement_checks = list(
            improvement_checks if improvement_checks is not None else DEFAULT_IMPROVEMENT_CHECKS
        )
        self.risk_checks = list(risk_checks if risk_checks is not None else DEFAULT_RISK_CHECKS)
        self.risk_weights = dict(risk_weights if risk_weights is not None else DEFAULT_RISK_WEIGHTS)

        self._snapshots: "OrderedDict[str, TransformationSnapshot]" = OrderedDict()
        self._lock = threading.RLock()

    def create_snapshot(
        self,
        layer_id: int,
        before: str,
        after: str,
        validation: ValidationOutcome,
    ) -> str:
        """레이어 실행 스냅샷을 생성하고 ID를 반환합니다."""
        return self.record_snapshot(layer_id, before, after, validation).id

    def record_snapshot(
        self,
        layer_id: int,
        before: str,
        after: str,
        validation: ValidationOutcome,
    ) -> TransformationSnapshot:
        """
        레이어 실행 스냅샷을 생성하고 이력에 저장합니다.

        이력 용량 초과로 곧바로 제거되더라도 반환된 스냅샷으로 판단과 복원이 가능합니다.

        Args:
            layer_id: 실행된 레이어 ID
            before: 변환 전 코드
            after: 변환 후 코드
            validation: 검증기 판정 결과

        Returns:
            생성된 스냅샷
        """
        risks = run_checks(self.risk_checks, before, after)
        # 검증기가 선언 삭제를 경고했다면 기능 삭제 위험으로 간주
        if validation.warnings and FUNCTIONALITY_REMOVED not in risks:
            risks.append(FUNCTIONALITY_REMOVED)

        snapshot = TransformationSnapshot(
            layer_id=layer_id,
            before_code=before,
            after_code=after,
            confidence=validation.confidence,
            risks=risks,
            change_count=count_line_changes(before, after),
            improvements=run_checks(self.improvement_checks, before, after),
            validation=validation,
        )

        with self._lock:
            self._snapshots[snapshot.id] = snapshot
            while len(self._snapshots) > self.history_limit:
                evicted_id, _ = self._snapshots.popitem(last=False)
                logger.debug(f"[Rollback] 오래된 스냅샷 제거: {evicted_id}")

        logger.debug(
            f"[Rollback] 스냅샷 생성: {snapshot.id} (layer={layer_id}, "
            f"changes={snapshot.change_count}, risks={risks})"
        )
        return snapshot

    def get_snapshot(self, snapshot_id: str) -> TransformationSnapshot:
        with self._lock:
            snapshot = self._snapshots.get(snapshot_id)
        if snapshot is None:
            raise SnapshotNotFoundError(snapshot_id)
        return snapshot

    def evaluate_rollback(self, snapshot_id: str) -> RollbackDecision:
        """
        스냅샷의 롤백 여부를 결정합니다.

        존재하지 않는 스냅샷은 최대 위험으로 간주하여 전체 롤백합니다 (fail closed).
        """
        try:
            snapshot = self.get_snapshot(snapshot_id)
        except SnapshotNotFoundError as e:
            logger.warning(f"[Rollback] {e.message} → 전체 롤백")
            return RollbackDecision(
                should_rollback=True,
                reason=e.message,
                confidence=1.0,
                action=RollbackAction.FULL_ROLLBACK,
            )

        return self.decide(snapshot)

    def decide(self, snapshot: TransformationSnapshot) -> RollbackDecision:
        """
        롤백 결정 로직 (처음 일치하는 규칙 적용).

        결정 우선순위:
        ┌──────────────────────────────────────────────────────────────┐
        │ 조건                                  │ 결정                  │
        ├──────────────────────────────────────────────────────────────┤
        │ 1. 검증기 오류 (구문/손상)            │ full-rollback (1.0)   │
        │ 2. 신뢰도 < 0.6                       │ ≥0.3 manual-review    │
        │                                       │ <0.3 full-rollback    │
        │ 3. 위험 점수 > 0.7                    │ manual-review         │
        │ 4. 변경 > 50 라인 & 개선 없음         │ partial-rollback      │
        │ 5. 그 외                              │ accept                │
        └──────────────────────────────────────────────────────────────┘

        같은 메타데이터(신뢰도, 위험, 변경 수)에는 항상 같은 결정을 반환합니다.
        """
        validation = snapshot.validation

        # 규칙 1: 검증기 하드 에러
        if validation.is_hard_error:
            return RollbackDecision(
                should_rollback=True,
                reason=validation.reason or "Validator reported a hard error",
                confidence=1.0,
                action=RollbackAction.FULL_ROLLBACK,
            )

        # 규칙 2: 낮은 신뢰도
        if snapshot.confidence < self.confidence_threshold:
            action = (
                RollbackAction.MANUAL_REVIEW
                if snapshot.confidence >= self.review_floor
                else RollbackAction.FULL_ROLLBACK
            )
            return RollbackDecision(
                should_rollback=True,
                reason=self._describe_low_confidence(snapshot),
                confidence=round(1.0 - snapshot.confidence, 4),
                action=action,
            )

        # 규칙 3: 위험 점수
        score = risk_score(snapshot.risks, self.risk_weights)
        if score > self.risk_threshold:
            return RollbackDecision(
                should_rollback=True,
                reason=f"High risk transformation detected: {', '.join(snapshot.risks)}",
                confidence=score,
                action=RollbackAction.MANUAL_REVIEW,
            )

        # 규칙 4: 개선 없는 대량 변경
        if snapshot.change_count > self.max_unimproved_changes and not snapshot.improvements:
            return RollbackDecision(
                should_rollback=True,
                reason=(
                    f"Extensive changes ({snapshot.change_count} lines) "
                    f"without recognized improvements"
                ),
                confidence=0.8,
                action=RollbackAction.PARTIAL_ROLLBACK,
            )

        return RollbackDecision(
            should_rollback=False,
            reason="Transformation appears safe",
            confidence=snapshot.confidence,
            action=RollbackAction.ACCEPT,
        )

    def perform_rollback(self, snapshot_id: str, mode: RollbackMode) -> RollbackOutcome:
        """
        롤백을 수행하고 복원된 코드를 반환합니다.

        - full: 변환 전 코드 그대로
        - partial: 개선이 있고 위험이 전혀 없을 때만 변환 결과 유지, 아니면 변환 전 코드
          (부분 롤백은 전체 롤백보다 위험한 결과를 반환하지 않음)

        Raises:
            SnapshotNotFoundError: 존재하지 않는 스냅샷
        """
        return self.restore(self.get_snapshot(snapshot_id), mode)

    def restore(self, snapshot: TransformationSnapshot, mode: RollbackMode) -> RollbackOutcome:
        """이미 확보한 스냅샷으로 롤백을 수행합니다 (이력 조회 없음)."""
        snapshot_id = snapshot.id
        mode = RollbackMode(mode)

        if mode == RollbackMode.PARTIAL and snapshot.improvements and not snapshot.risks:
            logger.info(
                f"[Rollback] Layer {snapshot.layer_id} 부분 롤백: 개선 사항 유지 "
                f"({', '.join(snapshot.improvements)})"
            )
            return RollbackOutcome(
                snapshot_id=snapshot_id,
                mode=mode,
                restored_code=snapshot.after_code,
                kept_changes=True,
                message=f"Partially rolled back layer {snapshot.layer_id}, preserving safe improvements",
            )

        logger.info(f"[Rollback] Layer {snapshot.layer_id} 변환 전 코드로 복원 ({mode.value})")
        message = (
            f"Rolled back layer {snapshot.layer_id} completely"
            if mode == RollbackMode.FULL
            else f"Partial rollback of layer {snapshot.layer_id} fell back to the original code"
        )
        return RollbackOutcome(
            snapshot_id=snapshot_id,
            mode=mode,
            restored_code=snapshot.before_code,
            kept_changes=False,
            message=message,
        )

    def get_snapshot_history(self) -> list[TransformationSnapshot]:
        """스냅샷 이력 (최신순)."""
        with self._lock:
            snapshots = list(self._snapshots.values())
        return list(reversed(snapshots))

    def clear_history(self) -> None:
        with self._lock:
            self._snapshots.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)

    @staticmethod
    def _describe_low_confidence(snapshot: TransformationSnapshot) -> str:
        if len(snapshot.validation.warnings) > 3:
            return "Multiple warnings detected in transformation"
        if snapshot.change_count > 100:
            return "Extensive code changes reduce confidence"
        if FUNCTIONALITY_REMOVED in snapshot.risks:
            return "Potential functionality changes detected"
        return f"Low confidence in transformation safety ({snapshot.confidence:.2f})"
