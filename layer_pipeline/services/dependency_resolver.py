"""레이어 의존성 해결 서비스.

요청된 레이어 목록을 선행 레이어 관계에 대해 닫힌(closed) 최소 집합으로 보정합니다.

처리 규칙:
- 빈 요청: 등록된 모든 레이어
- 중복 제거 후 오름차순 정렬
- 누락된 선행 레이어는 자동 추가하고 경고 1건씩 기록
- 알 수 없는 ID는 경고와 함께 제외 (해결 전체를 중단하지 않음)
"""

import logging
from typing import Iterable, Optional

from layer_pipeline.exceptions import UnknownLayerError
from layer_pipeline.layers import LayerRegistry
from layer_pipeline.models import DependencyResolution

logger = logging.getLogger(__name__)


class DependencyResolver:
    """
    선행 레이어 관계를 보정하는 클래스입니다.

    결과는 항상 요청의 상위 집합이며, 다시 해결해도 같은 결과가 나옵니다 (멱등성).
    """

    def __init__(self, registry: LayerRegistry):
        self.registry = registry

    def resolve(self, requested_layers: Optional[Iterable[int]] = None) -> DependencyResolution:
        """
        요청된 레이어의 의존성을 해결합니다.

        Args:
            requested_layers: 요청 레이어 ID 목록. 비어 있으면 전체 레이어.

        Returns:
            DependencyResolution (보정된 레이어, 경고, 제외된 ID)
        """
        requested = sorted(set(requested_layers or []))
        if not requested:
            return DependencyResolution(corrected_layers=self.registry.ids())

        warnings: list[str] = []
        unknown: list[int] = []
        corrected: set[int] = set()

        for layer_id in requested:
            try:
                self.registry.get(layer_id)
            except UnknownLayerError as e:
                unknown.append(layer_id)
                warnings.append(f"{e.message}: not registered, excluded from execution")
                logger.warning(f"[Resolver] 알 수 없는 레이어 제외: {layer_id}")
                continue
            corrected.add(layer_id)

        # 고정점에 도달할 때까지 선행 레이어 추가
        changed = True
        while changed:
            changed = False
            for layer_id in sorted(corrected):
                for prerequisite in sorted(self.registry.prerequisites(layer_id)):
                    if prerequisite not in corrected:
                        corrected.add(prerequisite)
                        changed = True
                        warnings.append(
                            f"Added Layer {prerequisite} as dependency for Layer {layer_id}"
                        )
                        logger.info(
                            f"[Resolver] Layer {layer_id}의 선행 레이어 {prerequisite} 자동 추가"
                        )

        return DependencyResolution(
            corrected_layers=sorted(corrected),
            warnings=warnings,
            unknown_layers=unknown,
        )
