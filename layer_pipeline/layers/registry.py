"""
레이어 레지스트리 모듈입니다.
사용 가능한 레이어 정의와 각 레이어에 연결된 외부 transform 함수를 관리합니다.
"""

import logging
from typing import Dict, Iterable, Iterator, Optional

from layer_pipeline.exceptions import LayerRegistrationError, UnknownLayerError
from layer_pipeline.models import Layer, TransformFn

logger = logging.getLogger(__name__)


class LayerRegistry:
    """
    레이어 카탈로그 클래스입니다.

    레이어 ID는 의존 깊이에 대해 단조 증가해야 합니다.
    즉 모든 선행 레이어는 자신보다 작은 ID를 가지며, 먼저 등록되어 있어야 합니다.
    이 규칙 덕분에 오름차순 실행만으로 의존 순서가 보장됩니다.
    """

    def __init__(self, layers: Optional[Iterable[Layer]] = None):
        self._layers: Dict[int, Layer] = {}
        self._transforms: Dict[int, TransformFn] = {}

        for layer in sorted(layers or [], key=lambda item: item.id):
            self.register(layer)

    def register(self, layer: Layer, transform: Optional[TransformFn] = None) -> Layer:
        """
        레이어를 등록합니다.

        Args:
            layer: 레이어 정의
            transform: 외부 transform 함수 (나중에 bind()로 연결 가능)

        Raises:
            LayerRegistrationError: 중복 ID, 미등록 선행 레이어, 순서 규칙 위반
        """
        if layer.id in self._layers:
            raise LayerRegistrationError(
                f"이미 등록된 레이어 ID입니다: {layer.id}",
                details={"layer_id": layer.id},
            )

        for prerequisite in sorted(layer.prerequisites):
            if prerequisite >= layer.id:
                raise LayerRegistrationError(
                    f"Layer {layer.id}의 선행 레이어 {prerequisite}는 더 작은 ID여야 합니다",
                    details={"layer_id": layer.id, "prerequisite": prerequisite},
                )
            if prerequisite not in self._layers:
                raise LayerRegistrationError(
                    f"Layer {layer.id}의 선행 레이어 {prerequisite}가 등록되지 않았습니다",
                    details={"layer_id": layer.id, "prerequisite": prerequisite},
                )

        self._layers[layer.id] = layer
        if transform is not None:
            self._transforms[layer.id] = transform

        logger.debug(f"[Registry] 레이어 등록: {layer.id} ({layer.name})")
        return layer

    def bind(self, layer_id: int, transform: TransformFn) -> None:
        """등록된 레이어에 transform 함수를 연결합니다."""
        if layer_id not in self._layers:
            raise UnknownLayerError(layer_id)
        self._transforms[layer_id] = transform

    def get(self, layer_id: int) -> Layer:
        layer = self._layers.get(layer_id)
        if layer is None:
            raise UnknownLayerError(layer_id)
        return layer

    def get_transform(self, layer_id: int) -> Optional[TransformFn]:
        """연결된 transform 함수. 없으면 None."""
        return self._transforms.get(layer_id)

    def prerequisites(self, layer_id: int) -> frozenset[int]:
        return self.get(layer_id).prerequisites

    def ids(self) -> list[int]:
        return sorted(self._layers)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._layers

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers[layer_id] for layer_id in self.ids())
