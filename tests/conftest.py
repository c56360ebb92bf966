"""공유 pytest fixture 모음."""

import pytest

from layer_pipeline.config import Settings
from layer_pipeline.layers import LayerRegistry, create_default_registry
from layer_pipeline.models import Layer, ValidationOutcome
from layer_pipeline.services import PipelineExecutor


SAMPLE_COMPONENT = """'use client';
import { useState } from 'react';

export default function TodoList({ items }) {
  const [filter, setFilter] = useState('all');

  return (
    <ul>
      {items.map((item) => (
        <li onClick={() => setFilter(item.id)}>{item.label}</li>
      ))}
    </ul>
  );
}
"""


@pytest.fixture
def settings():
    """테스트용 Settings (재시도 대기 없음, 짧은 시간 제한)."""
    return Settings(retry_delay_seconds=0.0, layer_timeout_ms=2000)


@pytest.fixture
def registry():
    """기본 6개 레이어 카탈로그 (transform 미연결)."""
    return create_default_registry()


@pytest.fixture
def plain_registry():
    """트리거 패턴이 없는 3개 레이어 (최적화로 건너뛰지 않음)."""
    return LayerRegistry([
        Layer(id=1, name="First"),
        Layer(id=2, name="Second", prerequisites=frozenset({1})),
        Layer(id=3, name="Third", prerequisites=frozenset({1, 2})),
    ])


@pytest.fixture
def sample_component():
    return SAMPLE_COMPONENT


@pytest.fixture
def clean_validation():
    return ValidationOutcome(should_revert=False, confidence=1.0)


@pytest.fixture
def executor_factory(settings):
    """PipelineExecutor 생성 함수. 테스트 종료 시 스레드 풀을 정리합니다."""
    created = []

    def _factory(transforms=None, registry=None, **kwargs):
        registry = registry if registry is not None else create_default_registry()
        for layer_id, transform in (transforms or {}).items():
            registry.bind(layer_id, transform)
        kwargs.setdefault("settings", settings)
        executor = PipelineExecutor(registry=registry, **kwargs)
        created.append(executor)
        return executor

    yield _factory

    for executor in created:
        executor.shutdown()
