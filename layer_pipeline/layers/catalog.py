"""기본 레이어 카탈로그.

6개 변환 레이어의 메타데이터(이름, 설명, 선행 레이어, 건너뛰기 트리거)만 정의합니다.
각 레이어의 실제 변환 로직은 외부 구현이며 LayerRegistry.bind()로 연결합니다.

의존 관계:
┌──────────────────────────────────────────────┐
│ Layer │ 이름                   │ 선행 레이어  │
├──────────────────────────────────────────────┤
│ 1     │ Configuration          │ -            │
│ 2     │ Entity/Pattern Cleanup │ 1            │
│ 3     │ Component Enhancement  │ 1, 2         │
│ 4     │ Hydration Protection   │ 1, 2, 3      │
│ 5     │ Framework Directives   │ 1, 2         │
│ 6     │ Testing & Boundaries   │ 1, 2, 3, 4, 5│
└──────────────────────────────────────────────┘
"""

from typing import Dict, Optional

from layer_pipeline.models import Layer, TransformFn
from .registry import LayerRegistry


DEFAULT_LAYERS: list[Layer] = [
    Layer(
        id=1,
        name="Configuration Validation",
        description="Modernizes compiler targets, framework config flags and package settings.",
        prerequisites=frozenset(),
        structural=False,
        trigger_patterns=(
            r'"target"\s*:\s*"es5"',
            r"reactStrictMode\s*:\s*false",
            r'"skipLibCheck"\s*:\s*false',
            r"trailingSlash",
        ),
    ),
    Layer(
        id=2,
        name="HTML Entity & Pattern Cleanup",
        description="Fixes HTML entity corruption, cleans imports and standardizes patterns.",
        prerequisites=frozenset({1}),
        structural=False,
        trigger_patterns=(
            r"&quot;|&amp;|&lt;|&gt;|&#x27;",
            r"console\.log\(",
            r"\bvar\s+\w+",
        ),
    ),
    Layer(
        id=3,
        name="Component Enhancement",
        description="Adds missing keys, imports, accessibility attributes and prop interfaces.",
        prerequisites=frozenset({1, 2}),
        structural=True,
        trigger_patterns=(
            r"\.map\s*\(",
            r"<img\b",
            r"<button\b",
            r"\buse[A-Z]\w*\(",
        ),
        relevant_features=frozenset({"list-rendering", "event-handling", "state-management"}),
    ),
    Layer(
        id=4,
        name="Hydration & SSR Protection",
        description="Guards browser-only APIs and fixes hydration mismatches.",
        prerequisites=frozenset({1, 2, 3}),
        structural=True,
        trigger_patterns=(
            r"\blocalStorage\b|\bsessionStorage\b",
            r"\bwindow\.",
            r"\bdocument\.",
        ),
        relevant_features=frozenset({"browser-storage"}),
    ),
    Layer(
        id=5,
        name="Framework Directive & Import Repair",
        description="Fixes client directive placement, import corruption and router patterns.",
        prerequisites=frozenset({1, 2}),
        structural=False,
        trigger_patterns=(
            r"use client",
            r"\buse(?:State|Effect|Router)\b",
            r"(?m)import\s*\{\s*$",
        ),
        relevant_features=frozenset({"state-management", "side-effects", "routing"}),
    ),
    Layer(
        id=6,
        name="Testing & Error Boundary Enhancement",
        description="Adds error boundaries, prop validation and loading states.",
        prerequisites=frozenset({1, 2, 3, 4, 5}),
        structural=False,
        trigger_patterns=(
            r"export\s+default\s+function",
            r"\basync\b",
            r"\bfetch\(",
        ),
        relevant_features=frozenset({"api-calls", "async-operations"}),
    ),
]


def create_default_registry(
    transforms: Optional[Dict[int, TransformFn]] = None,
) -> LayerRegistry:
    """
    기본 카탈로그로 레지스트리를 생성합니다.

    Args:
        transforms: {레이어 ID: transform 함수}. 없는 레이어는 나중에 bind() 가능.
    """
    registry = LayerRegistry(DEFAULT_LAYERS)
    for layer_id, transform in (transforms or {}).items():
        registry.bind(layer_id, transform)
    return registry
