"""Data models for the layer pipeline."""

from .layer import Layer, LayerTransformResult, TransformFn, TransformOutput
from .context import DocumentRole, Environment, ExecutionContext
from .rollback import (
    ValidationOutcome,
    RollbackAction,
    RollbackMode,
    TransformationSnapshot,
    RollbackDecision,
    RollbackOutcome,
)
from .execution import (
    LayerStatus,
    LayerExecutionRecord,
    PipelineOptions,
    DependencyResolution,
    PipelineResult,
)

__all__ = [
    # Layer models
    "Layer",
    "LayerTransformResult",
    "TransformFn",
    "TransformOutput",
    # Context models
    "DocumentRole",
    "Environment",
    "ExecutionContext",
    # Rollback models
    "ValidationOutcome",
    "RollbackAction",
    "RollbackMode",
    "TransformationSnapshot",
    "RollbackDecision",
    "RollbackOutcome",
    # Execution models
    "LayerStatus",
    "LayerExecutionRecord",
    "PipelineOptions",
    "DependencyResolution",
    "PipelineResult",
]
