"""Layer pipeline: dependency-aware, validated and rollback-safe code transformation."""

from layer_pipeline.models import (
    Layer,
    LayerExecutionRecord,
    LayerStatus,
    PipelineOptions,
    PipelineResult,
)
from layer_pipeline.layers import LayerRegistry, create_default_registry
from layer_pipeline.services import PipelineExecutor

__version__ = "1.0.0"

__all__ = [
    "Layer",
    "LayerExecutionRecord",
    "LayerStatus",
    "PipelineOptions",
    "PipelineResult",
    "LayerRegistry",
    "create_default_registry",
    "PipelineExecutor",
]
