"""Transformation layer catalog and registry."""

from .registry import LayerRegistry
from .catalog import DEFAULT_LAYERS, create_default_registry

__all__ = [
    "LayerRegistry",
    "DEFAULT_LAYERS",
    "create_default_registry",
]
