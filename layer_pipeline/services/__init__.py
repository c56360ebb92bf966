"""Services for the layer pipeline."""

from .cache import CacheEntry, CacheStats, ContentCache
from .context_analyzer import ContextAnalyzer
from .dependency_resolver import DependencyResolver
from .validator import TransformationValidator
from .rollback_manager import RollbackManager
from .optimizer import LayerProfile, OptimizerStats, PerformanceOptimizer
from .orchestrator import PipelineExecutor

__all__ = [
    "CacheEntry",
    "CacheStats",
    "ContentCache",
    "ContextAnalyzer",
    "DependencyResolver",
    "TransformationValidator",
    "RollbackManager",
    "LayerProfile",
    "OptimizerStats",
    "PerformanceOptimizer",
    "PipelineExecutor",
]
