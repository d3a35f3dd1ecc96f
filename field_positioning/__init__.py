"""
Field Positioning Engine - places fillable fields beside their printed labels on
Hebrew (RTL) PDF forms, resolves conflicts and computes tab order.
Deterministic, offline, explainable.
"""

__version__ = "1.0.0"

from .pipeline import DocumentResult, FieldPositioningPipeline, run_pipeline
from .config import PipelineConfig

__all__ = [
    "FieldPositioningPipeline",
    "DocumentResult",
    "PipelineConfig",
    "run_pipeline",
    "__version__",
]
