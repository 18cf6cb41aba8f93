"""
Pipelines for metaPredictor.
"""

from .build import PipelineResult, prepare_features, run_pipeline, save_results
from .predict import HoldoutResult, load_bundle, predict_holdout

__all__ = [
    "PipelineResult",
    "prepare_features",
    "run_pipeline",
    "save_results",
    "HoldoutResult",
    "load_bundle",
    "predict_holdout",
]
