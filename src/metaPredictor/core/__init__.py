"""
Core functionality for metaPredictor.

The stage modules (data_split, model_trainer, predictor, ...) are imported
from their own modules; this package exposes only the shared types.
"""

from .base import AdaptiveFilterConfig, FeatureType, LabelType, ModelConfig, SearchMethod, SplitConfig
from .exceptions import (
    ConfigurationError,
    DataError,
    InternalConsistencyError,
    PipelineError,
    TrainingError,
)

__all__ = [
    "AdaptiveFilterConfig",
    "FeatureType",
    "LabelType",
    "ModelConfig",
    "SearchMethod",
    "SplitConfig",
    "ConfigurationError",
    "DataError",
    "InternalConsistencyError",
    "PipelineError",
    "TrainingError",
]
