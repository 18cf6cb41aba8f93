"""
Configuration modules for metaPredictor.

This module contains default configurations and model-specific configurations.
"""

from .default_config import DEFAULT_CONFIG
from .model_configs import MODEL_CONFIGS, get_model_config, models_for_label_type
from .feature_selection import FeatureSelectionConfig

__all__ = [
    "DEFAULT_CONFIG",
    "MODEL_CONFIGS",
    "get_model_config",
    "models_for_label_type",
    "FeatureSelectionConfig",
]
