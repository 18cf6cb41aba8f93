"""
Preprocessing modules for metaPredictor.

This module contains unsupervised feature filtering and normalization.
"""

from .feature_filter import AdaptiveVarianceFilter, FILTER_METHODS, filter_features
from .normalizer import NORM_METHODS, NormParams, apply_normalization, normalize_features

__all__ = [
    "AdaptiveVarianceFilter",
    "FILTER_METHODS",
    "filter_features",
    "NORM_METHODS",
    "NormParams",
    "apply_normalization",
    "normalize_features",
]
