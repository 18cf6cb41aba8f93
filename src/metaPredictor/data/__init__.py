"""
Data handling modules for metaPredictor.

This module contains the label and feature containers, validation and loading.
"""

from .label import Label, create_label, label_from_series
from .features import FeatureSet
from .validator import DataValidator
from .loader import DataLoader

__all__ = [
    "Label",
    "create_label",
    "label_from_series",
    "FeatureSet",
    "DataValidator",
    "DataLoader",
]
