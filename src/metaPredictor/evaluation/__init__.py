"""
Evaluation modules for metaPredictor.

This module contains selection measures and prediction evaluation.
"""

from .measures import DEFAULT_MEASURES, MEASURES, Measure, get_measure, resolve_measures
from .metrics import BinaryEvaluation, Curve, RegressionEvaluation, evaluate_predictions

__all__ = [
    "DEFAULT_MEASURES",
    "MEASURES",
    "Measure",
    "get_measure",
    "resolve_measures",
    "BinaryEvaluation",
    "Curve",
    "RegressionEvaluation",
    "evaluate_predictions",
]
