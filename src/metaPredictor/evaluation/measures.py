"""
Performance measures used for model selection.

Every measure takes the true values and the scores of one model (case-class
probabilities or fitted values) and returns a float.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np
from sklearn.metrics import (
    accuracy_score, average_precision_score, balanced_accuracy_score,
    f1_score, log_loss, mean_absolute_error, mean_squared_error,
    r2_score, roc_auc_score
)

from ..core.base import LabelType
from ..core.exceptions import ConfigurationError

THRESHOLD = 0.5


@dataclass(frozen=True)
class Measure:
    """A named performance measure."""
    name: str
    func: Callable[[np.ndarray, np.ndarray], float]
    minimize: bool
    label_type: LabelType

    def __call__(self, y_true: np.ndarray, scores: np.ndarray) -> float:
        return float(self.func(np.asarray(y_true), np.asarray(scores, dtype=float)))

    def better(self, a: float, b: float) -> bool:
        """True if ``a`` is strictly better than ``b``."""
        if np.isnan(b):
            return not np.isnan(a)
        return a < b if self.minimize else a > b


def _classes(scores: np.ndarray) -> np.ndarray:
    return (scores >= THRESHOLD).astype(int)


def _logloss(y_true, scores):
    return log_loss(y_true, np.clip(scores, 1e-15, 1 - 1e-15), labels=[0, 1])


MEASURES: Dict[str, Measure] = {
    m.name: m for m in [
        Measure('acc', lambda y, s: accuracy_score(y, _classes(s)), False, LabelType.BINARY),
        Measure('auc', roc_auc_score, False, LabelType.BINARY),
        Measure('auprc', average_precision_score, False, LabelType.BINARY),
        Measure('bac', lambda y, s: balanced_accuracy_score(y, _classes(s)), False, LabelType.BINARY),
        Measure('f1', lambda y, s: f1_score(y, _classes(s), zero_division=0), False, LabelType.BINARY),
        Measure('logloss', _logloss, True, LabelType.BINARY),
        Measure('mse', mean_squared_error, True, LabelType.CONTINUOUS),
        Measure('mae', mean_absolute_error, True, LabelType.CONTINUOUS),
        Measure('rsq', r2_score, False, LabelType.CONTINUOUS),
    ]
}

DEFAULT_MEASURES = {
    LabelType.BINARY: 'acc',
    LabelType.CONTINUOUS: 'mse',
}


def get_measure(name: str, label_type: LabelType) -> Measure:
    """Look up a measure and check it matches the label type."""
    key = str(name).lower()
    if key not in MEASURES:
        raise ConfigurationError(
            f"Unknown measure '{name}', expected one of: {', '.join(MEASURES)}"
        )
    measure = MEASURES[key]
    if measure.label_type != label_type:
        raise ConfigurationError(
            f"Measure '{name}' is not defined for {label_type.value} labels"
        )
    return measure


def resolve_measures(
    measure: Optional[Union[str, Sequence[str]]],
    label_type: LabelType
) -> List[Measure]:
    """Turn a measure name, a list of names or None into Measure objects."""
    if measure is None:
        names = [DEFAULT_MEASURES[label_type]]
    elif isinstance(measure, str):
        names = [measure]
    else:
        names = list(measure)
    if not names:
        raise ConfigurationError("At least one measure is required")
    return [get_measure(n, label_type) for n in names]
