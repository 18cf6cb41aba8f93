"""
Liblinear logistic regression (sklearn wrapper).

Used by the ``lasso_ll`` and ``ridge_ll`` families: a single fit at a fixed
cost ``C``, tuned by the inner search, with the control class up-weighted.
"""

import warnings
from typing import Any, Dict, Optional, Tuple

import numpy as np
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression

from .base_model import BaseModel
from ..core.exceptions import ConfigurationError
from ..data.label import CASE_CODE, CONTROL_CODE

COST_GRID = [float(c) for c in 10 ** np.linspace(-2, 3, 21)]

# liblinear penalty as the l1_ratio of LogisticRegression
PENALTY_L1_RATIO = {'l1': 1.0, 'l2': 0.0}


class LiblinearLogisticModel(BaseModel):
    """
    Thin wrapper around ``LogisticRegression(solver='liblinear')``.

    ``class_weights`` gives the (control, case) sample weights.
    """

    name = "liblinear"
    supports_continuous = False

    def __init__(
        self,
        task: str = 'binary',
        penalty: str = 'l1',
        C: float = 1.0,
        class_weights: Tuple[float, float] = (5.0, 1.0),
        tol: float = 1e-8,
        max_iter: int = 1000,
        random_state: Optional[int] = 42
    ):
        self.task = task
        self.penalty = penalty
        self.C = C
        self.class_weights = class_weights
        self.tol = tol
        self.max_iter = max_iter
        self.random_state = random_state

    def fit(self, X, y) -> 'LiblinearLogisticModel':
        X, y = self._prepare_fit(X, y)
        if self.penalty not in PENALTY_L1_RATIO:
            raise ConfigurationError(
                f"Unknown penalty '{self.penalty}', expected one of: {', '.join(PENALTY_L1_RATIO)}"
            )
        control_weight, case_weight = self.class_weights
        self.model_ = LogisticRegression(
            l1_ratio=PENALTY_L1_RATIO[self.penalty],
            C=float(self.C),
            solver='liblinear',
            tol=self.tol,
            max_iter=self.max_iter,
            class_weight={CONTROL_CODE: float(control_weight), CASE_CODE: float(case_weight)},
            random_state=self.random_state,
        )
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', ConvergenceWarning)
            self.model_.fit(X, y)
        return self

    def predict_scores(self, X) -> np.ndarray:
        X = self._prepare_predict(X)
        proba = self.model_.predict_proba(X)
        return proba[:, list(self.model_.classes_).index(CASE_CODE)]

    def _raw_weights(self) -> np.ndarray:
        return self.model_.coef_.ravel()

    @classmethod
    def default_param_space(cls, n_samples: int, n_features: int) -> Dict[str, Any]:
        return {'C': list(COST_GRID)}


class LassoLLModel(LiblinearLogisticModel):
    """L1-penalized liblinear logistic regression."""

    name = "lasso_ll"

    def __init__(
        self,
        task: str = 'binary',
        C: float = 1.0,
        class_weights: Tuple[float, float] = (5.0, 1.0),
        tol: float = 1e-8,
        max_iter: int = 1000,
        random_state: Optional[int] = 42
    ):
        super().__init__(task=task, penalty='l1', C=C, class_weights=class_weights,
                         tol=tol, max_iter=max_iter, random_state=random_state)


class RidgeLLModel(LiblinearLogisticModel):
    """L2-penalized liblinear logistic regression."""

    name = "ridge_ll"

    def __init__(
        self,
        task: str = 'binary',
        C: float = 1.0,
        class_weights: Tuple[float, float] = (5.0, 1.0),
        tol: float = 1e-8,
        max_iter: int = 1000,
        random_state: Optional[int] = 42
    ):
        super().__init__(task=task, penalty='l2', C=C, class_weights=class_weights,
                         tol=tol, max_iter=max_iter, random_state=random_state)
