"""
Random forest model for metaPredictor.

Wraps the scikit-learn random forest classifier and regressor behind the
common model interface. Feature weights are impurity-based importances.
"""

from typing import Any, Dict, Optional, Union

import numpy as np
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor

from .base_model import BaseModel
from ..data.label import CASE_CODE


class RandomForestModel(BaseModel):
    """Random forest classifier (binary) or regressor (continuous)."""

    name = "randomforest"

    def __init__(
        self,
        task: str = 'binary',
        n_estimators: int = 500,
        max_features: Union[str, int, float, None] = 'sqrt',
        max_depth: Optional[int] = None,
        min_samples_leaf: int = 1,
        random_state: Optional[int] = 42,
        n_jobs: int = 1
    ):
        self.task = task
        self.n_estimators = n_estimators
        self.max_features = max_features
        self.max_depth = max_depth
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state
        self.n_jobs = n_jobs

    def fit(self, X, y) -> 'RandomForestModel':
        X, y = self._prepare_fit(X, y)
        max_features = self.max_features
        if isinstance(max_features, (int, np.integer)):
            # an mtry larger than the feature count is capped
            max_features = int(min(max(max_features, 1), X.shape[1]))
        estimator = RandomForestClassifier if self.is_binary else RandomForestRegressor
        self.rf_ = estimator(
            n_estimators=int(self.n_estimators),
            max_features=max_features,
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )
        self.rf_.fit(X, y)
        return self

    def predict_scores(self, X) -> np.ndarray:
        X = self._prepare_predict(X)
        if self.is_binary:
            proba = self.rf_.predict_proba(X)
            return proba[:, list(self.rf_.classes_).index(CASE_CODE)]
        return self.rf_.predict(X)

    def _raw_weights(self) -> np.ndarray:
        return self.rf_.feature_importances_

    @classmethod
    def default_param_space(cls, n_samples: int, n_features: int) -> Dict[str, Any]:
        root = np.sqrt(n_features)
        mtry = sorted({max(1, int(round(root / 2))), max(1, int(round(root))), max(1, int(round(root * 2)))})
        return {
            'n_estimators': (100, 1000),
            'max_features': mtry,
        }
