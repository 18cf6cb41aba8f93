"""
Base model implementation for metaPredictor.

This module contains the base model class that all model families inherit from.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator

from ..core.base import LabelType
from ..core.exceptions import ConfigurationError, DataError


class BaseModel(BaseEstimator, ABC):
    """
    Common capability interface of every model family.

    Subclasses declare their hyperparameters as explicit ``__init__`` arguments
    so that ``sklearn.base.clone`` and ``set_params`` work during the inner
    search. ``task`` is either ``"binary"`` or ``"continuous"``.
    """

    name = "base"
    supports_binary = True
    supports_continuous = True

    @abstractmethod
    def fit(self, X: Union[pd.DataFrame, np.ndarray], y: np.ndarray) -> 'BaseModel':
        """Fit the model on one training subset."""

    @abstractmethod
    def predict_scores(self, X: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
        """Case-class probability (binary) or fitted value (continuous)."""

    @abstractmethod
    def _raw_weights(self) -> np.ndarray:
        """Per-feature weights in training column order."""

    @classmethod
    def default_param_space(cls, n_samples: int, n_features: int) -> Dict[str, Any]:
        """Default hyperparameter candidates for this family."""
        return {}

    @property
    def is_binary(self) -> bool:
        return self.task == LabelType.BINARY.value

    @property
    def is_fitted(self) -> bool:
        return getattr(self, 'feature_names_', None) is not None

    def feature_weights(self) -> pd.Series:
        """Feature weights indexed by feature name."""
        self._check_fitted()
        return pd.Series(self._raw_weights(), index=self.feature_names_, dtype=float)

    def predict(self, X: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
        """Class codes (binary, threshold 0.5) or fitted values."""
        scores = self.predict_scores(X)
        if self.is_binary:
            return (scores >= 0.5).astype(int)
        return scores

    def _check_task(self) -> None:
        if self.task not in (LabelType.BINARY.value, LabelType.CONTINUOUS.value):
            raise ConfigurationError(f"Unknown task '{self.task}' for model '{self.name}'")
        if self.is_binary and not self.supports_binary:
            raise ConfigurationError(f"Model '{self.name}' does not support binary labels")
        if not self.is_binary and not self.supports_continuous:
            raise ConfigurationError(f"Model '{self.name}' does not support continuous labels")

    def _prepare_fit(self, X, y) -> Tuple[np.ndarray, np.ndarray]:
        """Record feature names and return plain arrays."""
        self._check_task()
        if hasattr(X, 'columns'):
            self.feature_names_ = list(X.columns)
        else:
            self.feature_names_ = [f"feature_{i}" for i in range(np.shape(X)[1])]
        X = np.asarray(X, dtype=float)
        y = np.asarray(y)
        if self.is_binary:
            y = y.astype(int)
            self.classes_ = np.unique(y)
            if len(self.classes_) != 2:
                raise DataError(
                    f"Training data for '{self.name}' contains a single class: {self.classes_.tolist()}"
                )
        else:
            y = y.astype(float)
        return X, y

    def _prepare_predict(self, X) -> np.ndarray:
        self._check_fitted()
        if hasattr(X, 'columns'):
            missing = [f for f in self.feature_names_ if f not in X.columns]
            if missing:
                raise DataError(f"Features missing for prediction: {missing[:10]}")
            X = X.loc[:, self.feature_names_]
        X = np.asarray(X, dtype=float)
        if X.shape[1] != len(self.feature_names_):
            raise DataError(
                f"Expected {len(self.feature_names_)} features for prediction, got {X.shape[1]}"
            )
        return X

    def _check_fitted(self) -> None:
        if not self.is_fitted:
            raise ValueError("Model must be fitted before making predictions")
