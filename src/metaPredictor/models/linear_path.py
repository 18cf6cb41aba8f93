"""
Regularization-path linear models.

A path model fits a whole sequence of regularization strengths on the
training subset, ordered from the strongest to the weakest, and keeps the one
chosen by ``select_regularization_index``: candidates with fewer than
``min_nonzero_coeff`` non-zero coefficients are discarded and the in-sample
performance optimum of the rest wins.
"""

import warnings
from typing import Optional, Sequence, Tuple, Union

import numpy as np
from scipy.special import expit
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import LogisticRegression, Ridge, enet_path
from sklearn.svm import l1_min_c

from .base_model import BaseModel
from ..core.exceptions import ConfigurationError, DataError
from ..evaluation.measures import resolve_measures
from ..core.base import LabelType
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Smallest mixing ratio used to size the path; glmnet does the same for ridge.
MIN_PATH_L1_RATIO = 1e-3


def select_regularization_index(
    performance: np.ndarray,
    nonzero: Sequence[int],
    min_nonzero: int,
    minimize: Sequence[bool]
) -> int:
    """
    Pick one candidate along a regularization path.

    Args:
        performance: Array (n_measures x n_candidates) of in-sample performance,
            candidates ordered from strongest to weakest regularization
        nonzero: Number of non-zero coefficients per candidate
        min_nonzero: Minimum number of non-zero coefficients
        minimize: Per measure, whether lower values are better

    Returns:
        Index into the full candidate list

    Notes:
        With one measure the first optimum wins. With several measures each
        measure's first optimum is located among the eligible candidates and
        the floor of their mean position is used as a compromise.
    """
    performance = np.atleast_2d(np.asarray(performance, dtype=float))
    nonzero = np.asarray(nonzero)
    eligible = np.flatnonzero(nonzero >= min_nonzero)
    if eligible.size == 0:
        raise ConfigurationError(
            f"No regularization strength yields at least {min_nonzero} non-zero "
            f"coefficients (maximum reached: {int(nonzero.max()) if nonzero.size else 0})"
        )

    positions = []
    for row, lower_is_better in zip(performance, minimize):
        values = row[eligible]
        if np.all(np.isnan(values)):
            positions.append(0)
            continue
        best = np.nanmin(values) if lower_is_better else np.nanmax(values)
        positions.append(int(np.flatnonzero(values == best)[0]))
    return int(eligible[int(np.floor(np.mean(positions)))])


class PathLinearModel(BaseModel):
    """
    Penalized linear model with in-sample selection along the path.

    Binary labels use penalized logistic regression, continuous labels
    penalized least squares. ``l1_ratio`` mixes the penalties (1 = lasso,
    0 = ridge). Features are standardized on the training subset; the
    reported coefficients are on the original feature scale.
    """

    name = "path"

    def __init__(
        self,
        task: str = 'binary',
        l1_ratio: float = 1.0,
        n_lambda: int = 100,
        lambda_min_ratio: Optional[float] = None,
        min_nonzero_coeff: int = 5,
        measure: Union[str, Sequence[str], None] = None,
        standardize: bool = True,
        max_iter: int = 5000,
        tol: float = 1e-4,
        random_state: Optional[int] = 42
    ):
        self.task = task
        self.l1_ratio = l1_ratio
        self.n_lambda = n_lambda
        self.lambda_min_ratio = lambda_min_ratio
        self.min_nonzero_coeff = min_nonzero_coeff
        self.measure = measure
        self.standardize = standardize
        self.max_iter = max_iter
        self.tol = tol
        self.random_state = random_state

    def fit(self, X, y) -> 'PathLinearModel':
        X, y = self._prepare_fit(X, y)
        if not 0.0 <= float(self.l1_ratio) <= 1.0:
            raise ConfigurationError(f"l1_ratio must be within [0, 1], got {self.l1_ratio}")
        label_type = LabelType.BINARY if self.is_binary else LabelType.CONTINUOUS
        measures = resolve_measures(self.measure, label_type)

        n, p = X.shape
        if self.standardize:
            self.center_ = X.mean(axis=0)
            scale = X.std(axis=0)
            scale[scale == 0] = 1.0
            self.scale_ = scale
        else:
            self.center_ = np.zeros(p)
            self.scale_ = np.ones(p)
        Xs = (X - self.center_) / self.scale_

        with warnings.catch_warnings():
            warnings.simplefilter('ignore', ConvergenceWarning)
            if self.is_binary:
                path, coefs, intercepts = self._classification_path(Xs, y)
            else:
                path, coefs, intercepts = self._regression_path(Xs, y)

        linear = Xs @ coefs.T + intercepts
        scores = expit(linear) if self.is_binary else linear
        performance = np.array([
            [m(y, scores[:, j]) for j in range(len(path))] for m in measures
        ])
        nonzero = (coefs != 0).sum(axis=1)

        idx = select_regularization_index(
            performance, nonzero, self.min_nonzero_coeff, [m.minimize for m in measures]
        )
        self.regularization_path_ = path
        self.nonzero_path_ = nonzero
        self.performance_path_ = performance
        self.selected_index_ = idx
        self.selected_lambda_ = float(path[idx])

        self.coef_ = coefs[idx] / self.scale_
        self.intercept_ = float(intercepts[idx] - self.center_ @ self.coef_)
        logger.debug(
            f"{self.name}: picked candidate {idx + 1}/{len(path)} "
            f"with {int(nonzero[idx])} non-zero coefficients"
        )
        return self

    def _path_ratio(self, n: int, p: int) -> float:
        if self.lambda_min_ratio is not None:
            return float(self.lambda_min_ratio)
        return 1e-4 if n > p else 1e-2

    def _classification_path(self, Xs: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Logistic regression fits for increasing inverse regularization C."""
        n, p = Xs.shape
        l1_ratio = float(self.l1_ratio)
        c_min = l1_min_c(Xs, y, loss='log') * max(l1_ratio, MIN_PATH_L1_RATIO)
        Cs = c_min * np.logspace(0, -np.log10(self._path_ratio(n, p)), int(self.n_lambda))

        # l1_ratio alone sets the penalty (1 = L1, 0 = L2, mixed = elastic net)
        if l1_ratio >= 1.0:
            kwargs = {'solver': 'liblinear'}
        elif l1_ratio <= 0.0:
            kwargs = {'solver': 'lbfgs', 'warm_start': True}
        else:
            kwargs = {'solver': 'saga', 'warm_start': True}
        clf = LogisticRegression(
            l1_ratio=l1_ratio, max_iter=self.max_iter, tol=self.tol,
            random_state=self.random_state, **kwargs
        )

        coefs = np.zeros((len(Cs), p))
        intercepts = np.zeros(len(Cs))
        for j, C in enumerate(Cs):
            clf.set_params(C=C)
            clf.fit(Xs, y)
            coefs[j] = clf.coef_.ravel()
            intercepts[j] = clf.intercept_[0]
        return Cs, coefs, intercepts

    def _regression_path(self, Xs: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Least squares fits for decreasing penalty alpha (glmnet scaling)."""
        n, p = Xs.shape
        l1_ratio = float(self.l1_ratio)
        x_mean = Xs.mean(axis=0)
        y_mean = y.mean()
        Xc = Xs - x_mean
        yc = y - y_mean

        alpha_max = np.max(np.abs(Xc.T @ yc)) / (n * max(l1_ratio, MIN_PATH_L1_RATIO))
        if alpha_max <= 0:
            raise DataError("Continuous label is constant or unrelated to every feature in the training data")
        alphas = alpha_max * np.logspace(0, np.log10(self._path_ratio(n, p)), int(self.n_lambda))

        if l1_ratio > 0:
            _, path_coefs, _ = enet_path(
                np.asfortranarray(Xc), yc, l1_ratio=l1_ratio, alphas=alphas,
                max_iter=self.max_iter, tol=self.tol
            )
            coefs = path_coefs.T
        else:
            coefs = np.array([
                Ridge(alpha=a * n, fit_intercept=False).fit(Xc, yc).coef_ for a in alphas
            ])
        intercepts = y_mean - coefs @ x_mean
        return alphas, coefs, intercepts

    def predict_scores(self, X) -> np.ndarray:
        X = self._prepare_predict(X)
        linear = X @ self.coef_ + self.intercept_
        return expit(linear) if self.is_binary else linear

    def _raw_weights(self) -> np.ndarray:
        return self.coef_
