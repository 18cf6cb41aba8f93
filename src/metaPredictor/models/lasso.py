"""
LASSO and ridge models for metaPredictor.

Both fit a full regularization path and pick one strength on the training
subset; see ``linear_path`` for the selection policy.
"""

from typing import Optional, Sequence, Union

from .linear_path import PathLinearModel


class LassoModel(PathLinearModel):
    """L1-penalized logistic (binary) or least-squares (continuous) model."""

    name = "lasso"

    def __init__(
        self,
        task: str = 'binary',
        n_lambda: int = 100,
        lambda_min_ratio: Optional[float] = None,
        min_nonzero_coeff: int = 5,
        measure: Union[str, Sequence[str], None] = None,
        standardize: bool = True,
        max_iter: int = 5000,
        tol: float = 1e-4,
        random_state: Optional[int] = 42
    ):
        super().__init__(
            task=task, l1_ratio=1.0, n_lambda=n_lambda, lambda_min_ratio=lambda_min_ratio,
            min_nonzero_coeff=min_nonzero_coeff, measure=measure, standardize=standardize,
            max_iter=max_iter, tol=tol, random_state=random_state
        )


class RidgeModel(PathLinearModel):
    """L2-penalized logistic (binary) or least-squares (continuous) model."""

    name = "ridge"

    def __init__(
        self,
        task: str = 'binary',
        n_lambda: int = 100,
        lambda_min_ratio: Optional[float] = None,
        min_nonzero_coeff: int = 5,
        measure: Union[str, Sequence[str], None] = None,
        standardize: bool = True,
        max_iter: int = 5000,
        tol: float = 1e-4,
        random_state: Optional[int] = 42
    ):
        super().__init__(
            task=task, l1_ratio=0.0, n_lambda=n_lambda, lambda_min_ratio=lambda_min_ratio,
            min_nonzero_coeff=min_nonzero_coeff, measure=measure, standardize=standardize,
            max_iter=max_iter, tol=tol, random_state=random_state
        )
