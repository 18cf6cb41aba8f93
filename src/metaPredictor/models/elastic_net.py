"""
Elastic net model for metaPredictor.

The mixing ratio ``l1_ratio`` (0 = ridge, 1 = lasso) is tuned in the inner
search; the regularization strength is picked along a short path.
"""

from typing import Any, Dict, Optional, Sequence, Union

from .linear_path import PathLinearModel


class ElasticNetModel(PathLinearModel):
    """Elastic net with a 10-point regularization path."""

    name = "enet"

    def __init__(
        self,
        task: str = 'binary',
        l1_ratio: float = 0.5,
        n_lambda: int = 10,
        lambda_min_ratio: Optional[float] = None,
        min_nonzero_coeff: int = 5,
        measure: Union[str, Sequence[str], None] = None,
        standardize: bool = True,
        max_iter: int = 5000,
        tol: float = 1e-4,
        random_state: Optional[int] = 42
    ):
        super().__init__(
            task=task, l1_ratio=l1_ratio, n_lambda=n_lambda, lambda_min_ratio=lambda_min_ratio,
            min_nonzero_coeff=min_nonzero_coeff, measure=measure, standardize=standardize,
            max_iter=max_iter, tol=tol, random_state=random_state
        )

    @classmethod
    def default_param_space(cls, n_samples: int, n_features: int) -> Dict[str, Any]:
        return {'l1_ratio': (0.0, 1.0)}
