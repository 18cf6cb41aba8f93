"""
Feature normalization with frozen parameters.

``normalize_features`` computes the per-feature statistics of a method on the
training data and records them in ``NormParams``. Passing those parameters
back in applies the identical transform to new data (e.g. a holdout set)
without recomputing any statistic from it.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..core.base import FeatureType
from ..core.exceptions import ConfigurationError, DataError
from ..data.features import FeatureSet
from ..utils.logger import get_logger

logger = get_logger(__name__)

NORM_METHODS = ('rank.unit', 'rank.std', 'log.std', 'log.unit', 'log.clr', 'std', 'pass')


@dataclass(frozen=True)
class NormParams:
    """
    Everything needed to re-apply a normalization.

    Attributes:
        method: Normalization method
        retained_features: Features kept (in order)
        log_n0: Pseudocount added before taking logs
        sd_min_q: Quantile of the feature sds added to every sd
        n_p: Exponent of the vector norm (1 or 2)
        norm_margin: 1 = per feature, 2 = per sample, 3 = global maximum
        feature_mean: Per-feature means (standardizing methods)
        feature_adj_sd: Per-feature sd plus the ``sd_min_q`` quantile
        feature_norm: Per-feature norms (``log.unit`` with margin 1)
        global_max: Global maximum (``log.unit`` with margin 3)
    """
    method: str
    retained_features: Tuple[Any, ...]
    log_n0: float = 1e-6
    sd_min_q: float = 0.1
    n_p: int = 2
    norm_margin: int = 1
    feature_mean: Optional[Dict[Any, float]] = None
    feature_adj_sd: Optional[Dict[Any, float]] = None
    feature_norm: Optional[Dict[Any, float]] = None
    global_max: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['retained_features'] = list(self.retained_features)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'NormParams':
        data = dict(data)
        data['retained_features'] = tuple(data['retained_features'])
        return cls(**data)


def _check_options(method: str, log_n0: float, sd_min_q: float, n_p: int, norm_margin: int) -> None:
    if method not in NORM_METHODS:
        raise ConfigurationError(
            f"Unknown normalization method '{method}', expected one of: {', '.join(NORM_METHODS)}"
        )
    if method.startswith('log') and not log_n0 > 0:
        raise ConfigurationError(f"log_n0 must be positive, got {log_n0}")
    if not 0 <= sd_min_q <= 1:
        raise ConfigurationError(f"sd_min_q must be within [0, 1], got {sd_min_q}")
    if n_p not in (1, 2):
        raise ConfigurationError(f"n_p must be 1 or 2, got {n_p}")
    if norm_margin not in (1, 2, 3):
        raise ConfigurationError(f"norm_margin must be 1, 2 or 3, got {norm_margin}")


def _log10(matrix: pd.DataFrame, log_n0: float) -> pd.DataFrame:
    if (matrix + log_n0 <= 0).to_numpy().any():
        raise DataError("Log normalization requires non-negative feature values")
    return np.log10(matrix + log_n0)


def _vector_norm(matrix: pd.DataFrame, n_p: int, axis: int) -> pd.Series:
    return (matrix.abs() ** n_p).sum(axis=axis) ** (1.0 / n_p)


def _sample_ranks(matrix: pd.DataFrame) -> pd.DataFrame:
    # rank features within every sample
    return matrix.rank(axis=0, method='average')


def _pre_transform(matrix: pd.DataFrame, method: str, log_n0: float) -> pd.DataFrame:
    """Per-sample part of a method; needs no statistics."""
    if method in ('rank.unit', 'rank.std'):
        return _sample_ranks(matrix)
    if method == 'log.std':
        return _log10(matrix, log_n0)
    if method == 'log.unit':
        return _log10(matrix, log_n0) - np.log10(log_n0)
    return matrix


def _fit_params(
    matrix: pd.DataFrame,
    method: str,
    log_n0: float,
    sd_min_q: float,
    n_p: int,
    norm_margin: int
) -> NormParams:
    retained = matrix.index
    mean = adj_sd = norm = None
    global_max = None

    if method in ('rank.std', 'log.std', 'std'):
        retained = matrix.index[matrix.std(axis=1, ddof=1) > 0]
        if len(retained) == 0:
            raise DataError(f"Every feature is constant; '{method}' normalization impossible")
        values = _pre_transform(matrix.loc[retained], method, log_n0)
        sd = values.std(axis=1, ddof=1)
        quantile = float(np.quantile(sd.to_numpy(), sd_min_q))
        mean = values.mean(axis=1).to_dict()
        adj_sd = (sd + quantile).to_dict()
    elif method == 'log.unit':
        values = _pre_transform(matrix, method, log_n0)
        if norm_margin == 1:
            feature_norm = _vector_norm(values, n_p, axis=1)
            retained = feature_norm.index[feature_norm > 0]
            norm = feature_norm.loc[retained].to_dict()
        elif norm_margin == 3:
            global_max = float(values.to_numpy().max())
            if global_max <= 0:
                raise DataError("Global maximum is zero; 'log.unit' normalization impossible")

    return NormParams(
        method=method,
        retained_features=tuple(retained),
        log_n0=log_n0,
        sd_min_q=sd_min_q,
        n_p=n_p,
        norm_margin=norm_margin,
        feature_mean=mean,
        feature_adj_sd=adj_sd,
        feature_norm=norm,
        global_max=global_max,
    )


def apply_normalization(matrix: pd.DataFrame, params: NormParams) -> pd.DataFrame:
    """
    Apply frozen normalization parameters to a features x samples table.

    Raises:
        DataError: If retained features are missing from ``matrix``
    """
    retained = list(params.retained_features)
    missing = [f for f in retained if f not in matrix.index]
    if missing:
        raise DataError(
            f"{len(missing)} features needed by the frozen normalization are missing: {missing[:10]}"
        )
    values = _pre_transform(matrix.loc[retained], params.method, params.log_n0)
    method = params.method

    if method in ('rank.std', 'log.std', 'std'):
        mean = pd.Series(params.feature_mean).loc[retained]
        adj_sd = pd.Series(params.feature_adj_sd).loc[retained]
        out = values.sub(mean, axis=0).div(adj_sd, axis=0)
    elif method == 'rank.unit':
        out = values.div(_vector_norm(values, params.n_p, axis=0), axis=1)
    elif method == 'log.unit':
        if params.norm_margin == 1:
            out = values.div(pd.Series(params.feature_norm).loc[retained], axis=0)
        elif params.norm_margin == 2:
            sample_norm = _vector_norm(values, params.n_p, axis=0).replace(0, 1.0)
            out = values.div(sample_norm, axis=1)
        else:
            out = values / params.global_max
    elif method == 'log.clr':
        logged = np.log(values + params.log_n0)
        out = logged - logged.mean(axis=0)
    else:
        out = values.copy()

    if not np.isfinite(out.to_numpy(dtype=float)).all():
        raise DataError(f"Normalization '{method}' produced non-finite values")
    return out


def normalize_features(
    features: FeatureSet,
    method: str = 'log.std',
    log_n0: float = 1e-6,
    sd_min_q: float = 0.1,
    n_p: int = 2,
    norm_margin: int = 1,
    feature_type: Union[str, FeatureType] = FeatureType.FILTERED,
    norm_params: Optional[NormParams] = None
) -> FeatureSet:
    """
    Normalize one feature variant into the ``normalized`` variant.

    Args:
        features: FeatureSet to normalize
        method: One of NORM_METHODS
        log_n0: Pseudocount for log methods
        sd_min_q: Quantile of feature sds added to every sd
        n_p: Vector norm exponent (1 or 2)
        norm_margin: 1 = features, 2 = samples, 3 = global maximum
        feature_type: Variant to normalize
        norm_params: Frozen parameters; when given, every other option is
            taken from them and nothing is recomputed

    Returns:
        New FeatureSet with the normalized variant and its NormParams
    """
    matrix = features.get(feature_type)
    if norm_params is None:
        _check_options(method, log_n0, sd_min_q, n_p, norm_margin)
        if method == 'log.clr' and (matrix < 0).to_numpy().any():
            raise DataError("Log normalization requires non-negative feature values")
        norm_params = _fit_params(matrix, method, log_n0, sd_min_q, n_p, norm_margin)
        logger.info(
            f"Normalized features with '{method}': kept {len(norm_params.retained_features)}/{matrix.shape[0]} features"
        )
    else:
        logger.info(f"Applying frozen '{norm_params.method}' normalization")

    normalized = apply_normalization(matrix, norm_params)
    return features.with_variant(FeatureType.NORMALIZED, normalized, norm_params=norm_params)
