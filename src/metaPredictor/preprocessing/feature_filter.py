"""
Unsupervised feature filtering for metaPredictor.

Filters look at the feature values only, never at the label, and produce
the ``filtered`` variant of a FeatureSet.
"""

from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from ..core.base import AdaptiveFilterConfig, FeatureType
from ..core.exceptions import ConfigurationError, DataError
from ..data.features import FeatureSet
from ..utils.logger import get_logger

logger = get_logger(__name__)

FILTER_METHODS = ('abundance', 'cum.abundance', 'prevalence', 'variance', 'pass')


class AdaptiveVarianceFilter:
    """
    Variance filter whose strength follows the feature/sample ratio.

    The share of lowest-variance features removed grows along a sigmoid of
    p/n from ``min_q`` to ``max_q``.
    """

    def __init__(self, config: Optional[AdaptiveFilterConfig] = None):
        self.config = config or AdaptiveFilterConfig()
        self.logger = get_logger("AdaptiveVarianceFilter")
        self.removed_features_: Optional[List[str]] = None
        self.filter_info_: Dict[str, Any] = {}

    def fit(self, matrix: pd.DataFrame) -> 'AdaptiveVarianceFilter':
        """Fit on a features x samples table."""
        n_features, n_samples = matrix.shape
        quantile = self._calculate_adaptive_quantile(n_features, n_samples)
        variances = matrix.var(axis=1)
        threshold = np.percentile(variances, quantile * 100)
        self.removed_features_ = variances.index[variances < threshold].tolist()
        self.filter_info_ = {
            'p_n_ratio': n_features / n_samples,
            'adaptive_quantile': float(quantile),
            'threshold': float(threshold),
            'removed_features': len(self.removed_features_),
        }
        self.logger.debug(f"Adaptive variance filter fitted: {self.filter_info_}")
        return self

    def transform(self, matrix: pd.DataFrame) -> pd.DataFrame:
        if self.removed_features_ is None:
            raise ValueError("Filter must be fitted before transforming")
        return matrix.drop(index=self.removed_features_)

    def _calculate_adaptive_quantile(self, n_features: int, n_samples: int) -> float:
        r = n_features / n_samples
        cfg = self.config
        logistic_part = 1 / (1 + np.exp(-cfg.steepness * (r - cfg.r_mid)))
        return cfg.min_q + (cfg.max_q - cfg.min_q) * logistic_part


def _cum_abundance_keep(matrix: pd.DataFrame, cutoff: float) -> pd.Index:
    """Per sample, the most abundant features covering 1 - cutoff of its total; union over samples."""
    values = matrix.to_numpy(dtype=float)
    keep = np.zeros(values.shape[0], dtype=bool)
    for j in range(values.shape[1]):
        column = values[:, j]
        total = column.sum()
        if total <= 0:
            continue
        order = np.argsort(-column, kind='stable')
        cumulative = np.cumsum(column[order]) / total
        n_keep = int(np.searchsorted(cumulative, 1.0 - cutoff) + 1)
        keep[order[:n_keep]] = True
    return matrix.index[keep]


def filter_features(
    features: FeatureSet,
    method: str = 'abundance',
    cutoff: float = 0.001,
    feature_type: Union[str, FeatureType] = FeatureType.ORIGINAL,
    variance_config: Optional[AdaptiveFilterConfig] = None
) -> FeatureSet:
    """
    Remove uninformative features without looking at the label.

    Args:
        features: FeatureSet to filter
        method: 'abundance' (maximum >= cutoff), 'cum.abundance',
            'prevalence' (share of samples with a value > 0 >= cutoff),
            'variance' (adaptive variance filter) or 'pass'
        cutoff: Method threshold
        feature_type: Variant to filter
        variance_config: Settings of the adaptive variance filter

    Returns:
        New FeatureSet carrying the ``filtered`` variant
    """
    if method not in FILTER_METHODS:
        raise ConfigurationError(
            f"Unknown filter method '{method}', expected one of: {', '.join(FILTER_METHODS)}"
        )
    if method in ('abundance', 'cum.abundance', 'prevalence') and not 0 <= cutoff <= 1:
        raise ConfigurationError(f"Filter cutoff must be within [0, 1], got {cutoff}")

    matrix = features.get(feature_type)
    info: Dict[str, Any] = {'method': method, 'cutoff': cutoff, 'feature_type': FeatureType.parse(feature_type).value}

    if method == 'abundance':
        filtered = matrix.loc[matrix.max(axis=1) >= cutoff]
    elif method == 'cum.abundance':
        filtered = matrix.loc[_cum_abundance_keep(matrix, cutoff)]
    elif method == 'prevalence':
        filtered = matrix.loc[(matrix > 0).mean(axis=1) >= cutoff]
    elif method == 'variance':
        variance_filter = AdaptiveVarianceFilter(variance_config).fit(matrix)
        filtered = variance_filter.transform(matrix)
        info.update(variance_filter.filter_info_)
    else:
        filtered = matrix

    if filtered.empty:
        raise DataError(f"Feature filtering ({method}, cutoff={cutoff}) removed every feature")

    logger.info(f"Feature filtering ({method}): kept {filtered.shape[0]}/{matrix.shape[0]} features")
    return features.with_variant(
        FeatureType.FILTERED, filtered.copy(), filter_params=info, normalized=None, norm_params=None
    )
