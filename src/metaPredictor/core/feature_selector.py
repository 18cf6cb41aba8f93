"""
Association-based feature selection for metaPredictor.

The same scorer serves the nested selection inside every training fold and
the global selection used for comparison runs; the caller decides which rows
it sees.
"""

from typing import List

import numpy as np
import pandas as pd
from scipy.stats import mannwhitneyu, pearsonr, rankdata, spearmanr

from .exceptions import DataError
from ..config.feature_selection import FeatureSelectionConfig
from ..utils.logger import get_logger

logger = get_logger(__name__)

GFC_PROBS = np.arange(0.05, 1.0, 0.1)
GFC_LOG_N0 = 1e-5


def _split_classes(X: pd.DataFrame, y: np.ndarray):
    y = np.asarray(y).astype(int)
    case = X.to_numpy(dtype=float)[y == 1]
    control = X.to_numpy(dtype=float)[y == 0]
    if len(case) == 0 or len(control) == 0:
        raise DataError("Feature scoring needs samples of both classes")
    return case, control


def _auc(X: pd.DataFrame, y: np.ndarray) -> np.ndarray:
    """Per-feature AUC of case versus control (0.5 = no association)."""
    y = np.asarray(y).astype(int)
    ranks = rankdata(X.to_numpy(dtype=float), axis=0)
    n_case = int((y == 1).sum())
    n_control = len(y) - n_case
    rank_sum = ranks[y == 1].sum(axis=0)
    return (rank_sum - n_case * (n_case + 1) / 2.0) / (n_case * n_control)


def _gfc(X: pd.DataFrame, y: np.ndarray) -> np.ndarray:
    """
    Generalized fold change: mean difference of class quantiles.

    Computed on log10(x + 1e-5) for non-negative data, on the raw values
    otherwise (already transformed features).
    """
    case, control = _split_classes(X, y)
    if min(case.min(), control.min()) >= 0:
        case = np.log10(case + GFC_LOG_N0)
        control = np.log10(control + GFC_LOG_N0)
    q_case = np.quantile(case, GFC_PROBS, axis=0)
    q_control = np.quantile(control, GFC_PROBS, axis=0)
    return (q_case - q_control).mean(axis=0)


def _wilcoxon(X: pd.DataFrame, y: np.ndarray) -> np.ndarray:
    case, control = _split_classes(X, y)
    p_values = np.ones(case.shape[1])
    for j in range(case.shape[1]):
        if np.ptp(np.concatenate([case[:, j], control[:, j]])) == 0:
            continue
        p_values[j] = mannwhitneyu(case[:, j], control[:, j], alternative='two-sided').pvalue
    return p_values


def _correlation(X: pd.DataFrame, y: np.ndarray, method: str) -> np.ndarray:
    func = spearmanr if method == 'spearman' else pearsonr
    values = X.to_numpy(dtype=float)
    y = np.asarray(y, dtype=float)
    out = np.zeros(values.shape[1])
    if np.ptp(y) == 0:
        return out
    for j in range(values.shape[1]):
        if np.ptp(values[:, j]) == 0:
            continue
        out[j] = func(values[:, j], y)[0]
    return np.nan_to_num(out)


def score_features(X: pd.DataFrame, y: np.ndarray, method: str) -> pd.DataFrame:
    """
    Score every feature for association with the label.

    Args:
        X: Samples x features table
        y: Label values (0/1 codes or continuous)
        method: 'AUC', 'gFC', 'Wilcoxon', 'spearman' or 'pearson'

    Returns:
        DataFrame indexed by feature with columns ``score`` (the statistic)
        and ``effect`` (signed effect, positive = case-enriched or positively
        correlated)
    """
    if method == 'AUC':
        auc = _auc(X, y)
        score, effect = auc, auc - 0.5
    elif method == 'gFC':
        gfc = _gfc(X, y)
        score, effect = gfc, gfc
    elif method == 'Wilcoxon':
        score, effect = _wilcoxon(X, y), _auc(X, y) - 0.5
    elif method in ('spearman', 'pearson'):
        corr = _correlation(X, y, method)
        score, effect = corr, corr
    else:
        raise DataError(f"Unknown feature scoring method '{method}'")
    return pd.DataFrame({'score': score, 'effect': effect}, index=X.columns)


def _strength(scores: pd.DataFrame, method: str, direction: str) -> pd.Series:
    """Directed strength of association; higher is stronger."""
    if method == 'AUC':
        auc = scores['score']
        if direction == 'positive':
            return auc
        if direction == 'negative':
            return 1.0 - auc
        return np.maximum(auc, 1.0 - auc)
    effect = scores['effect']
    if direction == 'positive':
        return effect
    if direction == 'negative':
        return -effect
    return effect.abs()


def select_features(X: pd.DataFrame, y: np.ndarray, config: FeatureSelectionConfig) -> List[str]:
    """
    Select features by association with the label.

    Only the rows passed in are used; nested selection passes one fold's
    training subset, global selection the whole data set.

    Returns:
        Selected feature names in their original column order

    Raises:
        DataError: If no feature passes the selection
    """
    scores = score_features(X, y, config.method)
    order = np.arange(len(scores))

    if config.method == 'Wilcoxon':
        p_values = scores['score']
        if config.direction == 'positive':
            keep = scores['effect'] > 0
        elif config.direction == 'negative':
            keep = scores['effect'] < 0
        else:
            keep = pd.Series(True, index=scores.index)
        if config.threshold is not None:
            keep &= p_values < config.threshold
        ranked = sorted(np.flatnonzero(keep.to_numpy()), key=lambda i: (p_values.iloc[i], order[i]))
    else:
        strength = _strength(scores, config.method, config.direction)
        keep = pd.Series(True, index=scores.index)
        if config.threshold is not None:
            keep &= strength >= config.threshold
        ranked = sorted(np.flatnonzero(keep.to_numpy()), key=lambda i: (-strength.iloc[i], order[i]))

    if config.n_features is not None:
        ranked = ranked[:int(config.n_features)]
    if not ranked:
        raise DataError(
            f"Feature selection ({config.method}, threshold={config.threshold}, "
            f"direction={config.direction}) retained no features"
        )
    selected = [X.columns[i] for i in sorted(ranked)]
    logger.debug(f"Feature selection kept {len(selected)}/{X.shape[1]} features")
    return selected
