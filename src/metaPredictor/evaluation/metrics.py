"""
Evaluation of prediction matrices for metaPredictor.

Binary labels give ROC and precision-recall curves per prediction column plus
a composite pair computed from the row-wise mean score; continuous labels give
R², MAE and MSE per column and their means.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd
from scipy.stats import pearsonr
from sklearn.metrics import auc, mean_absolute_error, mean_squared_error, roc_curve

from ..core.exceptions import DataError
from ..data.label import CASE_CODE, Label
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, eq=False)
class Curve:
    """A ROC (x = FPR, y = TPR) or PR (x = recall, y = precision) curve."""
    x: np.ndarray
    y: np.ndarray
    thresholds: np.ndarray
    area: float

    def to_frame(self, x_name: str = 'x', y_name: str = 'y') -> pd.DataFrame:
        return pd.DataFrame({x_name: self.x, y_name: self.y, 'threshold': self.thresholds})


@dataclass(frozen=True, eq=False)
class BinaryEvaluation:
    """Evaluation of case-class scores against a binary label."""
    roc: Curve
    pr: Curve
    auroc: float
    auprc: float
    counts: Dict[str, pd.DataFrame] = field(default_factory=dict)
    roc_all: Optional[List[Curve]] = None
    pr_all: Optional[List[Curve]] = None
    auroc_all: Optional[pd.Series] = None
    auprc_all: Optional[pd.Series] = None

    def summary(self) -> Dict[str, Any]:
        out = {'auroc': self.auroc, 'auprc': self.auprc}
        if self.auroc_all is not None:
            out['auroc_all'] = self.auroc_all.tolist()
            out['auprc_all'] = self.auprc_all.tolist()
        return out


@dataclass(frozen=True, eq=False)
class RegressionEvaluation:
    """Evaluation of fitted values against a continuous label."""
    r2: float
    mae: float
    mse: float
    r2_all: Optional[pd.Series] = None
    mae_all: Optional[pd.Series] = None
    mse_all: Optional[pd.Series] = None

    def summary(self) -> Dict[str, Any]:
        out = {'r2': self.r2, 'mae': self.mae, 'mse': self.mse}
        if self.r2_all is not None:
            out['r2_all'] = self.r2_all.tolist()
            out['mae_all'] = self.mae_all.tolist()
            out['mse_all'] = self.mse_all.tolist()
        return out


def classification_counts(scores: np.ndarray, y_true: np.ndarray) -> pd.DataFrame:
    """
    Confusion counts for every threshold of a score vector.

    Thresholds run from +inf (nothing called positive) down through every
    distinct score; a sample is called positive when its score is at least
    the threshold.
    """
    scores = np.asarray(scores, dtype=float)
    positive = np.asarray(y_true) == CASE_CODE
    thresholds = np.concatenate([[np.inf], np.unique(scores)[::-1]])

    pos_sorted = np.sort(scores[positive])
    neg_sorted = np.sort(scores[~positive])
    tp = len(pos_sorted) - np.searchsorted(pos_sorted, thresholds, side='left')
    fp = len(neg_sorted) - np.searchsorted(neg_sorted, thresholds, side='left')
    return pd.DataFrame({
        'threshold': thresholds,
        'tp': tp,
        'fp': fp,
        'tn': len(neg_sorted) - fp,
        'fn': len(pos_sorted) - tp,
    })


def precision_recall(counts: pd.DataFrame) -> Curve:
    """PR curve from confusion counts, starting at (recall 0, precision 1)."""
    tp = counts['tp'].to_numpy(dtype=float)
    fp = counts['fp'].to_numpy(dtype=float)
    fn = counts['fn'].to_numpy(dtype=float)
    called = tp + fp
    precision = np.divide(tp, called, out=np.ones_like(tp), where=called > 0)
    recall = tp / (tp + fn)
    return Curve(
        x=recall,
        y=precision,
        thresholds=counts['threshold'].to_numpy(),
        area=float(auc(recall, precision)),
    )


def roc(scores: np.ndarray, y_true: np.ndarray) -> Curve:
    """ROC curve with every threshold kept."""
    fpr, tpr, thresholds = roc_curve(y_true, scores, pos_label=CASE_CODE, drop_intermediate=False)
    return Curve(x=fpr, y=tpr, thresholds=thresholds, area=float(auc(fpr, tpr)))


def _align(predictions: pd.DataFrame, label: Label) -> pd.DataFrame:
    """Reorder prediction rows to label order; sample sets must match."""
    pred_ids = set(predictions.index)
    label_ids = set(label.samples)
    only_pred = [s for s in predictions.index if s not in label_ids]
    only_label = [s for s in label.samples if s not in pred_ids]
    if only_pred or only_label:
        raise DataError(
            f"Predictions and label cover different samples "
            f"(without label: {only_pred[:10]}, without prediction: {only_label[:10]})"
        )
    if predictions.index.has_duplicates:
        raise DataError("Predictions contain duplicated sample ids")
    aligned = predictions.loc[label.samples]
    if aligned.isnull().to_numpy().any():
        raise DataError("Predictions contain missing values")
    return aligned


def _evaluate_binary(predictions: pd.DataFrame, y: np.ndarray) -> BinaryEvaluation:
    mean_scores = predictions.mean(axis=1).to_numpy()
    counts = {'mean': classification_counts(mean_scores, y)}
    composite_roc = roc(mean_scores, y)
    composite_pr = precision_recall(counts['mean'])

    kwargs: Dict[str, Any] = {}
    if predictions.shape[1] > 1:
        roc_all, pr_all = [], []
        for column in predictions.columns:
            scores = predictions[column].to_numpy()
            counts[column] = classification_counts(scores, y)
            roc_all.append(roc(scores, y))
            pr_all.append(precision_recall(counts[column]))
        kwargs = {
            'roc_all': roc_all,
            'pr_all': pr_all,
            'auroc_all': pd.Series([c.area for c in roc_all], index=predictions.columns),
            'auprc_all': pd.Series([c.area for c in pr_all], index=predictions.columns),
        }

    return BinaryEvaluation(
        roc=composite_roc,
        pr=composite_pr,
        auroc=composite_roc.area,
        auprc=composite_pr.area,
        counts=counts,
        **kwargs
    )


def _squared_pearson(y: np.ndarray, fitted: np.ndarray, column: str) -> float:
    if np.ptp(y) == 0 or np.ptp(fitted) == 0:
        logger.warning(f"R² undefined for '{column}': constant values")
        return float('nan')
    return float(pearsonr(y, fitted)[0] ** 2)


def _column_mean(values: pd.Series) -> float:
    if values.isnull().all():
        return float('nan')
    return float(values.mean(skipna=True))


def _evaluate_continuous(predictions: pd.DataFrame, y: np.ndarray) -> RegressionEvaluation:
    r2 = pd.Series({c: _squared_pearson(y, predictions[c].to_numpy(), c) for c in predictions.columns})
    mae = pd.Series({c: float(mean_absolute_error(y, predictions[c])) for c in predictions.columns})
    mse = pd.Series({c: float(mean_squared_error(y, predictions[c])) for c in predictions.columns})
    per_column = {}
    if predictions.shape[1] > 1:
        per_column = {'r2_all': r2, 'mae_all': mae, 'mse_all': mse}
    return RegressionEvaluation(
        r2=_column_mean(r2),
        mae=_column_mean(mae),
        mse=_column_mean(mse),
        **per_column
    )


def evaluate_predictions(
    predictions: pd.DataFrame,
    label: Label
) -> Union[BinaryEvaluation, RegressionEvaluation]:
    """
    Evaluate a prediction matrix against the label.

    Args:
        predictions: Samples x columns table from ``make_predictions``
        label: Label over exactly the predicted samples

    Returns:
        BinaryEvaluation or RegressionEvaluation

    Raises:
        DataError: If prediction and label samples differ
    """
    aligned = _align(predictions, label)
    y = label.values.to_numpy()
    if label.is_binary:
        result = _evaluate_binary(aligned, y)
        logger.info(f"Evaluation: AUROC={result.auroc:.3f}, AUPRC={result.auprc:.3f}")
    else:
        result = _evaluate_continuous(aligned, y)
        logger.info(f"Evaluation: R2={result.r2:.3f}, MAE={result.mae:.3f}, MSE={result.mse:.3f}")
    return result
