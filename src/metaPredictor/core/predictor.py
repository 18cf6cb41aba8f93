"""
Prediction with trained models for metaPredictor.

Internal mode predicts the test folds of the data split the models were
trained on; external mode applies every model to a holdout FeatureSet.
"""

from typing import Optional

import numpy as np
import pandas as pd

from .base import FeatureType
from .data_split import DataSplit
from .exceptions import ConfigurationError, DataError, InternalConsistencyError
from .model_trainer import ModelList
from ..data.features import FeatureSet
from ..preprocessing.normalizer import apply_normalization
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _check_features(matrix: pd.DataFrame, required, what: str) -> None:
    missing = [f for f in required if f not in matrix.columns]
    if missing:
        raise DataError(f"{len(missing)} features of the trained models are missing from the {what}: {missing[:10]}")


def _log_agreement(predictions: pd.DataFrame) -> None:
    if predictions.shape[1] < 2:
        return
    corr = predictions.corr(method='spearman').to_numpy()
    off_diagonal = corr[~np.eye(len(corr), dtype=bool)]
    logger.debug(
        f"Spearman correlation between prediction columns: "
        f"mean={np.nanmean(off_diagonal):.3f}, min={np.nanmin(off_diagonal):.3f}"
    )


def _predict_internal(models: ModelList, features: FeatureSet, data_split: DataSplit) -> pd.DataFrame:
    matrix = features.samples_view(models.feature_type)
    split_samples = set(data_split.samples)
    missing = [s for s in data_split.samples if s not in matrix.index]
    if missing:
        raise DataError(f"{len(missing)} samples of the data split are missing from the features: {missing[:10]}")
    if len(models) != data_split.n_models or any(
        (m.index, m.fold, m.resample) != instance
        for m, instance in zip(models, data_split.iter_instances())
    ):
        raise DataError("The models were not trained on this data split")

    samples = [s for s in matrix.index if s in split_samples]
    columns = [f"CV_rep{r + 1}" for r in range(data_split.num_resample)]
    predictions = pd.DataFrame(np.nan, index=samples, columns=columns)

    for model in models:
        test_ids = data_split.test_samples(model.fold, model.resample)
        _check_features(matrix, model.features, "features")
        X_test = matrix.loc[test_ids, list(model.features)]
        predictions.loc[test_ids, columns[model.resample]] = model.predict(X_test)
        logger.debug(f"Predicted {len(test_ids)} test samples with model {model.index + 1}")

    if predictions.isnull().to_numpy().any():
        unset = predictions.index[predictions.isnull().any(axis=1)].tolist()
        raise InternalConsistencyError(
            f"Predictions missing for {len(unset)} samples after the cross-validation pass: {unset[:10]}"
        )
    return predictions


def _holdout_matrix(models: ModelList, holdout: FeatureSet, normalize_holdout: bool) -> pd.DataFrame:
    if models.feature_type == FeatureType.NORMALIZED:
        if normalize_holdout:
            if models.norm_params is None:
                raise DataError("The models carry no frozen normalization parameters to apply to the holdout")
            normalized = apply_normalization(holdout.get(FeatureType.ORIGINAL), models.norm_params)
            return normalized.T
        if not holdout.has(FeatureType.NORMALIZED):
            raise DataError(
                "Holdout features are not normalized; normalize them first or set normalize_holdout=True"
            )
    elif models.feature_type == FeatureType.FILTERED and not holdout.has(FeatureType.FILTERED):
        # filtering drops rows only, so the original values serve
        return holdout.samples_view(FeatureType.ORIGINAL)
    return holdout.samples_view(models.feature_type)


def _predict_external(models: ModelList, holdout: FeatureSet, normalize_holdout: bool) -> pd.DataFrame:
    matrix = _holdout_matrix(models, holdout, normalize_holdout)
    _check_features(matrix, models.reference_features, "holdout")
    columns = {}
    for model in models:
        columns[f"Model_{model.index + 1}"] = model.predict(matrix)
    return pd.DataFrame(columns, index=matrix.index)


def make_predictions(
    models: ModelList,
    features: Optional[FeatureSet] = None,
    data_split: Optional[DataSplit] = None,
    holdout: Optional[FeatureSet] = None,
    normalize_holdout: bool = True
) -> pd.DataFrame:
    """
    Apply trained models.

    Args:
        models: ModelList from ``train_model``
        features: Training FeatureSet (internal mode)
        data_split: DataSplit the models were trained on (internal mode)
        holdout: External FeatureSet; switches to external mode
        normalize_holdout: Normalize the holdout's original features with
            the frozen training parameters (models trained on normalized data)

    Returns:
        Samples x columns table: ``CV_rep1..R`` in internal mode,
        ``Model_1..M`` in external mode. Case-class probabilities for binary
        labels, fitted values for continuous labels.
    """
    if holdout is not None:
        logger.info(f"Predicting {holdout.shape[1]} holdout samples with {len(models)} models")
        predictions = _predict_external(models, holdout, normalize_holdout)
    else:
        if features is None or data_split is None:
            raise ConfigurationError("Internal prediction needs both the training features and the data split")
        logger.info(f"Predicting cross-validation test folds with {len(models)} models")
        predictions = _predict_internal(models, features, data_split)
    _log_agreement(predictions)
    return predictions
