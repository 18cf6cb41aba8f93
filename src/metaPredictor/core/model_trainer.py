"""
Cross-validated model training for metaPredictor.

``train_model`` fits one model per (fold, resample) instance of a DataSplit.
Every job receives only its own training rows; nested feature selection and
the inner hyperparameter search run inside the job on those rows.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from .base import FeatureType, LabelType, SearchMethod
from .data_split import DataSplit
from .exceptions import ConfigurationError, DataError, TrainingError
from .feature_selector import select_features
from .hyperparameter_tuner import TuningResult, expand_param_set, tune_hyperparameters
from ..config.feature_selection import FeatureSelectionConfig
from ..data.features import FeatureSet
from ..data.label import Label
from ..data.validator import DataValidator
from ..evaluation.measures import Measure, resolve_measures
from ..models import ModelFactory, PathLinearModel
from ..models.base_model import BaseModel
from ..utils.helpers import format_time
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class TrainedModel:
    """One fitted model of a (fold, resample) instance."""
    index: int
    fold: int
    resample: int
    estimator: BaseModel
    features: Tuple[Any, ...]
    feature_weights: pd.Series
    hyperparameters: Dict[str, Any] = field(default_factory=dict)
    n_train: int = 0
    tuning: Optional[TuningResult] = None

    def predict(self, X: pd.DataFrame) -> np.ndarray:
        """Scores for a samples x features table, restricted to this model's features."""
        return self.estimator.predict_scores(X.loc[:, list(self.features)])


@dataclass(frozen=True, eq=False)
class ModelList:
    """
    Ordered collection of trained models, addressed by linear instance index.

    Attributes:
        models: Trained models in fold-then-resample order
        method: Canonical model family name
        feature_type: Feature variant the models were trained on
        label_type: Binary or continuous
        reference_features: Every feature of the training variant
        norm_params: Frozen normalization of the training data (if any)
        measures: Names of the selection measures
        case: Case class name (binary)
        control: Control class name (binary)
    """
    models: Tuple[TrainedModel, ...]
    method: str
    feature_type: FeatureType
    label_type: LabelType
    reference_features: Tuple[Any, ...]
    norm_params: Optional[Any] = None
    measures: Tuple[str, ...] = ()
    case: Optional[str] = None
    control: Optional[str] = None

    def __len__(self) -> int:
        return len(self.models)

    def __iter__(self) -> Iterator[TrainedModel]:
        return iter(self.models)

    def __getitem__(self, index: int) -> TrainedModel:
        return self.models[index]

    @property
    def is_binary(self) -> bool:
        return self.label_type == LabelType.BINARY

    def weight_matrix(self) -> pd.DataFrame:
        """Features x models table of weights, zero for features a model did not use."""
        columns = {}
        for model in self.models:
            weights = model.feature_weights.reindex(list(self.reference_features)).fillna(0.0)
            columns[f"Model_{model.index + 1}"] = weights
        return pd.DataFrame(columns, index=list(self.reference_features))

    def feature_weights(self) -> pd.DataFrame:
        """
        Per-feature summary of the weights across models.

        ``mean_rel_weight`` uses weights divided by each model's summed
        absolute weight; ``percentage`` is the share of models giving the
        feature a non-zero weight.
        """
        weights = self.weight_matrix()
        totals = weights.abs().sum(axis=0).replace(0, np.nan)
        relative = weights.div(totals, axis=1).fillna(0.0)
        return pd.DataFrame({
            'mean_weight': weights.mean(axis=1),
            'median_weight': weights.median(axis=1),
            'sd_weight': weights.std(axis=1, ddof=1) if weights.shape[1] > 1 else 0.0,
            'mean_rel_weight': relative.mean(axis=1),
            'percentage': (weights != 0).mean(axis=1),
        })


def _train_instance(
    index: int,
    fold: int,
    resample: int,
    X_train: pd.DataFrame,
    y_train: np.ndarray,
    method: str,
    task: str,
    param_grid: Dict[str, List[Any]],
    measure: Measure,
    feature_selection: Optional[FeatureSelectionConfig],
    search_method: str,
    inner_folds: int,
    n_iter: int,
    random_state: Optional[int]
) -> TrainedModel:
    """Fit the model of one instance; sees nothing but its training rows."""
    if task == LabelType.BINARY.value and len(np.unique(y_train)) < 2:
        raise DataError(
            f"Training set of fold {fold + 1}, resample {resample + 1} contains a single class"
        )

    if feature_selection is not None and feature_selection.enabled:
        selected = select_features(X_train, y_train, feature_selection)
        X_train = X_train.loc[:, selected]

    estimator = ModelFactory.create_model(method, task)
    fixed = {k: v[0] for k, v in param_grid.items() if len(v) == 1}
    estimator.set_params(**fixed)

    tuning = None
    if any(len(v) > 1 for v in param_grid.values()):
        tuning = tune_hyperparameters(
            estimator, X_train, y_train, param_grid, measure,
            inner_folds=inner_folds, search_method=search_method,
            n_iter=n_iter, random_state=random_state
        )
        estimator.set_params(**tuning.best_params)

    estimator.fit(X_train, y_train)
    hyperparameters = {k: estimator.get_params()[k] for k in param_grid}
    if isinstance(estimator, PathLinearModel):
        hyperparameters['selected_lambda'] = estimator.selected_lambda_

    return TrainedModel(
        index=index,
        fold=fold,
        resample=resample,
        estimator=estimator,
        features=tuple(X_train.columns),
        feature_weights=estimator.feature_weights(),
        hyperparameters=hyperparameters,
        n_train=len(y_train),
        tuning=tuning,
    )


def _run_instance(*args, **kwargs) -> Tuple[Optional[TrainedModel], Optional[BaseException]]:
    try:
        return _train_instance(*args, **kwargs), None
    except Exception as e:  # collected and re-raised by train_model
        return None, e


def train_model(
    features: FeatureSet,
    label: Label,
    data_split: DataSplit,
    method: str = 'lasso',
    measure: Union[str, Sequence[str], None] = None,
    param_set: Optional[Dict[str, Any]] = None,
    grid_size: int = 10,
    min_nonzero_coeff: int = 5,
    feature_type: Union[str, FeatureType] = FeatureType.NORMALIZED,
    feature_selection: Optional[FeatureSelectionConfig] = None,
    search_method: str = 'grid',
    inner_folds: int = 5,
    n_iter: int = 20,
    n_jobs: int = 1,
    random_state: Optional[int] = 42
) -> ModelList:
    """
    Train one model per (fold, resample) instance.

    Args:
        features: FeatureSet holding the training variant
        label: Label object
        data_split: DataSplit over the labelled samples
        method: Model family ('lasso', 'enet', 'ridge', 'lasso_ll', 'ridge_ll',
            'randomforest' or an alias)
        measure: Selection measure name(s); defaults to 'acc' / 'mse'
        param_set: Hyperparameters: fixed scalars, candidate lists or ranges
        grid_size: Number of points a range is expanded to
        min_nonzero_coeff: Minimum non-zero coefficients of path models
        feature_type: Feature variant to train on
        feature_selection: Nested feature selection settings
        search_method: Inner search strategy ('grid', 'random', 'bayes')
        inner_folds: Folds of the inner search
        n_iter: Candidates (random) or trials (bayes) of the inner search
        n_jobs: Parallel training jobs
        random_state: Seed for the inner search and the estimators

    Returns:
        ModelList

    Raises:
        ConfigurationError: For invalid settings, before any job starts
        DataError: If features, label and split do not match
        TrainingError: If some instances failed
    """
    start = time.time()
    feature_type = FeatureType.parse(feature_type)
    family = ModelFactory.resolve(method)
    task = label.label_type.value
    ModelFactory.create_model(family, task)
    measures = resolve_measures(measure, label.label_type)
    try:
        SearchMethod(str(search_method).lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown search method '{search_method}', expected one of: "
            f"{', '.join(m.value for m in SearchMethod)}"
        ) from None
    if inner_folds < 2:
        raise ConfigurationError(f"inner_folds must be >= 2, got {inner_folds}")
    if feature_selection is not None:
        feature_selection.validate(label.label_type)

    DataValidator().validate(features, label, feature_type)
    data_split.validate(label)
    matrix = features.samples_view(feature_type).loc[label.samples]
    n_features = matrix.shape[1]

    model_class = ModelFactory.model_class(family)
    valid_params = model_class(task=task).get_params()
    space = model_class.default_param_space(len(label), n_features)
    space.update(param_set or {})
    param_grid = expand_param_set(space, grid_size)

    if issubclass(model_class, PathLinearModel):
        available = n_features
        if feature_selection is not None and feature_selection.enabled and feature_selection.n_features:
            available = min(available, int(feature_selection.n_features))
        if min_nonzero_coeff > available:
            raise ConfigurationError(
                f"min_nonzero_coeff ({min_nonzero_coeff}) exceeds the number of available features ({available})"
            )
        param_grid['min_nonzero_coeff'] = [int(min_nonzero_coeff)]
        param_grid['measure'] = [tuple(m.name for m in measures)]
    if 'random_state' in valid_params and 'random_state' not in param_grid:
        param_grid['random_state'] = [random_state]

    unknown = [k for k in param_grid if k not in valid_params]
    if unknown:
        raise ConfigurationError(
            f"Unknown parameters for model '{family}': {unknown}; valid: {sorted(valid_params)}"
        )

    logger.info(
        f"Training {data_split.n_models} '{family}' models on {n_features} {feature_type.value} features "
        f"(measure={[m.name for m in measures]}, n_jobs={n_jobs})"
    )

    y = label.values
    jobs = []
    for index, fold, resample in data_split.iter_instances():
        train_ids = data_split.train_samples(fold, resample)
        jobs.append(delayed(_run_instance)(
            index, fold, resample,
            matrix.loc[train_ids].copy(),
            y.loc[train_ids].to_numpy(),
            family, task, param_grid, measures[0], feature_selection,
            str(search_method).lower(), inner_folds, n_iter, random_state
        ))
    outcomes = Parallel(n_jobs=n_jobs)(jobs)

    models, failures = [], {}
    for (index, fold, resample), (model, error) in zip(data_split.iter_instances(), outcomes):
        if error is not None:
            logger.error(f"Training failed for fold {fold + 1}, resample {resample + 1}: {error}")
            failures[index] = error
        else:
            logger.debug(
                f"Trained model {index + 1}: fold {fold + 1}, resample {resample + 1}, "
                f"{len(model.features)} features, params={model.hyperparameters}"
            )
            models.append(model)

    if failures:
        raise TrainingError(
            f"{len(failures)}/{data_split.n_models} training instances failed", failures, models
        )

    logger.info(f"Trained {len(models)} models in {format_time(time.time() - start)}")
    return ModelList(
        models=tuple(models),
        method=family,
        feature_type=feature_type,
        label_type=label.label_type,
        reference_features=tuple(matrix.columns),
        norm_params=features.norm_params if feature_type == FeatureType.NORMALIZED else None,
        measures=tuple(m.name for m in measures),
        case=label.case,
        control=label.control,
    )
