"""
Hyperparameter tuning for metaPredictor.

``tune_hyperparameters`` runs an inner cross-validated search over the
training subset it is given and nothing else. Search methods: exhaustive
grid, random sampling of the grid, and Optuna TPE.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.base import clone
from sklearn.model_selection import KFold, ParameterGrid, ParameterSampler, StratifiedKFold

from .base import SearchMethod
from .exceptions import ConfigurationError, DataError
from ..evaluation.measures import Measure
from ..models.base_model import BaseModel
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Parameters searched on a log scale by the Bayesian search
LOG_SCALE_PARAMS = {'C', 'alpha', 'lambda_min_ratio'}


@dataclass
class TuningResult:
    """Outcome of one inner search."""
    best_params: Dict[str, Any]
    best_score: float
    cv_results: pd.DataFrame = field(default_factory=pd.DataFrame)
    n_failed: int = 0


def expand_param_set(param_set: Optional[Mapping[str, Any]], grid_size: int = 10) -> Dict[str, List[Any]]:
    """
    Expand a parameter specification into candidate lists.

    Each value may be a scalar (fixed), a list of candidates, or a numeric
    range given as a ``(lower, upper)`` tuple or ``{'lower': .., 'upper': ..}``
    mapping, which becomes ``grid_size`` evenly spaced points (rounded and
    de-duplicated for integer bounds).
    """
    grid: Dict[str, List[Any]] = {}
    for name, spec in (param_set or {}).items():
        if isinstance(spec, Mapping):
            if set(spec) != {'lower', 'upper'}:
                raise ConfigurationError(
                    f"Range for '{name}' must have exactly the keys 'lower' and 'upper'"
                )
            spec = (spec['lower'], spec['upper'])
        if isinstance(spec, tuple):
            grid[name] = _expand_range(name, spec, grid_size)
        elif isinstance(spec, (list, np.ndarray)):
            values = list(spec)
            if not values:
                raise ConfigurationError(f"Empty candidate list for parameter '{name}'")
            grid[name] = values
        else:
            grid[name] = [spec]
    return grid


def _expand_range(name: str, bounds: Tuple[Any, ...], grid_size: int) -> List[Any]:
    if len(bounds) != 2:
        raise ConfigurationError(f"Range for '{name}' needs exactly two bounds, got {bounds}")
    lower, upper = bounds
    if not all(isinstance(b, (int, float, np.integer, np.floating)) and not isinstance(b, bool) for b in bounds):
        raise ConfigurationError(f"Range bounds for '{name}' must be numeric, got {bounds}")
    if lower > upper:
        raise ConfigurationError(f"Lower bound exceeds upper bound for '{name}': {bounds}")
    if grid_size < 1:
        raise ConfigurationError(f"grid_size must be >= 1, got {grid_size}")
    points = np.linspace(lower, upper, grid_size)
    if all(isinstance(b, (int, np.integer)) for b in bounds):
        return [int(v) for v in np.unique(np.round(points).astype(int))]
    return [float(v) for v in points]


def _inner_splits(
    y: np.ndarray,
    inner_folds: int,
    stratify: bool,
    random_state: Optional[int]
) -> List[Tuple[np.ndarray, np.ndarray]]:
    if stratify:
        n_splits = min(inner_folds, int(np.bincount(y.astype(int)).min()))
        if n_splits < 2:
            raise DataError("Too few samples in the smallest class for inner cross-validation")
        cv = StratifiedKFold(n_splits=n_splits, shuffle=True, random_state=random_state)
    else:
        n_splits = min(inner_folds, len(y))
        if n_splits < 2:
            raise DataError("Too few samples for inner cross-validation")
        cv = KFold(n_splits=n_splits, shuffle=True, random_state=random_state)
    return list(cv.split(np.zeros((len(y), 1)), y))


def _score_candidate(
    estimator: BaseModel,
    params: Dict[str, Any],
    X: pd.DataFrame,
    y: np.ndarray,
    splits: Sequence[Tuple[np.ndarray, np.ndarray]],
    measure: Measure
) -> Tuple[float, float]:
    """Mean and sd of the measure over the inner folds."""
    scores = []
    for train_idx, test_idx in splits:
        model = clone(estimator).set_params(**params)
        model.fit(X.iloc[train_idx], y[train_idx])
        predicted = model.predict_scores(X.iloc[test_idx])
        scores.append(measure(y[test_idx], predicted))
    scores = np.asarray(scores)
    if not np.all(np.isfinite(scores)):
        raise ValueError(f"non-finite inner score {scores.tolist()}")
    return float(scores.mean()), float(scores.std())


def tune_hyperparameters(
    estimator: BaseModel,
    X: pd.DataFrame,
    y: np.ndarray,
    param_grid: Dict[str, List[Any]],
    measure: Measure,
    inner_folds: int = 5,
    search_method: Union[str, SearchMethod] = 'grid',
    n_iter: int = 20,
    random_state: Optional[int] = 42
) -> TuningResult:
    """
    Select hyperparameters by inner cross-validation on one training subset.

    Args:
        estimator: Unfitted model; cloned for every candidate
        X: Training subset (samples x features)
        y: Training labels
        param_grid: Candidate lists per parameter (see ``expand_param_set``)
        measure: Measure to optimize
        inner_folds: Number of inner folds (stratified for binary labels)
        search_method: 'grid', 'random' or 'bayes'
        n_iter: Number of sampled candidates (random) or trials (bayes)
        random_state: Seed for inner folds and samplers

    Returns:
        TuningResult; ties are resolved in favour of the earliest candidate

    Raises:
        DataError: If every candidate fails
    """
    try:
        method = SearchMethod(str(getattr(search_method, 'value', search_method)).lower())
    except ValueError:
        raise ConfigurationError(
            f"Unknown search method '{search_method}', expected one of: "
            f"{', '.join(m.value for m in SearchMethod)}"
        ) from None

    y = np.asarray(y)
    fixed = {k: v[0] for k, v in param_grid.items() if len(v) == 1}
    varying = {k: v for k, v in param_grid.items() if len(v) > 1}
    if not varying:
        return TuningResult(best_params=dict(fixed), best_score=float('nan'))

    splits = _inner_splits(y, inner_folds, getattr(estimator, 'is_binary', False), random_state)
    logger.debug(
        f"{method.value} search | measure={measure.name} | cv={len(splits)} | params={sorted(varying)}"
    )

    if method == SearchMethod.BAYES:
        records = _optuna_search(estimator, X, y, fixed, varying, splits, measure, n_iter, random_state)
    else:
        if method == SearchMethod.GRID:
            candidates = list(ParameterGrid(varying))
        else:
            n_total = len(ParameterGrid(varying))
            candidates = list(ParameterSampler(varying, n_iter=min(n_iter, n_total), random_state=random_state))
        records = []
        for params in candidates:
            records.append(_evaluate(estimator, X, y, {**fixed, **params}, splits, measure))

    best = None
    for record in records:
        if record['failed']:
            continue
        if best is None or measure.better(record['mean_score'], best['mean_score']):
            best = record
    n_failed = sum(r['failed'] for r in records)
    if best is None:
        raise DataError(
            f"All {len(records)} hyperparameter candidates failed; last error: {records[-1]['error']}"
            if records else "No hyperparameter candidates were evaluated"
        )
    if n_failed:
        logger.warning(f"{n_failed}/{len(records)} hyperparameter candidates failed and were skipped")

    cv_results = pd.DataFrame([
        {**r['params'], 'mean_score': r['mean_score'], 'std_score': r['std_score'], 'failed': r['failed']}
        for r in records
    ])
    logger.debug(f"best_score={best['mean_score']:.4f} | best_params={best['params']}")
    return TuningResult(
        best_params=dict(best['params']),
        best_score=best['mean_score'],
        cv_results=cv_results,
        n_failed=n_failed,
    )


def _evaluate(estimator, X, y, params, splits, measure) -> Dict[str, Any]:
    try:
        mean, sd = _score_candidate(estimator, params, X, y, splits, measure)
    except (ValueError, ArithmeticError, np.linalg.LinAlgError) as e:
        logger.warning(f"Skipping hyperparameter candidate {params}: {e}")
        return {'params': params, 'mean_score': float('nan'), 'std_score': float('nan'),
                'failed': True, 'error': str(e)}
    return {'params': params, 'mean_score': mean, 'std_score': sd, 'failed': False, 'error': None}


def _optuna_search(estimator, X, y, fixed, varying, splits, measure, n_iter, random_state) -> List[Dict[str, Any]]:
    """TPE search; numeric candidates span their [min, max] interval."""
    import optuna

    optuna.logging.set_verbosity(optuna.logging.WARNING)
    sampler = optuna.samplers.TPESampler(seed=random_state)
    study = optuna.create_study(direction='minimize' if measure.minimize else 'maximize', sampler=sampler)
    records: List[Dict[str, Any]] = []

    def suggest(trial: 'optuna.trial.Trial') -> Dict[str, Any]:
        params = {}
        for name, values in varying.items():
            numeric = all(isinstance(v, (int, float, np.integer, np.floating)) and not isinstance(v, bool)
                          for v in values)
            if not numeric:
                params[name] = trial.suggest_categorical(name, values)
            elif all(isinstance(v, (int, np.integer)) for v in values):
                params[name] = trial.suggest_int(name, int(min(values)), int(max(values)))
            else:
                low, high = float(min(values)), float(max(values))
                params[name] = trial.suggest_float(name, low, high, log=name in LOG_SCALE_PARAMS and low > 0)
        return params

    def objective(trial: 'optuna.trial.Trial') -> float:
        record = _evaluate(estimator, X, y, {**fixed, **suggest(trial)}, splits, measure)
        records.append(record)
        if record['failed']:
            raise optuna.TrialPruned()
        return record['mean_score']

    study.optimize(objective, n_trials=n_iter, n_jobs=1)
    return records
