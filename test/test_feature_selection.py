"""Tests for association scoring and nested feature selection."""

import numpy as np
import pandas as pd
import pytest

from metaPredictor.config.feature_selection import FeatureSelectionConfig
from metaPredictor.core.base import LabelType
from metaPredictor.core.data_split import create_data_split
from metaPredictor.core.exceptions import ConfigurationError, DataError
from metaPredictor.core.feature_selector import score_features, select_features
from metaPredictor.core.model_trainer import train_model
from metaPredictor.core.predictor import make_predictions
from metaPredictor.data.features import FeatureSet
from metaPredictor.data.label import Label
from metaPredictor.evaluation.metrics import evaluate_predictions


@pytest.fixture
def toy():
    X = pd.DataFrame({
        'up': [5.0, 6.0, 7.0, 1.0, 2.0, 3.0],
        'down': [1.0, 2.0, 3.0, 5.0, 6.0, 7.0],
        'flat': [1.0, 1.0, 1.0, 1.0, 1.0, 1.0],
    })
    y = np.array([1, 1, 1, 0, 0, 0])
    return X, y


def test_auc_scores(toy):
    X, y = toy
    scores = score_features(X, y, 'AUC')
    assert scores.loc['up', 'score'] == pytest.approx(1.0)
    assert scores.loc['down', 'score'] == pytest.approx(0.0)
    assert scores.loc['flat', 'score'] == pytest.approx(0.5)


def test_direction_controls_selection(toy):
    X, y = toy
    assert select_features(X, y, FeatureSelectionConfig(method='AUC', n_features=1, direction='positive')) == ['up']
    assert select_features(X, y, FeatureSelectionConfig(method='AUC', n_features=1, direction='negative')) == ['down']
    assert select_features(X, y, FeatureSelectionConfig(method='AUC', n_features=2)) == ['up', 'down']


def test_gfc_sign(toy):
    X, y = toy
    scores = score_features(X, y, 'gFC')
    assert scores.loc['up', 'effect'] > 0 > scores.loc['down', 'effect']
    assert scores.loc['flat', 'effect'] == pytest.approx(0.0)


def test_wilcoxon_threshold_is_a_p_value(toy):
    X, y = toy
    config = FeatureSelectionConfig(method='Wilcoxon', threshold=0.2)
    assert select_features(X, y, config) == ['up', 'down']
    with pytest.raises(DataError):
        select_features(X, y, FeatureSelectionConfig(method='Wilcoxon', threshold=1e-6))


def test_correlation_for_continuous_labels():
    X = pd.DataFrame({'a': [1.0, 2.0, 3.0, 4.0], 'b': [4.0, 1.0, 3.0, 2.0]})
    y = np.array([0.1, 0.2, 0.3, 0.4])
    config = FeatureSelectionConfig(method='spearman', n_features=1)
    assert select_features(X, y, config) == ['a']


def test_config_validation():
    with pytest.raises(ConfigurationError):
        FeatureSelectionConfig(method='spearman', n_features=5).validate(LabelType.BINARY)
    with pytest.raises(ConfigurationError):
        FeatureSelectionConfig(method='AUC').validate(LabelType.BINARY)
    with pytest.raises(ConfigurationError):
        FeatureSelectionConfig(method='AUC', n_features=5, direction='up').validate(LabelType.BINARY)
    assert FeatureSelectionConfig.from_dict(None).enabled is False


def _noise_problem(seed=3, n_samples=60, n_features=1000):
    rng = np.random.default_rng(seed)
    samples = [f"S{i:02d}" for i in range(n_samples)]
    table = pd.DataFrame(
        rng.normal(size=(n_features, n_samples)),
        index=[f"f{i}" for i in range(n_features)],
        columns=samples
    )
    values = pd.Series([1, 0] * (n_samples // 2), index=samples)
    return FeatureSet(original=table), Label(values, LabelType.BINARY, case='case', control='control')


def test_nested_selection_does_not_leak_label_information():
    """On pure noise, selecting on the whole data set inflates the CV estimate; nested selection does not."""
    features, label = _noise_problem()
    split = create_data_split(label, num_folds=5, num_resample=2)
    selection = FeatureSelectionConfig(method='AUC', n_features=10)

    nested = train_model(
        features, label, split, method='lasso', min_nonzero_coeff=2,
        feature_type='original', feature_selection=selection
    )
    nested_auroc = evaluate_predictions(make_predictions(nested, features, split), label).auroc

    X = features.samples_view('original').loc[label.samples]
    chosen = select_features(X, label.values.to_numpy(), selection)
    leaky = FeatureSet(original=features.original.loc[chosen])
    global_models = train_model(leaky, label, split, method='lasso', min_nonzero_coeff=2, feature_type='original')
    global_auroc = evaluate_predictions(make_predictions(global_models, leaky, split), label).auroc

    assert nested_auroc < 0.75
    assert global_auroc > nested_auroc + 0.1
    for model in nested:
        assert len(model.features) == 10


def test_feature_perfect_in_one_test_fold_is_only_selected_where_visible():
    """A feature separating the classes only inside fold 1's test rows must not reach fold 1's model."""
    rng = np.random.default_rng(11)
    samples = [f"S{i:02d}" for i in range(60)]
    y = pd.Series([1, 0] * 30, index=samples)
    label = Label(y, LabelType.BINARY, case='case', control='control')
    split = create_data_split(label, num_folds=5, num_resample=1)
    held_out = split.test_samples(0, 0)

    table = pd.DataFrame(rng.normal(size=(20, 60)), index=[f"f{i}" for i in range(20)], columns=samples)
    table.loc['shared'] = 2.0 * y + rng.normal(scale=0.5, size=60)
    leak = pd.Series(0.0, index=samples)
    leak[held_out] = np.where(y[held_out] == 1, 1.0, -1.0)
    table.loc['leak'] = leak
    features = FeatureSet(original=table)
    selection = FeatureSelectionConfig(method='AUC', threshold=0.6, direction='positive')

    X = features.samples_view('original').loc[label.samples]
    global_set = set(select_features(X, y.to_numpy(), selection))
    train_ids = split.train_samples(0, 0)
    nested_set = set(select_features(X.loc[train_ids], y[train_ids].to_numpy(), selection))
    assert {'leak', 'shared'} <= global_set
    assert 'shared' in nested_set and 'leak' not in nested_set

    models = train_model(
        features, label, split, method='lasso', min_nonzero_coeff=1,
        feature_type='original', feature_selection=selection
    )
    for model in models:
        if model.fold == 0:
            assert 'leak' not in model.features
        else:
            assert 'leak' in model.features
