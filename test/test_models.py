"""Tests for the model families and the regularization path selection."""

import warnings

import numpy as np
import pytest

from metaPredictor.config.model_configs import MODEL_CONFIGS
from metaPredictor.core.exceptions import ConfigurationError, DataError
from metaPredictor.models import (
    MODEL_REGISTRY,
    ElasticNetModel,
    LassoLLModel,
    LassoModel,
    LiblinearLogisticModel,
    ModelFactory,
    RandomForestModel,
    RidgeLLModel,
    RidgeModel,
    select_regularization_index,
)
from metaPredictor.models.logistic_regression import COST_GRID


def test_first_optimum_among_eligible_candidates():
    performance = [[0.5, 0.7, 0.9, 0.9, 0.8]]
    nonzero = [0, 2, 5, 8, 10]
    assert select_regularization_index(performance, nonzero, 3, [False]) == 2
    assert select_regularization_index(performance, nonzero, 9, [False]) == 4
    assert select_regularization_index(performance, nonzero, 0, [False]) == 2


def test_minimized_measure_picks_lowest():
    performance = [[0.9, 0.4, 0.4, 0.6]]
    assert select_regularization_index(performance, [1, 2, 3, 4], 1, [True]) == 1


def test_several_measures_use_floor_of_mean_position():
    performance = [[0.1, 0.5, 0.9, 0.6], [0.9, 0.8, 0.7, 0.2]]
    nonzero = [1, 2, 3, 4]
    # optima at positions 2 and 3 -> floor(2.5) = 2
    assert select_regularization_index(performance, nonzero, 1, [False, True]) == 2
    # with the first candidate ineligible the positions shift but the pick does not
    assert select_regularization_index(performance, nonzero, 2, [False, True]) == 2


def test_no_eligible_candidate_raises():
    with pytest.raises(ConfigurationError):
        select_regularization_index([[0.5, 0.6]], [1, 2], 3, [False])


def test_lasso_binary_path(binary_data):
    _, label, latent = binary_data
    model = LassoModel(task='binary', min_nonzero_coeff=5).fit(latent, label.values.to_numpy())
    scores = model.predict_scores(latent)
    assert scores.min() >= 0 and scores.max() <= 1
    assert np.count_nonzero(model.coef_) >= 5
    assert model.nonzero_path_[model.selected_index_] >= 5
    assert model.selected_lambda_ == model.regularization_path_[model.selected_index_]
    assert model.feature_weights().index.tolist() == latent.columns.tolist()


def test_ridge_keeps_every_feature(binary_data):
    _, label, latent = binary_data
    model = RidgeModel(task='binary', n_lambda=10).fit(latent, label.values.to_numpy())
    assert np.count_nonzero(model.coef_) == latent.shape[1]


def test_lasso_continuous_recovers_signal(continuous_data):
    features, label = continuous_data
    X = features.samples_view('original')
    model = LassoModel(task='continuous', min_nonzero_coeff=1).fit(X, label.values.to_numpy())
    fitted = model.predict_scores(X)
    assert np.corrcoef(fitted, label.values.to_numpy())[0, 1] > 0.95
    top = model.feature_weights().abs().sort_values(ascending=False).index[:5]
    assert set(top) == {'f0', 'f1', 'f2', 'f3', 'f4'}


def test_path_model_needs_both_classes(binary_data):
    _, label, latent = binary_data
    y = np.ones(len(latent), dtype=int)
    with pytest.raises(DataError):
        LassoModel(task='binary').fit(latent, y)


def test_prediction_requires_training_features(binary_data):
    _, label, latent = binary_data
    model = LassoModel(task='binary', n_lambda=10).fit(latent, label.values.to_numpy())
    with pytest.raises(DataError):
        model.predict_scores(latent.drop(columns=['inf_0']))


def test_liblinear_logistic(binary_data):
    _, label, latent = binary_data
    model = LassoLLModel(task='binary', C=1.0).fit(latent, label.values.to_numpy())
    scores = model.predict_scores(latent)
    assert ((scores >= 0) & (scores <= 1)).all()
    assert LassoLLModel.default_param_space(100, 100) == {'C': COST_GRID}
    assert len(COST_GRID) == 21
    assert COST_GRID[0] == pytest.approx(0.01) and COST_GRID[-1] == pytest.approx(1000.0)


@pytest.mark.parametrize('model', [
    LassoModel(task='binary'),
    RidgeModel(task='binary'),
    ElasticNetModel(task='binary', l1_ratio=0.5, n_lambda=5),
    LassoLLModel(task='binary', C=0.05),
    RidgeLLModel(task='binary', C=0.05),
], ids=['lasso', 'ridge', 'enet', 'lasso_ll', 'ridge_ll'])
def test_linear_families_fit_without_deprecated_arguments(binary_data, model):
    _, label, latent = binary_data
    with warnings.catch_warnings():
        warnings.simplefilter('error', FutureWarning)
        model.fit(latent, label.values.to_numpy())
    assert np.isfinite(model.predict_scores(latent)).all()


def test_liblinear_penalty_sets_sparsity(binary_data):
    _, label, latent = binary_data
    y = label.values.to_numpy()
    sparse = LassoLLModel(task='binary', C=0.05).fit(latent, y)
    dense = RidgeLLModel(task='binary', C=0.05).fit(latent, y)
    assert (sparse.feature_weights() == 0).sum() > 0
    assert (dense.feature_weights() != 0).all()

    with pytest.raises(ConfigurationError):
        LiblinearLogisticModel(task='binary', penalty='elasticnet').fit(latent, y)


def test_random_forest_param_space_and_mtry_cap(binary_data):
    _, label, latent = binary_data
    space = RandomForestModel.default_param_space(100, 100)
    assert space['n_estimators'] == (100, 1000)
    assert space['max_features'] == [5, 10, 20]

    model = RandomForestModel(task='binary', n_estimators=20, max_features=500)
    model.fit(latent.iloc[:, :10], label.values.to_numpy())
    assert model.rf_.max_features == 10
    assert model.feature_weights().sum() == pytest.approx(1.0)


def test_elastic_net_tunes_mixing():
    assert ElasticNetModel.default_param_space(50, 50) == {'l1_ratio': (0.0, 1.0)}
    assert ElasticNetModel().n_lambda == 10


def test_factory_resolves_aliases():
    assert ModelFactory.resolve('randomForest') == 'randomforest'
    assert ModelFactory.resolve('elastic_net') == 'enet'
    assert isinstance(ModelFactory.create_model('rf', 'continuous'), RandomForestModel)
    with pytest.raises(ConfigurationError):
        ModelFactory.resolve('xgboost')


def test_factory_checks_label_type_and_params():
    with pytest.raises(ConfigurationError):
        ModelFactory.create_model('lasso_ll', 'continuous')
    with pytest.raises(ConfigurationError):
        ModelFactory.create_model('lasso', 'binary', {'not_a_param': 1})
    model = ModelFactory.create_model('lasso', 'binary', {'n_lambda': 20})
    assert model.n_lambda == 20


def test_model_configs_match_registry():
    assert set(MODEL_CONFIGS) == set(MODEL_REGISTRY)
    for name, cfg in MODEL_CONFIGS.items():
        defaults = MODEL_REGISTRY[name]().get_params()
        for param, value in cfg['hyperparameters'].items():
            assert defaults[param] == value, (name, param)
        for param in cfg['tuned']:
            assert param in MODEL_REGISTRY[name].default_param_space(100, 100)
