"""Tests for configuration loading."""

import json

import pytest
import yaml

from metaPredictor.config import DEFAULT_CONFIG
from metaPredictor.core.base import LabelType
from metaPredictor.core.exceptions import ConfigurationError
from metaPredictor.utils.config import Config, ConfigManager


def test_defaults_match_default_config():
    config = ConfigManager().get_config()
    assert config.split.num_folds == DEFAULT_CONFIG['split']['num_folds']
    assert config.model.method == 'lasso'
    assert config.normalization.method == 'log.std'
    assert config.feature_selection.enabled is False
    assert config.train_kwargs()['feature_selection'] is None


def test_load_yaml(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        'split': {'num_folds': 10, 'num_resample': 3},
        'model': {'method': 'enet', 'param_set': {'l1_ratio': {'lower': 0.1, 'upper': 0.9}}},
        'feature_selection': {'method': 'gFC', 'n_features': 50},
        'output_dir': str(tmp_path / 'out'),
    }))
    config = ConfigManager().load_from_file(path).get_config()
    assert config.split_kwargs()['num_folds'] == 10
    assert config.split.num_resample == 3
    assert config.model.method == 'enet'
    assert config.feature_selection.enabled is True
    kwargs = config.train_kwargs()
    assert kwargs['feature_selection'].n_features == 50
    assert kwargs['param_set'] == {'l1_ratio': {'lower': 0.1, 'upper': 0.9}}


def test_unknown_keys_are_skipped(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({'split': {'num_folds': 4, 'folds': 3}, 'colour': 'red'}))
    config = ConfigManager().load_from_file(path).get_config()
    assert config.split.num_folds == 4
    assert not hasattr(config.split, 'folds')


def test_missing_and_unsupported_files(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager().load_from_file(tmp_path / "absent.yaml")
    path = tmp_path / "config.ini"
    path.write_text("[split]\n")
    with pytest.raises(ConfigurationError):
        ConfigManager().load_from_file(path)


def test_save_and_reload(tmp_path):
    manager = ConfigManager().update_config(
        model={'method': 'randomforest', 'param_set': {'n_estimators': (100, 500)}},
        split={'num_folds': 3}
    )
    manager.save_to_file(tmp_path / "saved.yaml")
    reloaded = ConfigManager().load_from_file(tmp_path / "saved.yaml").get_config()
    assert reloaded.model.method == 'randomforest'
    assert reloaded.model.param_set == {'n_estimators': {'lower': 100, 'upper': 500}}
    assert reloaded.split.num_folds == 3


def test_validate_against_label_type():
    config = Config()
    config.model.method = 'lasso_ll'
    config.validate(LabelType.BINARY)
    with pytest.raises(ConfigurationError):
        config.validate(LabelType.CONTINUOUS)
    config.model.method = 'boosting'
    with pytest.raises(ConfigurationError):
        config.validate()
