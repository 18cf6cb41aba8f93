"""End-to-end tests: pipeline runs, holdout prediction and the command line."""

import json

import numpy as np
import pandas as pd
import pytest

from metaPredictor.core.exceptions import ConfigurationError, DataError
from metaPredictor.data.features import FeatureSet
from metaPredictor.main import main
from metaPredictor.pipelines.build import prepare_features, run_pipeline, save_results
from metaPredictor.pipelines.predict import load_bundle, predict_holdout
from metaPredictor.utils.config import Config

from conftest import make_binary_dataset, make_continuous_dataset


def _config(**model):
    config = Config()
    config.split.num_folds = 5
    config.split.num_resample = 2
    for key, value in model.items():
        setattr(config.model, key, value)
    return config


def test_binary_signal_is_recovered():
    """100 samples, 10 informative features shifted by 1.5 sd among 90 noise features."""
    features, label, _ = make_binary_dataset(n_samples=100, n_informative=10, n_noise=90, shift=1.5)
    config = _config(method='lasso')
    features = prepare_features(features, config)
    result = run_pipeline(features, label, config)

    assert result.evaluation.auroc > 0.9
    assert list(result.predictions.columns) == ['CV_rep1', 'CV_rep2']
    assert len(result.models) == 10

    weights = result.models.feature_weights()
    informative = [f"inf_{i}" for i in range(10)]
    assert (weights.loc[informative, 'percentage'] >= 0.8).all()


def test_holdout_performance_matches_cross_validation():
    features, label, _ = make_binary_dataset(n_samples=100, n_informative=10, n_noise=90, shift=1.5, seed=21)
    samples = label.samples
    train_ids, holdout_ids = samples[:80], samples[80:]

    config = _config(method='lasso')
    train_features = prepare_features(features.select_samples(train_ids), config)
    result = run_pipeline(train_features, label.subset(train_ids), config)

    holdout = FeatureSet(original=features.original.loc[:, holdout_ids])
    outcome = predict_holdout(result, holdout, label=label.subset(holdout_ids))
    assert list(outcome.predictions.columns) == [f"Model_{i}" for i in range(1, 11)]
    assert ((outcome.predictions >= 0) & (outcome.predictions <= 1)).to_numpy().all()
    assert abs(outcome.evaluation.auroc - result.evaluation.auroc) <= 0.15


def test_continuous_label():
    features, label = make_continuous_dataset(noise=0.3)
    config = _config(method='lasso', min_nonzero_coeff=1, feature_type='original')
    result = run_pipeline(features, label, config)
    assert result.evaluation.r2 > 0.8

    noisy_features, noisy_label = make_continuous_dataset(noise=2.0)
    noisy = run_pipeline(noisy_features, noisy_label, config)
    assert noisy.evaluation.mae > result.evaluation.mae


def test_stage_is_attached_to_errors():
    features, label, _ = make_binary_dataset(n_samples=40, n_informative=5, n_noise=5)
    config = _config(method='lasso', min_nonzero_coeff=50, feature_type='original')
    with pytest.raises(ConfigurationError) as excinfo:
        run_pipeline(features, label, config)
    assert excinfo.value.stage == 'train'
    assert str(excinfo.value).startswith('[train]')

    config = _config(method='lasso', feature_type='normalized')
    with pytest.raises(DataError) as excinfo:
        run_pipeline(features, label, config)
    assert excinfo.value.stage == 'train'


def test_save_results_writes_artifacts(tmp_path):
    features, label, _ = make_binary_dataset(n_samples=40, n_informative=5, n_noise=15)
    config = _config(method='lasso', feature_type='filtered')
    config.split.num_resample = 1
    result = run_pipeline(prepare_features(features, config), label, config)
    out = save_results(result, tmp_path / "run")

    for name in ['data_split.json', 'predictions.tsv', 'feature_weights.tsv', 'weight_matrix.tsv',
                 'evaluation.json', 'roc_curve.tsv', 'pr_curve.tsv', 'config.yaml', 'model_bundle.joblib']:
        assert (out / name).exists(), name
    with open(out / "evaluation.json") as f:
        assert json.load(f)['auroc'] == pytest.approx(result.evaluation.auroc)

    models = load_bundle(out)
    holdout, _, _ = make_binary_dataset(n_samples=10, n_informative=5, n_noise=15, seed=3)
    predictions = predict_holdout(models, holdout).predictions
    assert predictions.shape == (10, 5)


def _write_tables(directory, n_samples=60, seed=42):
    features, label, _ = make_binary_dataset(n_samples=n_samples, n_informative=5, n_noise=25, seed=seed)
    feature_file = directory / "features.tsv"
    features.original.to_csv(feature_file, sep='\t')
    metadata = pd.DataFrame({'Group': np.where(label.values == 1, 'CRC', 'CTR')}, index=label.samples)
    metadata_file = directory / "metadata.tsv"
    metadata.to_csv(metadata_file, sep='\t')
    return feature_file, metadata_file


def test_command_line_build_and_predict(tmp_path):
    feature_file, metadata_file = _write_tables(tmp_path)
    out = tmp_path / "build"
    code = main([
        'build', '--feature_file', str(feature_file), '--metadata_file', str(metadata_file),
        '--label_column', 'Group', '--case', 'CRC', '--control', 'CTR',
        '--method', 'lasso', '--num_folds', '3', '--output', str(out)
    ])
    assert code == 0
    assert (out / 'model_bundle.joblib').exists()
    predictions = pd.read_csv(out / 'predictions.tsv', sep='\t', index_col=0)
    assert list(predictions.columns) == ['CV_rep1']

    holdout_file, holdout_metadata = _write_tables(_subdir(tmp_path, 'holdout'), n_samples=20, seed=8)
    code = main([
        'predict', '--bundle', str(out), '--feature_file', str(holdout_file),
        '--metadata_file', str(holdout_metadata), '--label_column', 'Group',
        '--output', str(tmp_path / 'pred')
    ])
    assert code == 0
    assert (tmp_path / 'pred' / 'holdout_predictions.tsv').exists()
    assert (tmp_path / 'pred' / 'holdout_evaluation.json').exists()


def _subdir(path, name):
    directory = path / name
    directory.mkdir()
    return directory


def test_command_line_exit_codes(tmp_path):
    feature_file, metadata_file = _write_tables(tmp_path)
    assert main([
        'build', '--feature_file', str(tmp_path / 'absent.tsv'), '--metadata_file', str(metadata_file),
        '--label_column', 'Group', '--case', 'CRC', '--output', str(tmp_path / 'a')
    ]) == 2
    assert main([
        'build', '--feature_file', str(feature_file), '--metadata_file', str(metadata_file),
        '--label_column', 'Group', '--case', 'IBD', '--output', str(tmp_path / 'b')
    ]) == 3
