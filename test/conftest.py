"""Shared synthetic data for the metaPredictor tests."""

import numpy as np
import pandas as pd
import pytest

from metaPredictor.core.base import LabelType
from metaPredictor.data.features import FeatureSet
from metaPredictor.data.label import Label, create_label


def make_abundances(latent: np.ndarray, feature_names, sample_names) -> pd.DataFrame:
    """Features x samples table of positive, abundance-like values from a latent gaussian."""
    values = 10 ** (0.5 * latent - 3.0)
    return pd.DataFrame(values.T, index=feature_names, columns=sample_names)


def make_binary_dataset(
    n_samples: int = 100,
    n_informative: int = 10,
    n_noise: int = 90,
    shift: float = 1.5,
    seed: int = 42
):
    """
    Binary data set with ``n_informative`` case-enriched features.

    Returns:
        (FeatureSet with the original variant, Label, latent gaussian samples x features table)
    """
    rng = np.random.default_rng(seed)
    samples = [f"S{i:03d}" for i in range(n_samples)]
    features = [f"inf_{i}" for i in range(n_informative)] + [f"noise_{i}" for i in range(n_noise)]
    y = np.array([1] * (n_samples // 2) + [0] * (n_samples - n_samples // 2))
    rng.shuffle(y)

    latent = rng.normal(size=(n_samples, n_informative + n_noise))
    latent[y == 1, :n_informative] += shift
    table = make_abundances(latent, features, samples)

    metadata = pd.DataFrame(
        {'disease': np.where(y == 1, 'CRC', 'CTR')},
        index=samples
    )
    label = create_label(metadata, 'disease', case='CRC', control='CTR')
    return FeatureSet(original=table), label, pd.DataFrame(latent, index=samples, columns=features)


def make_continuous_dataset(n_samples: int = 100, n_features: int = 20, noise: float = 0.3, seed: int = 7):
    """Gaussian features with a linear continuous response on the first five."""
    rng = np.random.default_rng(seed)
    samples = [f"S{i:03d}" for i in range(n_samples)]
    features = [f"f{i}" for i in range(n_features)]
    X = rng.normal(size=(n_samples, n_features))
    beta = np.zeros(n_features)
    beta[:5] = [2.0, -1.5, 1.0, 1.0, -2.0]
    y = X @ beta + noise * rng.normal(size=n_samples)
    table = pd.DataFrame(X.T, index=features, columns=samples)
    label = Label(pd.Series(y, index=samples), LabelType.CONTINUOUS)
    return FeatureSet(original=table), label


@pytest.fixture
def binary_data():
    return make_binary_dataset()


@pytest.fixture
def small_binary_label():
    """30 samples, 12 cases and 18 controls."""
    samples = [f"S{i:02d}" for i in range(30)]
    values = pd.Series([1] * 12 + [0] * 18, index=samples)
    return Label(values, LabelType.BINARY, case='case', control='control')


@pytest.fixture
def continuous_data():
    return make_continuous_dataset()
