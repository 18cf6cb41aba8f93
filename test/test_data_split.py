"""Tests for the fold partitioner."""

import numpy as np
import pandas as pd
import pytest

from metaPredictor.core.base import LabelType
from metaPredictor.core.data_split import DataSplit, create_data_split, reuse_data_split
from metaPredictor.core.exceptions import ConfigurationError, DataError
from metaPredictor.data.label import Label


def test_every_sample_tested_exactly_once_per_resample(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=5, num_resample=3)
    assert split.n_models == 15
    for resample in range(3):
        tested = [s for fold in split.test_folds[resample] for s in fold]
        assert sorted(tested) == sorted(small_binary_label.samples)
        assert len(tested) == len(set(tested))


def test_train_and_test_are_complementary(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=4, num_resample=2)
    everything = set(small_binary_label.samples)
    for _, fold, resample in split.iter_instances():
        train = set(split.train_samples(fold, resample))
        test = set(split.test_samples(fold, resample))
        assert not train & test
        assert train | test == everything


def test_instance_order_is_fold_then_resample(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=3, num_resample=2)
    assert list(split.iter_instances()) == [
        (0, 0, 0), (1, 0, 1), (2, 1, 0), (3, 1, 1), (4, 2, 0), (5, 2, 1)
    ]


def test_stratification_keeps_class_ratio(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=3, num_resample=2)
    y = small_binary_label.values
    for resample in range(2):
        for fold in split.test_folds[resample]:
            # 12 cases over 3 folds: exactly 4 per fold
            assert int(y.loc[list(fold)].sum()) == 4


def test_same_seed_same_split(small_binary_label):
    a = create_data_split(small_binary_label, num_folds=5, random_state=1)
    b = create_data_split(small_binary_label, num_folds=5, random_state=1)
    c = create_data_split(small_binary_label, num_folds=5, random_state=2)
    assert a.test_folds == b.test_folds
    assert a.test_folds != c.test_folds


def test_leave_one_out(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=30)
    assert all(len(fold) == 1 for fold in split.test_folds[0])
    assert split.n_models == 30


def test_invalid_fold_counts(small_binary_label):
    with pytest.raises(ConfigurationError):
        create_data_split(small_binary_label, num_folds=1)
    with pytest.raises(ConfigurationError):
        create_data_split(small_binary_label, num_folds=31)
    with pytest.raises(ConfigurationError):
        create_data_split(small_binary_label, num_folds=5, num_resample=0)


def test_stratification_impossible_for_small_class():
    values = pd.Series([1, 1, 1, 0, 0, 0, 0, 0, 0, 0], index=[f"s{i}" for i in range(10)])
    label = Label(values, LabelType.BINARY, case='a', control='b')
    with pytest.raises(ConfigurationError):
        create_data_split(label, num_folds=5, stratify=True)
    split = create_data_split(label, num_folds=3, stratify=True)
    assert split.n_models == 3


def test_inseparable_groups_stay_together(small_binary_label):
    samples = small_binary_label.samples
    metadata = pd.DataFrame({'subject': [f"P{i // 2}" for i in range(30)]}, index=samples)
    split = create_data_split(
        small_binary_label, num_folds=5, num_resample=2, inseparable='subject', metadata=metadata
    )
    for resample in range(2):
        fold_of = split.fold_of(resample)
        per_subject = fold_of.groupby(metadata['subject']).nunique()
        assert (per_subject == 1).all()
        tested = [s for fold in split.test_folds[resample] for s in fold]
        assert sorted(tested) == sorted(samples)


def test_grouped_stratification_is_approximate(small_binary_label):
    metadata = pd.DataFrame(
        {'subject': [f"P{i // 2}" for i in range(30)]}, index=small_binary_label.samples
    )
    split = create_data_split(small_binary_label, num_folds=3, inseparable='subject', metadata=metadata)
    y = small_binary_label.values
    case_counts = [int(y.loc[list(fold)].sum()) for fold in split.test_folds[0]]
    assert max(case_counts) - min(case_counts) <= 2


def test_grouping_needs_metadata(small_binary_label):
    with pytest.raises(ConfigurationError):
        create_data_split(small_binary_label, num_folds=5, inseparable='subject')
    metadata = pd.DataFrame({'subject': ['P1'] * 30}, index=small_binary_label.samples)
    with pytest.raises(ConfigurationError):
        create_data_split(small_binary_label, num_folds=5, inseparable='subject', metadata=metadata)
    partial = metadata.iloc[:20]
    with pytest.raises(DataError):
        create_data_split(small_binary_label, num_folds=2, inseparable='subject', metadata=partial)


def test_continuous_label_is_not_stratified():
    rng = np.random.default_rng(0)
    label = Label(pd.Series(rng.normal(size=20), index=[f"s{i}" for i in range(20)]), LabelType.CONTINUOUS)
    split = create_data_split(label, num_folds=4, stratify=True)
    assert split.stratified is False
    assert sorted(split.samples) == sorted(label.samples)


def test_reuse_data_split(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=5)
    copied = reuse_data_split(split, small_binary_label)
    assert copied.test_folds == split.test_folds

    other = small_binary_label.subset(small_binary_label.samples[:-2])
    with pytest.raises(DataError):
        reuse_data_split(split, other)


def test_dict_round_trip_keeps_folds(small_binary_label):
    split = create_data_split(small_binary_label, num_folds=5, num_resample=2)
    restored = DataSplit.from_dict(split.to_dict())
    assert restored.test_folds == split.test_folds
    assert restored.training_folds == split.training_folds
    restored.validate(small_binary_label)


def test_label_class_counts(small_binary_label, continuous_data):
    assert small_binary_label.class_counts() == {'control': 18, 'case': 12}
    _, continuous = continuous_data
    with pytest.raises(DataError):
        continuous.class_counts()
