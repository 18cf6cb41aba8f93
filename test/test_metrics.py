"""Tests for prediction evaluation."""

import numpy as np
import pandas as pd
import pytest

from metaPredictor.core.base import LabelType
from metaPredictor.core.exceptions import DataError
from metaPredictor.data.label import Label
from metaPredictor.evaluation.metrics import (
    BinaryEvaluation,
    RegressionEvaluation,
    classification_counts,
    evaluate_predictions,
    precision_recall,
)


@pytest.fixture
def binary_label():
    return Label(pd.Series([1, 0, 1, 0], index=['a', 'b', 'c', 'd']), LabelType.BINARY, case='case', control='ctr')


def test_classification_counts_by_hand():
    counts = classification_counts(np.array([0.9, 0.8, 0.3, 0.1]), np.array([1, 0, 1, 0]))
    assert counts['threshold'].tolist()[0] == np.inf
    assert counts['tp'].tolist() == [0, 1, 1, 2, 2]
    assert counts['fp'].tolist() == [0, 0, 1, 1, 2]
    assert counts['tn'].tolist() == [2, 2, 1, 1, 0]
    assert counts['fn'].tolist() == [2, 1, 1, 0, 0]


def test_precision_recall_starts_at_full_precision():
    counts = classification_counts(np.array([0.9, 0.8, 0.3, 0.1]), np.array([1, 0, 1, 0]))
    pr = precision_recall(counts)
    assert pr.x[0] == 0.0 and pr.y[0] == 1.0
    assert pr.x[-1] == 1.0 and pr.y[-1] == pytest.approx(0.5)


def test_composite_uses_row_mean(binary_label):
    predictions = pd.DataFrame(
        {'CV_rep1': [0.9, 0.2, 0.4, 0.5], 'CV_rep2': [0.7, 0.4, 0.8, 0.1]},
        index=['a', 'b', 'c', 'd']
    )
    result = evaluate_predictions(predictions, binary_label)
    assert isinstance(result, BinaryEvaluation)
    # row means 0.8, 0.3, 0.6, 0.3 separate the classes
    assert result.auroc == pytest.approx(1.0)
    assert result.auroc_all.tolist() == pytest.approx([0.75, 1.0])
    assert set(result.counts) == {'mean', 'CV_rep1', 'CV_rep2'}
    assert len(result.roc_all) == 2


def test_single_column_has_no_per_column_results(binary_label):
    predictions = pd.DataFrame({'CV_rep1': [0.9, 0.2, 0.4, 0.5]}, index=['a', 'b', 'c', 'd'])
    result = evaluate_predictions(predictions, binary_label)
    assert result.roc_all is None and result.auroc_all is None
    assert result.auroc == pytest.approx(0.75)
    assert 'auroc_all' not in result.summary()


def test_evaluation_is_deterministic_and_order_free(binary_label):
    predictions = pd.DataFrame(
        {'CV_rep1': [0.9, 0.2, 0.4, 0.5], 'CV_rep2': [0.7, 0.4, 0.8, 0.1]},
        index=['a', 'b', 'c', 'd']
    )
    first = evaluate_predictions(predictions, binary_label)
    second = evaluate_predictions(predictions.iloc[::-1], binary_label)
    assert first.summary() == second.summary()
    np.testing.assert_array_equal(first.roc.y, second.roc.y)


def test_alignment_errors(binary_label):
    predictions = pd.DataFrame({'CV_rep1': [0.9, 0.2, 0.4]}, index=['a', 'b', 'c'])
    with pytest.raises(DataError):
        evaluate_predictions(predictions, binary_label)
    with_nan = pd.DataFrame({'CV_rep1': [0.9, np.nan, 0.4, 0.5]}, index=['a', 'b', 'c', 'd'])
    with pytest.raises(DataError):
        evaluate_predictions(with_nan, binary_label)


def test_continuous_evaluation():
    y = pd.Series([1.0, 2.0, 3.0, 4.0], index=['a', 'b', 'c', 'd'])
    label = Label(y, LabelType.CONTINUOUS)
    predictions = pd.DataFrame(
        {'CV_rep1': [1.0, 2.0, 3.0, 4.0], 'CV_rep2': [2.0, 3.0, 4.0, 5.0]},
        index=['a', 'b', 'c', 'd']
    )
    result = evaluate_predictions(predictions, label)
    assert isinstance(result, RegressionEvaluation)
    assert result.r2 == pytest.approx(1.0)
    assert result.mae == pytest.approx(0.5)
    assert result.mse == pytest.approx(0.5)
    assert result.mae_all.tolist() == pytest.approx([0.0, 1.0])


def test_constant_fitted_values_give_undefined_r2():
    label = Label(pd.Series([1.0, 2.0, 3.0], index=['a', 'b', 'c']), LabelType.CONTINUOUS)
    predictions = pd.DataFrame({'CV_rep1': [2.0, 2.0, 2.0], 'CV_rep2': [1.0, 2.0, 3.0]}, index=['a', 'b', 'c'])
    result = evaluate_predictions(predictions, label)
    assert np.isnan(result.r2_all['CV_rep1'])
    assert result.r2 == pytest.approx(1.0)
