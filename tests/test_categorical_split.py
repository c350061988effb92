import numpy as np
import pytest
from regsplit import (MADGain, MSEGain, NO_SPLIT, NO_SPLIT_GAIN, AllCategoricalSplit,
                      CategoricalAuxiliarySplitInfo, CategoryCount, all_categorical_split)


def test_simple_split():
    values = np.array([0, 0, 0, 1, 1, 1, 2, 2, 2, 3, 3, 3], dtype=float)
    responses = np.array([10, 10, 10, 20, 20, 20, 10, 10, 10, 20, 20, 20], dtype=float)
    weights = np.ones(12)
    finder = AllCategoricalSplit(MSEGain())

    best_gain = MSEGain().evaluate(responses)
    result = finder.split_if_better(best_gain, values, 4, responses, weights,
                                    min_leaf_size=3, min_gain_split=1e-7)
    weighted = finder.split_if_better(best_gain, values, 4, responses, weights,
                                      min_leaf_size=3, min_gain_split=1e-7, use_weights=True)

    # a split was made and it is perfect
    assert result.gain > best_gain
    assert result.gain == pytest.approx(0.0, abs=1e-7)
    assert result.gain == weighted.gain
    # the split info now holds the number of children
    assert result.split == CategoryCount(4)
    assert result.num_children == 4
    assert isinstance(result.aux, CategoricalAuxiliarySplitInfo)


def test_min_samples():
    values = np.array([0, 0, 0, 1, 1, 1, 2, 2, 2, 3, 3, 3], dtype=float)
    responses = np.array([10, 10, 10, 20, 20, 20, 30, 30, 30, 40, 40, 40], dtype=float)
    finder = AllCategoricalSplit(MADGain())

    best_gain = MADGain().evaluate(responses)
    result = finder.split_if_better(best_gain, values, 4, responses,
                                    min_leaf_size=4, min_gain_split=1e-7)
    assert result.gain == NO_SPLIT_GAIN
    assert result.split is NO_SPLIT


def test_no_gain():
    # Every category holds the same three responses.
    values = np.repeat(np.arange(100) % 10, 3).astype(float)
    responses = np.tile([10.0, 20.0, 30.0], 100)
    weights = np.ones(300)
    finder = AllCategoricalSplit(MSEGain())

    best_gain = MSEGain().evaluate(responses)
    result = finder.split_if_better(best_gain, values, 10, responses, weights,
                                    min_leaf_size=10, min_gain_split=1e-7)
    weighted = finder.split_if_better(best_gain, values, 10, responses, weights,
                                      min_leaf_size=10, min_gain_split=1e-7, use_weights=True)
    assert result.gain == NO_SPLIT_GAIN
    assert weighted.gain == NO_SPLIT_GAIN
    assert result.split is NO_SPLIT


def test_weighted_gain():
    values = np.array([0, 0, 1, 1], dtype=float)
    responses = np.array([0.0, 2.0, 5.0, 5.0])
    weights = np.array([1.0, 3.0, 2.0, 2.0])
    # category 0: weighted mean 1.5, weighted variance 0.75, half of the weight
    result = AllCategoricalSplit("mse").split_if_better(
        -10.0, values, 2, responses, weights, min_leaf_size=1, min_gain_split=0.0,
        use_weights=True)
    assert result.gain == pytest.approx(-0.375)

    unweighted = AllCategoricalSplit("mse").split_if_better(
        -10.0, values, 2, responses, weights, min_leaf_size=1, min_gain_split=0.0)
    assert unweighted.gain == pytest.approx(-0.5)


def test_too_few_samples_for_categories():
    values = np.array([0, 0, 1, 1, 2], dtype=float)
    responses = np.array([1.0, 1.0, 5.0, 5.0, 9.0])
    result = AllCategoricalSplit().split_if_better(
        -100.0, values, 3, responses, min_leaf_size=2, min_gain_split=0.0)
    assert result.split is NO_SPLIT


def test_empty_category():
    # category 2 never occurs
    values = np.array([0, 0, 1, 1], dtype=float)
    responses = np.array([1.0, 1.0, 5.0, 5.0])
    result = AllCategoricalSplit().split_if_better(
        -100.0, values, 3, responses, min_leaf_size=1, min_gain_split=0.0)
    assert result.split is NO_SPLIT


def test_idempotent():
    values = np.array([0, 1, 2, 0, 1, 2], dtype=float)
    responses = np.array([1.0, 4.0, 9.0, 1.5, 4.5, 8.0])
    best_gain = MADGain().evaluate(responses)
    a = all_categorical_split(best_gain, values, 3, responses, min_leaf_size=2,
                              min_gain_split=1e-7, metric="mad")
    b = all_categorical_split(best_gain, values, 3, responses, min_leaf_size=2,
                              min_gain_split=1e-7, metric="mad")
    assert a == b
    assert a.is_split


@pytest.mark.parametrize("values", [
    [0.0, 1.0, 3.0],     # code out of range
    [0.0, -1.0, 1.0],    # negative code
    [0.0, 0.5, 1.0],     # not an integer
    [0.0, np.nan, 1.0],  # missing
])
def test_invalid_codes(values):
    with pytest.raises(ValueError):
        AllCategoricalSplit().split_if_better(
            -1.0, np.array(values), 3, np.arange(3.0), min_leaf_size=1, min_gain_split=0.0)


def test_length_mismatch():
    with pytest.raises(ValueError):
        AllCategoricalSplit().split_if_better(
            -1.0, np.array([0.0, 1.0]), 2, np.arange(3.0), min_leaf_size=1, min_gain_split=0.0)


def test_nonfinite_responses():
    values = np.array([0, 0, 1, 1], dtype=float)
    responses = np.array([1.0, np.nan, 5.0, 5.0])
    with pytest.raises(ValueError):
        AllCategoricalSplit().split_if_better(
            -100.0, values, 2, responses, min_leaf_size=1, min_gain_split=0.0)
