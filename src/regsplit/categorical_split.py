"""Split of one categorical feature into one child per category.

No grouping of categories is searched: the only candidate is the partition
that puts every category code in its own child, which is evaluated in a
single pass over the samples.
"""
from __future__ import annotations

import logging
from typing import Union

import numpy as np

from ._validation import (as_1d_float, check_finite, check_same_length,
                          check_split_options, resolve_weights)
from .gain import ImpurityMetric, get_metric
from .split_info import CategoricalAuxiliarySplitInfo, CategoryCount, SplitResult, no_split

logger = logging.getLogger(__name__)


def _category_codes(values, n_categories: int) -> np.ndarray:
    x = as_1d_float(values, "values")
    if n_categories < 1:
        raise ValueError("n_categories must be >= 1")
    codes = x.astype(np.intp) if np.all(np.isfinite(x)) else None
    if codes is None or np.any(codes != x) or np.any(codes < 0) or np.any(codes >= n_categories):
        raise ValueError(f"categorical values must be integer codes in 0..{n_categories - 1}")
    return codes


class AllCategoricalSplit:
    """
    Evaluate the split of a categorical feature into all of its categories.

    Parameters
    ----------
    metric : {"mse", "mad"} or ImpurityMetric, default="mse"
        Gain criterion used to score the children.
    """

    def __init__(self, metric: Union[str, ImpurityMetric] = "mse"):
        self.metric = get_metric(metric)

    def split_if_better(self, best_gain: float, values, n_categories: int, responses,
                        weights=None, *, min_leaf_size: int, min_gain_split: float,
                        use_weights: bool = False) -> SplitResult:
        """
        Split into ``n_categories`` children if that beats ``best_gain`` by
        more than ``min_gain_split``.

        ``values`` holds category codes ``0 .. n_categories - 1``.  Every
        category must receive at least ``min_leaf_size`` samples.  The
        children's gains are combined weighted by their weight sums (sample
        counts when ``use_weights=False``).

        Returns a :class:`SplitResult` carrying ``CategoryCount(n_categories)``
        on success and ``NO_SPLIT`` otherwise.
        """
        n_categories = int(n_categories)
        y = as_1d_float(responses, "responses")
        codes = _category_codes(values, n_categories)
        check_same_length(y, codes, "responses", "values")
        check_finite(y, "responses")
        w = resolve_weights(y, weights, use_weights)
        min_leaf_size, min_gain_split = check_split_options(min_leaf_size, min_gain_split)
        best_gain = float(best_gain)

        n = y.shape[0]
        if n < min_leaf_size * n_categories:
            logger.debug("categorical split rejected: %d samples for %d categories, "
                         "min_leaf_size=%d", n, n_categories, min_leaf_size)
            return no_split()

        counts = np.bincount(codes, minlength=n_categories)
        if counts.min() < min_leaf_size:
            logger.debug("categorical split rejected: smallest category has %d samples",
                         int(counts.min()))
            return no_split()

        # Group samples by category so each child is one contiguous range.
        order = np.argsort(codes, kind="mergesort")
        ys = y[order]
        ws = w[order]
        ends = np.cumsum(counts)
        total = float(w.sum())

        gain = 0.0
        if total > 0.0:
            start = 0
            for end in ends:
                end = int(end)
                child_gain = self.metric.evaluate(ys[start:end], ws[start:end], use_weights=True)
                gain += float(ws[start:end].sum()) / total * child_gain
                start = end

        if not gain > best_gain + min_gain_split:
            logger.debug("categorical split rejected: gain %.6g does not beat %.6g + %.3g",
                         gain, best_gain, min_gain_split)
            return no_split()

        logger.debug("categorical split accepted: %d children, gain=%.6g", n_categories, gain)
        return SplitResult(gain, CategoryCount(n_categories), CategoricalAuxiliarySplitInfo())


def all_categorical_split(best_gain: float, values, n_categories: int, responses,
                          weights=None, *, min_leaf_size: int, min_gain_split: float,
                          use_weights: bool = False,
                          metric: Union[str, ImpurityMetric] = "mse") -> SplitResult:
    """Functional form of :meth:`AllCategoricalSplit.split_if_better`."""
    return AllCategoricalSplit(metric).split_if_better(
        best_gain, values, n_categories, responses, weights,
        min_leaf_size=min_leaf_size, min_gain_split=min_gain_split,
        use_weights=use_weights)
