"""Best binary split of one continuous feature.

The samples are sorted by feature value once; the gain criterion then
reports the gain of every prefix/suffix partition of that order in a single
sweep, so a search costs O(n log n) overall.  Only boundaries between two
distinct feature values are candidates, and each side must keep at least
``min_leaf_size`` samples.
"""
from __future__ import annotations

import logging
from typing import Union

import numpy as np

from ._validation import (as_1d_float, check_finite, check_same_length,
                          check_split_options, resolve_weights)
from .gain import ImpurityMetric, get_metric
from .split_info import NumericAuxiliarySplitInfo, SplitResult, Threshold, no_split

logger = logging.getLogger(__name__)


def _midpoint(lo: float, hi: float) -> float:
    # Must satisfy lo <= t < hi so that ``value <= t`` reproduces the scored partition.
    t = lo + 0.5 * (hi - lo)
    if not np.isfinite(t) or t >= hi:
        return lo
    return t


class BestBinaryNumericSplit:
    """
    Find the threshold of a numeric feature that maximises the gain.

    Parameters
    ----------
    metric : {"mse", "mad"} or ImpurityMetric, default="mse"
        Gain criterion used to score the children.
    """

    def __init__(self, metric: Union[str, ImpurityMetric] = "mse"):
        self.metric = get_metric(metric)

    def split_if_better(self, best_gain: float, values, responses, weights=None, *,
                        min_leaf_size: int, min_gain_split: float,
                        use_weights: bool = False) -> SplitResult:
        """
        Split on ``values`` if that beats ``best_gain`` by more than ``min_gain_split``.

        Parameters
        ----------
        best_gain : float
            Gain to beat, usually the gain of the unsplit node or of the best
            split found so far on another feature.
        values : array-like of shape (n,)
            Feature value of every sample.
        responses : array-like of shape (n,)
            Response of every sample.
        weights : array-like of shape (n,), optional
            Sample weights, read only when ``use_weights=True``.
        min_leaf_size : int
            Minimum number of samples in each child.
        min_gain_split : float
            Minimum improvement over ``best_gain``.
        use_weights : bool, default=False
            Whether to use weighted statistics.

        Returns
        -------
        SplitResult
            The combined gain with a :class:`Threshold`, or ``NO_SPLIT_GAIN``
            with ``NO_SPLIT`` if no acceptable split exists.
        """
        x = as_1d_float(values, "values")
        y = as_1d_float(responses, "responses")
        check_same_length(y, x, "responses", "values")
        check_finite(x, "values")
        check_finite(y, "responses")
        w = resolve_weights(y, weights, use_weights)
        min_leaf_size, min_gain_split = check_split_options(min_leaf_size, min_gain_split)
        best_gain = float(best_gain)

        n = y.shape[0]
        if n < 2 * min_leaf_size:
            logger.debug("numeric split rejected: %d samples, min_leaf_size=%d", n, min_leaf_size)
            return no_split()
        # Gains never exceed 0, so a pure node cannot be improved on.
        if best_gain + min_gain_split >= 0.0:
            logger.debug("numeric split rejected: gain to beat %.6g is already perfect", best_gain)
            return no_split()

        order = np.argsort(x, kind="mergesort")
        xs = x[order]
        gains = self.metric.split_gains(y[order], w[order])

        # Position i splits [0, i] from [i + 1, n - 1].
        valid = xs[:-1] != xs[1:]
        valid[:min_leaf_size - 1] = False
        valid[n - min_leaf_size:] = False
        if not valid.any():
            logger.debug("numeric split rejected: no boundary between distinct values")
            return no_split()

        candidates = np.where(valid, gains, -np.inf)
        i = int(np.argmax(candidates))
        gain = float(candidates[i])
        if not gain > best_gain + min_gain_split:
            logger.debug("numeric split rejected: gain %.6g does not beat %.6g + %.3g",
                         gain, best_gain, min_gain_split)
            return no_split()

        threshold = _midpoint(float(xs[i]), float(xs[i + 1]))
        logger.debug("numeric split accepted: threshold=%.6g gain=%.6g", threshold, gain)
        return SplitResult(gain, Threshold(threshold), NumericAuxiliarySplitInfo())


def best_binary_numeric_split(best_gain: float, values, responses, weights=None, *,
                              min_leaf_size: int, min_gain_split: float,
                              use_weights: bool = False,
                              metric: Union[str, ImpurityMetric] = "mse") -> SplitResult:
    """Functional form of :meth:`BestBinaryNumericSplit.split_if_better`."""
    return BestBinaryNumericSplit(metric).split_if_better(
        best_gain, values, responses, weights,
        min_leaf_size=min_leaf_size, min_gain_split=min_gain_split,
        use_weights=use_weights)
