"""Regression gain criteria for decision-tree split search.

A gain is the negated impurity of a set of responses: a perfectly pure set
has gain 0, anything else is negative.  Two criteria are provided:

- :class:`MSEGain` -- negated (weighted) variance.
- :class:`MADGain` -- negated (weighted) mean absolute deviation from the mean.

Note that, due to floating-point rounding, a pure set can evaluate to a gain
slightly greater than 0.  Test for perfect fit with ``gain >= 0.0``.
"""
from __future__ import annotations

from typing import Optional, Union

import numpy as np

from ._validation import as_1d_float, check_range, resolve_weights

# ----------------------------- Helpers -----------------------------

class _Fenwick:
    """Binary indexed tree over ``n`` slots holding running sums."""

    def __init__(self, n: int):
        self.n = n
        self.tree = np.zeros(n + 1, dtype=float)

    def add(self, pos: int, value: float) -> None:
        i = pos + 1
        while i <= self.n:
            self.tree[i] += value
            i += i & (-i)

    def prefix(self, count: int) -> float:
        """Sum of the first ``count`` slots."""
        s = 0.0
        i = count
        while i > 0:
            s += self.tree[i]
            i -= i & (-i)
        return s


# ----------------------------- Metrics -----------------------------

class ImpurityMetric:
    """Base class of the regression gain criteria.

    Subclasses implement :meth:`_evaluate_range` (gain of one contiguous,
    already validated range) and :meth:`split_gains` (gain of every binary
    split of an ordered sequence).
    """

    name: str = ""

    def evaluate(self, responses, weights=None, start: Optional[int] = None,
                 end: Optional[int] = None, *, use_weights: bool = False) -> float:
        """
        Evaluate the gain of ``responses[start:end + 1]``.

        Parameters
        ----------
        responses : array-like of shape (n,)
            Response values of the node.
        weights : array-like of shape (n,), optional
            Per-sample weights.  Only read when ``use_weights=True``.
        start, end : int, optional
            Inclusive index range.  When both are omitted the whole vector is
            evaluated and an empty vector has gain 0.
        use_weights : bool, default=False
            Whether to use weighted statistics.

        Returns
        -------
        float
            The gain, ``<= 0`` up to rounding.

        Raises
        ------
        ValueError
            On mismatched lengths or an invalid index range.
        """
        y = as_1d_float(responses, "responses")
        w = resolve_weights(y, weights, use_weights)
        if start is None and end is None:
            if y.shape[0] == 0:
                return 0.0
            start, end = 0, y.shape[0] - 1
        elif start is None or end is None:
            raise ValueError("start and end must be given together")
        check_range(start, end, y.shape[0])
        return self._evaluate_range(y[start:end + 1], w[start:end + 1])

    def _evaluate_range(self, y: np.ndarray, w: np.ndarray) -> float:
        raise NotImplementedError

    def split_gains(self, responses: np.ndarray, weights: np.ndarray) -> np.ndarray:
        """
        Combined gain of every binary split of an ordered sequence.

        Entry ``i`` of the result is the gain of splitting after position
        ``i``: the left child holds ``[0, i]`` and the right child
        ``[i + 1, n - 1]``.  Child gains are combined weighted by the child
        weight sums, ``(W_L * gain_L + W_R * gain_R) / W``.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MSEGain(ImpurityMetric):
    """Negated (weighted) variance of the responses."""

    name = "mse"

    def _evaluate_range(self, y: np.ndarray, w: np.ndarray) -> float:
        sw = float(w.sum())
        if sw == 0.0:
            return 0.0
        mean = float((w * y).sum()) / sw
        d = y - mean
        return -float((w * d * d).sum()) / sw

    def split_gains(self, responses: np.ndarray, weights: np.ndarray) -> np.ndarray:
        y = np.asarray(responses, dtype=float)
        w = np.asarray(weights, dtype=float)
        n = y.shape[0]
        if n < 2:
            return np.empty(0, dtype=float)
        total = float(w.sum())
        if total == 0.0:
            return np.zeros(n - 1, dtype=float)
        # Centre on the node mean so that sum(wy^2) - (sum wy)^2 / sum w
        # does not cancel catastrophically.
        yc = y - float((w * y).sum()) / total
        wy = w * yc
        wy2 = wy * yc

        swL = np.cumsum(w)[:-1]
        syL = np.cumsum(wy)[:-1]
        sy2L = np.cumsum(wy2)[:-1]
        # Suffix sums accumulated from the right rather than total - prefix.
        swR = np.cumsum(w[::-1])[::-1][1:]
        syR = np.cumsum(wy[::-1])[::-1][1:]
        sy2R = np.cumsum(wy2[::-1])[::-1][1:]

        with np.errstate(divide="ignore", invalid="ignore"):
            sseL = np.where(swL > 0.0, sy2L - syL * syL / swL, 0.0)
            sseR = np.where(swR > 0.0, sy2R - syR * syR / swR, 0.0)
        sse = np.maximum(sseL, 0.0) + np.maximum(sseR, 0.0)
        return -sse / total


class MADGain(ImpurityMetric):
    """Negated (weighted) mean absolute deviation from the mean."""

    name = "mad"

    def _evaluate_range(self, y: np.ndarray, w: np.ndarray) -> float:
        sw = float(w.sum())
        if sw == 0.0:
            return 0.0
        mean = float((w * y).sum()) / sw
        return -float((w * np.abs(y - mean)).sum()) / sw

    def split_gains(self, responses: np.ndarray, weights: np.ndarray) -> np.ndarray:
        y = np.asarray(responses, dtype=float)
        w = np.asarray(weights, dtype=float)
        n = y.shape[0]
        if n < 2:
            return np.empty(0, dtype=float)
        total = float(w.sum())
        if total == 0.0:
            return np.zeros(n - 1, dtype=float)

        # Rank of every response among the node's responses.
        order = np.argsort(y, kind="mergesort")
        sorted_y = y[order]
        rank = np.empty(n, dtype=np.intp)
        rank[order] = np.arange(n)

        left = self._sweep(y[:-1], w[:-1], rank[:-1], sorted_y)
        right = self._sweep(y[:0:-1], w[:0:-1], rank[:0:-1], sorted_y)[::-1]
        return -(left + right) / total

    @staticmethod
    def _sweep(y: np.ndarray, w: np.ndarray, rank: np.ndarray,
               sorted_y: np.ndarray) -> np.ndarray:
        # After adding element k, out[k] = sum_j w_j |y_j - m| over the
        # elements added so far, m being their weighted mean.  Elements below
        # m contribute m * W_below - S_below, the rest S_above - m * W_above.
        n = sorted_y.shape[0]
        tw = _Fenwick(n)
        twy = _Fenwick(n)
        out = np.empty(y.shape[0], dtype=float)
        sw = 0.0
        swy = 0.0
        for k in range(y.shape[0]):
            wk = float(w[k])
            yk = float(y[k])
            tw.add(int(rank[k]), wk)
            twy.add(int(rank[k]), wk * yk)
            sw += wk
            swy += wk * yk
            if sw <= 0.0:
                out[k] = 0.0
                continue
            m = swy / sw
            below = int(np.searchsorted(sorted_y, m, side="right"))
            w_below = tw.prefix(below)
            s_below = twy.prefix(below)
            dev = (m * w_below - s_below) + ((swy - s_below) - m * (sw - w_below))
            out[k] = dev if dev > 0.0 else 0.0
        return out


_METRICS = {
    "mse": MSEGain,
    "mad": MADGain,
}


def get_metric(metric: Union[str, ImpurityMetric]) -> ImpurityMetric:
    """Resolve ``"mse"``/``"mad"`` (or an :class:`ImpurityMetric`) to an instance."""
    if isinstance(metric, ImpurityMetric):
        return metric
    key = str(metric).lower()
    if key not in _METRICS:
        raise ValueError(f"Unknown criterion {metric!r}; expected one of {sorted(_METRICS)}")
    return _METRICS[key]()
