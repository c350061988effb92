"""Precondition checks shared by the split finders.

Malformed input is a caller bug, so every check raises ``ValueError``
immediately instead of degrading to a "no split" answer.
"""
from __future__ import annotations

import numpy as np


def as_1d_float(a, name: str) -> np.ndarray:
    arr = np.asarray(a, dtype=float)
    if arr.ndim != 1:
        raise ValueError(f"{name} must be 1-dimensional, got shape {arr.shape}")
    return arr


def check_same_length(a: np.ndarray, b: np.ndarray, name_a: str, name_b: str) -> None:
    if a.shape[0] != b.shape[0]:
        raise ValueError(f"{name_b} must have the same length as {name_a} "
                         f"({b.shape[0]} != {a.shape[0]})")


def check_range(start: int, end: int, n: int) -> None:
    if not (0 <= start <= end < n):
        raise ValueError(f"invalid index range [{start}, {end}] for {n} responses")


def check_split_options(min_leaf_size: int, min_gain_split: float) -> tuple[int, float]:
    min_leaf_size = int(min_leaf_size)
    min_gain_split = float(min_gain_split)
    if min_leaf_size < 1:
        raise ValueError("min_leaf_size must be >= 1")
    if not min_gain_split >= 0.0:
        raise ValueError("min_gain_split must be >= 0")
    return min_leaf_size, min_gain_split


def check_finite(a: np.ndarray, name: str) -> None:
    if not np.all(np.isfinite(a)):
        raise ValueError(f"{name} must not contain NaN or infinite values")


def check_weights(w: np.ndarray) -> None:
    check_finite(w, "weights")
    if np.any(w < 0.0):
        raise ValueError("weights must be non-negative")


def resolve_weights(y: np.ndarray, weights, use_weights: bool) -> np.ndarray:
    """Weights to use for ``y``; unit weights when ``use_weights`` is off."""
    if not use_weights:
        return np.ones(y.shape[0], dtype=float)
    if weights is None:
        raise ValueError("weights are required when use_weights=True")
    w = as_1d_float(weights, "weights")
    check_same_length(y, w, "responses", "weights")
    check_weights(w)
    return w
