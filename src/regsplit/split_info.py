"""Split outcomes produced by the split finders.

A split search either fails, or yields the parameters the tree driver needs
to create children and to route new samples:

- :class:`Threshold` -- binary numeric split; ``value <= threshold`` goes to
  child 0, everything else to child 1.
- :class:`CategoryCount` -- n-ary categorical split with one child per
  category code ``0 .. n_categories - 1``.
- :data:`NO_SPLIT` -- the search did not find a split worth making.

Each finder also produces an auxiliary object holding any feature-specific
state needed for routing; the driver only hands it back when routing.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Union

import numpy as np

# Gain reported when no split was made.
NO_SPLIT_GAIN: float = float(np.finfo(float).max)


@dataclass(frozen=True)
class Threshold:
    value: float

    @property
    def num_children(self) -> int:
        return 2

    def calculate_direction(self, value: float) -> int:
        return 0 if value <= self.value else 1


@dataclass(frozen=True)
class CategoryCount:
    n_categories: int

    @property
    def num_children(self) -> int:
        return self.n_categories

    def calculate_direction(self, value) -> int:
        code = int(value)
        if code != value or not 0 <= code < self.n_categories:
            raise ValueError(f"category {value!r} outside 0..{self.n_categories - 1}")
        return code


class NoSplit:
    """Marker for a rejected split search."""

    _instance: Optional["NoSplit"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def num_children(self) -> int:
        return 0

    def calculate_direction(self, value) -> int:
        raise ValueError("cannot route a sample through a node that was not split")

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NO_SPLIT"


NO_SPLIT = NoSplit()

SplitInfo = Union[Threshold, CategoryCount, NoSplit]


@dataclass(frozen=True)
class NumericAuxiliarySplitInfo:
    """Routing state of a numeric split; the threshold alone suffices."""

    def calculate_direction(self, value: float, split: Threshold) -> int:
        return split.calculate_direction(value)


@dataclass(frozen=True)
class CategoricalAuxiliarySplitInfo:
    """Routing state of a categorical split; codes map directly to children."""

    def calculate_direction(self, value, split: CategoryCount) -> int:
        return split.calculate_direction(value)


AuxiliarySplitInfo = Union[NumericAuxiliarySplitInfo, CategoricalAuxiliarySplitInfo]


class SplitResult(NamedTuple):
    """Outcome of ``split_if_better``."""
    gain: float                         # NO_SPLIT_GAIN if no split was made
    split: SplitInfo
    aux: Optional[AuxiliarySplitInfo]   # None if no split was made

    @property
    def is_split(self) -> bool:
        return not isinstance(self.split, NoSplit)

    @property
    def num_children(self) -> int:
        return self.split.num_children

    def calculate_direction(self, value) -> int:
        """Child index for a sample whose feature value is ``value``."""
        if self.aux is None:
            return self.split.calculate_direction(value)
        return self.aux.calculate_direction(value, self.split)


def no_split() -> SplitResult:
    return SplitResult(NO_SPLIT_GAIN, NO_SPLIT, None)
