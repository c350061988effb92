# regsplit/__init__.py
"""
regsplit: split selection for regression decision trees.

Exports:
    - MSEGain, MADGain, get_metric
    - BestBinaryNumericSplit, AllCategoricalSplit
    - Threshold, CategoryCount, NO_SPLIT, NO_SPLIT_GAIN, SplitResult
    - RegressionTree
"""
from .gain import ImpurityMetric, MSEGain, MADGain, get_metric
from .split_info import (NO_SPLIT, NO_SPLIT_GAIN, CategoricalAuxiliarySplitInfo,
                         CategoryCount, NoSplit, NumericAuxiliarySplitInfo,
                         SplitResult, Threshold)
from .numeric_split import BestBinaryNumericSplit, best_binary_numeric_split
from .categorical_split import AllCategoricalSplit, all_categorical_split
from .regressor import RegressionTree

__all__ = [
    "ImpurityMetric", "MSEGain", "MADGain", "get_metric",
    "NO_SPLIT", "NO_SPLIT_GAIN", "NoSplit", "Threshold", "CategoryCount",
    "NumericAuxiliarySplitInfo", "CategoricalAuxiliarySplitInfo", "SplitResult",
    "BestBinaryNumericSplit", "best_binary_numeric_split",
    "AllCategoricalSplit", "all_categorical_split",
    "RegressionTree",
]
__version__ = "0.1.0"
