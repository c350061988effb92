"""Regression tree driven by the gain criteria and split finders.

Every node tries each feature in turn, handing the best gain found so far to
the split finder of that feature's kind; the last accepted split wins.
Numeric features get a binary threshold split, categorical features an n-ary
split with one child per category.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin

from .categorical_split import AllCategoricalSplit
from .gain import get_metric
from .numeric_split import BestBinaryNumericSplit
from .split_info import SplitResult, Threshold

logger = logging.getLogger(__name__)

# ----------------------------- Helpers -----------------------------

def _isnan_scalar(v: Any) -> bool:
    if v is None:
        return True
    try:
        return bool(np.isnan(v))
    except (TypeError, ValueError):
        return False

def _as_float_array(a) -> np.ndarray:
    return np.asarray(a, dtype=float)

def _wmean(y: np.ndarray, w: np.ndarray) -> float:
    sw = float(w.sum())
    if sw <= 0.0:
        return 0.0
    return float((w * y).sum() / sw)

def _route(split: SplitResult, col: np.ndarray) -> np.ndarray:
    # Vectorised split.calculate_direction over a column of encoded values.
    if isinstance(split.split, Threshold):
        return np.where(col <= split.split.value, 0, 1)
    return col.astype(np.intp)

# ----------------------------- Node -----------------------------

@dataclass
class RegrNode:
    node_id: int
    predicted_value: float
    n_samples: float
    gain: float
    feature_index: Optional[int] = None
    split: Optional[SplitResult] = None
    children: List["RegrNode"] = field(default_factory=list)

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def n_leaves(self) -> int:
        if self.is_leaf:
            return 1
        return sum(ch.n_leaves for ch in self.children)

    @property
    def depth(self) -> int:
        if self.is_leaf:
            return 0
        return 1 + max(ch.depth for ch in self.children)

# ----------------------------- Regressor -----------------------------

class RegressionTree(RegressorMixin, BaseEstimator):
    r"""
    RegressionTree(criterion="mse", min_samples_leaf=1, min_gain_split=1e-7,
                   max_depth=None, categorical_features=None, feature_names=None)

    A regression tree with a scikit-learn style API.

    **Core behavior**

    - **Split criterion**: ``"mse"`` (negated variance) or ``"mad"`` (negated
      mean absolute deviation), weighted by ``sample_weight`` when given.
    - **Numeric features**: binary split at the midpoint between two distinct
      sorted values, found in O(n log n).
    - **Categorical features**: n-ary split with one child per category seen
      during fitting.  Every category must keep ``min_samples_leaf`` samples.
    - **Stopping**: a node becomes a leaf when it is pure, when ``max_depth``
      is reached, or when no feature improves the node's gain by more than
      ``min_gain_split``.

    Parameters
    ----------
    criterion : {"mse", "mad"}, default="mse"
        Gain criterion.
    min_samples_leaf : int, default=1
        Minimum number of samples in every child.
    min_gain_split : float, default=1e-7
        Minimum gain improvement required to accept a split.
    max_depth : int, optional
        Maximum depth of the tree; unbounded if ``None``.  Nodes are built
        recursively, so an unbounded tree on data that peels off a few samples
        per split can reach Python's recursion limit; set ``max_depth`` then.
    categorical_features : sequence of int or str, optional
        Indices or names of categorical columns; requires ``feature_names``
        when given by name.  Categorical columns may hold any hashable values.
    feature_names : sequence of str, optional
        Column names, used by ``categorical_features`` and in textual exports.

    Attributes
    ----------
    tree_ : RegrNode
        Root of the fitted tree.
    is_cat_ : ndarray of shape (n_features,)
        Boolean mask of categorical features.
    categories_ : dict[int, tuple]
        Per categorical feature, the categories in code order.
    n_features_in_ : int
        Number of features seen during ``fit``.
    """

    def __init__(self,
                 criterion: str = "mse",
                 min_samples_leaf: int = 1,
                 min_gain_split: float = 1e-7,
                 max_depth: Optional[int] = None,
                 categorical_features: Optional[Iterable[int | str]] = None,
                 feature_names: Optional[List[str]] = None):
        self.criterion = criterion
        self.min_samples_leaf = min_samples_leaf
        self.min_gain_split = min_gain_split
        self.max_depth = max_depth
        self.categorical_features = categorical_features
        self.feature_names = feature_names

    # ----------------------------- Public API -----------------------------

    def fit(self, X, y, sample_weight: Optional[np.ndarray] = None):
        X = np.asarray(X, dtype=object)
        y = _as_float_array(y)
        if X.ndim != 2:
            raise ValueError("X must be 2-dimensional")
        n, m = X.shape
        if y.shape != (n,):
            raise ValueError("y must have one value per row of X")
        if not np.all(np.isfinite(y)):
            raise ValueError("y must not contain NaN or infinite values")
        self.use_weights_ = sample_weight is not None
        if self.use_weights_:
            w = _as_float_array(sample_weight).copy()
            if w.shape != (n,):
                raise ValueError("sample_weight must have same length as y")
        else:
            w = np.ones(n, dtype=float)

        if self.feature_names is not None and len(self.feature_names) != m:
            raise ValueError("feature_names length must match X.shape[1]")
        self.feature_names_ = list(self.feature_names) if self.feature_names is not None else None
        self.n_features_in_ = m

        self.metric_ = get_metric(self.criterion)
        self._numeric = BestBinaryNumericSplit(self.metric_)
        self._categorical = AllCategoricalSplit(self.metric_)
        self.is_cat_ = self._categorical_mask(m)
        Z = self._encode_fit(X)

        self._next_id = 0
        self.tree_ = self._build_tree(Z, y, w, np.arange(n), depth=0)
        logger.info("fitted %s tree: %d leaves, depth %d", self.metric_.name,
                    self.tree_.n_leaves, self.tree_.depth)
        return self

    def predict(self, X):
        X = self._check_predict_input(X)
        out = np.empty(X.shape[0], dtype=float)
        for i, x in enumerate(X):
            out[i] = self._find_node(x, self.tree_).predicted_value
        return out

    def apply(self, X):
        """Return the id of the node each sample ends in."""
        X = self._check_predict_input(X)
        return np.array([self._find_node(x, self.tree_).node_id for x in X], dtype=int)

    @property
    def n_leaves_(self) -> int:
        self._check_fitted()
        return self.tree_.n_leaves

    @property
    def depth_(self) -> int:
        self._check_fitted()
        return self.tree_.depth

    # ----------------------------- Pretty / Rules / Graphviz -----------------------------

    def _maybe_feature_names(self, feature_names):
        return feature_names if feature_names is not None else getattr(self, "feature_names_", None)

    def _feature_name(self, j: int, fn) -> str:
        return fn[j] if (fn is not None and 0 <= j < len(fn)) else f"X[{j}]"

    def _condition(self, node: RegrNode, child: int, fn) -> str:
        name = self._feature_name(node.feature_index, fn)
        split = node.split.split
        if isinstance(split, Threshold):
            op = "<=" if child == 0 else ">"
            return f"{name} {op} {split.value:.6g}"
        return f"{name} == {self.categories_[node.feature_index][child]!r}"

    def print_tree(self, feature_names: Optional[List[str]] = None) -> None:
        """
        Pretty-print the fitted regression tree to ``stdout``.

        Parameters
        ----------
        feature_names : list[str], optional
            Alternative names for the features.  Defaults to those provided at
            construction time.

        Raises
        ------
        ValueError
            If the estimator has not been fitted.
        """
        self._check_fitted()
        fn = self._maybe_feature_names(feature_names)
        self._print_node(self.tree_, "", fn)

    def _print_node(self, node: RegrNode, indent="", fn=None):
        if node.is_leaf:
            print(f"{indent}Predict {node.predicted_value:.4f} (N={node.n_samples:.2f})")
            return
        for c, child in enumerate(node.children):
            print(f"{indent}{'if' if c == 0 else 'elif'} {self._condition(node, c, fn)}:")
            self._print_node(child, indent + "  ", fn)

    def export_rules(self, feature_names: Optional[List[str]] = None) -> List[str]:
        """
        Export all decision rules in the fitted regression tree.

        Each rule describes a path from the root to a leaf and reports the
        predicted value along with the effective sample weight.

        Returns
        -------
        list[str]
            One string per leaf, of the form
            ``"<antecedent> => value=<prediction> (N=<weight>)"``.

        Raises
        ------
        ValueError
            If the model has not been fitted.
        """
        self._check_fitted()
        fn = self._maybe_feature_names(feature_names)
        rules: List[str] = []
        self._collect_rules(self.tree_, [], rules, fn)
        return rules

    def _collect_rules(self, node: RegrNode, parts: List[str], rules: List[str], fn=None):
        if node.is_leaf:
            antecedent = " AND ".join(parts) if parts else "<root>"
            rules.append(f"{antecedent} => value={node.predicted_value:.6g} (N={node.n_samples:.2f})")
            return
        for c, child in enumerate(node.children):
            self._collect_rules(child, parts + [self._condition(node, c, fn)], rules, fn)

    def predict_rule(self, X: Iterable[Any], feature_names: Optional[List[str]] = None) -> List[str]:
        """
        Return the decision rule antecedent for each input sample.

        A sample whose value is missing, or is a category unseen during
        fitting, stops at that node; the antecedent then ends with
        ``MISSING`` or ``UNSEEN``.

        Raises
        ------
        ValueError
            If the model has not been fitted.
        """
        Xp = self._check_predict_input(X)
        fn = self._maybe_feature_names(feature_names)
        return [self._trace_rule(x, self.tree_, fn) for x in Xp]

    def _trace_rule(self, x, node: RegrNode, fn=None, parts=None) -> str:
        parts = parts or []
        if node.is_leaf:
            return " AND ".join(parts) if parts else "<root>"
        j = node.feature_index
        code = self._encode_value(x[j], j)
        if code is None:
            tag = "MISSING" if _isnan_scalar(x[j]) else "UNSEEN"
            parts.append(f"{self._feature_name(j, fn)} {tag}")
            return " AND ".join(parts)
        c = node.split.calculate_direction(code)
        parts.append(self._condition(node, c, fn))
        return self._trace_rule(x, node.children[c], fn, parts)

    def export_graphviz(self, filename: str = "regression_tree", feature_names: Optional[List[str]] = None,
                        format: str = "png") -> str:
        """
        Export the regression tree to Graphviz format.

        If ``format='dot'`` the DOT source is written directly to disk without
        invoking the external ``dot`` binary.  For other formats the method
        renders through Graphviz.

        Returns
        -------
        str
            Path to the written file.

        Raises
        ------
        ValueError
            If the model has not been fitted.
        RuntimeError
            If the ``graphviz`` Python package is not installed.
        """
        self._check_fitted()
        fn = self._maybe_feature_names(feature_names)
        # import locally to avoid a hard dependency
        try:
            from graphviz import Digraph
        except ImportError as e:
            raise RuntimeError("Please install the 'graphviz' Python package.") from e
        dot = Digraph(comment="RegressionTree", format=format)
        self._add_graph_nodes(dot, self.tree_, fn)
        if format.lower() == "dot":
            path = f"{filename}.dot"
            dot.save(path)
            return path
        return dot.render(filename, cleanup=True)

    def _add_graph_nodes(self, dot, node: RegrNode, fn=None):
        node_id = str(node.node_id)
        if node.is_leaf:
            dot.node(node_id, f"Leaf\nvalue={node.predicted_value:.6g}\nN={node.n_samples:.2f}")
            return
        name = self._feature_name(node.feature_index, fn)
        dot.node(node_id, f"{name}\nN={node.n_samples:.2f}")
        for c, child in enumerate(node.children):
            cond = self._condition(node, c, fn)
            dot.edge(node_id, str(child.node_id), label=cond[len(name) + 1:])
            self._add_graph_nodes(dot, child, fn)

    # ----------------------------- Core training -----------------------------

    def _categorical_mask(self, m: int) -> np.ndarray:
        is_cat = np.zeros(m, dtype=bool)
        if self.categorical_features is None:
            return is_cat
        for f in self.categorical_features:
            if isinstance(f, str):
                if self.feature_names_ is None:
                    raise ValueError("feature_names must be provided when categorical_features are given by name.")
                if f not in self.feature_names_:
                    raise ValueError(f"unknown categorical feature {f!r}")
                is_cat[self.feature_names_.index(f)] = True
            else:
                j = int(f)
                if not 0 <= j < m:
                    raise ValueError(f"categorical feature index {j} out of range")
                is_cat[j] = True
        return is_cat

    def _encode_fit(self, X: np.ndarray) -> np.ndarray:
        n, m = X.shape
        Z = np.empty((n, m), dtype=float)
        self.categories_: Dict[int, Tuple[Any, ...]] = {}
        self._codes: Dict[int, Dict[Any, int]] = {}
        for j in range(m):
            col = X[:, j]
            if any(_isnan_scalar(v) for v in col):
                raise ValueError(f"feature {j} contains missing values")
            if self.is_cat_[j]:
                codes: Dict[Any, int] = {}
                for v in col:
                    codes.setdefault(v, len(codes))
                self._codes[j] = codes
                self.categories_[j] = tuple(codes)
                Z[:, j] = [codes[v] for v in col]
            else:
                try:
                    Z[:, j] = col.astype(float)
                except (TypeError, ValueError) as e:
                    raise ValueError(f"feature {j} is not numeric; "
                                     "declare it in categorical_features") from e
                if not np.all(np.isfinite(Z[:, j])):
                    raise ValueError(f"feature {j} contains infinite values")
        return Z

    def _build_tree(self, Z: np.ndarray, y: np.ndarray, w: np.ndarray,
                    idx: np.ndarray, depth: int) -> RegrNode:
        yy = y[idx]
        ww = w[idx]
        gain = self.metric_.evaluate(yy, ww, use_weights=self.use_weights_)
        node = RegrNode(node_id=self._next_id, predicted_value=_wmean(yy, ww),
                        n_samples=float(ww.sum()), gain=gain)
        self._next_id += 1

        if gain >= 0.0:
            return node
        if self.max_depth is not None and depth >= int(self.max_depth):
            return node

        best: Optional[SplitResult] = None
        best_j = -1
        best_gain = gain
        for j in range(Z.shape[1]):
            col = Z[idx, j]
            if self.is_cat_[j]:
                result = self._categorical.split_if_better(
                    best_gain, col, len(self.categories_[j]), yy, ww,
                    min_leaf_size=self.min_samples_leaf, min_gain_split=self.min_gain_split,
                    use_weights=self.use_weights_)
            else:
                result = self._numeric.split_if_better(
                    best_gain, col, yy, ww,
                    min_leaf_size=self.min_samples_leaf, min_gain_split=self.min_gain_split,
                    use_weights=self.use_weights_)
            if not result.is_split:
                continue
            best, best_j, best_gain = result, j, result.gain
            if best_gain >= 0.0:
                break

        if best is None:
            logger.debug("node %d: leaf with %d samples, gain %.6g", node.node_id, idx.shape[0], gain)
            return node

        directions = _route(best, Z[idx, best_j])
        counts = np.bincount(directions, minlength=best.num_children)
        if counts.shape[0] != best.num_children or counts.min() < self.min_samples_leaf:
            logger.warning("node %d: split %r on feature %d routes %s samples; keeping a leaf",
                           node.node_id, best.split, best_j, counts.tolist())
            return node

        logger.debug("node %d: split on feature %d (%r), gain %.6g -> %.6g",
                     node.node_id, best_j, best.split, gain, best_gain)
        node.feature_index = best_j
        node.split = best
        node.children = [self._build_tree(Z, y, w, idx[directions == c], depth + 1)
                         for c in range(best.num_children)]
        return node

    # ----------------------------- Prediction -----------------------------

    def _check_fitted(self):
        if getattr(self, "tree_", None) is None:
            raise ValueError("Estimator not fitted. Call fit(...) first.")

    def _check_predict_input(self, X) -> np.ndarray:
        self._check_fitted()
        X = np.asarray(X, dtype=object)
        if X.ndim != 2 or X.shape[1] != self.n_features_in_:
            raise ValueError(f"X must have shape (n_samples, {self.n_features_in_})")
        return X

    def _encode_value(self, v, j: int) -> Optional[float]:
        if _isnan_scalar(v):
            return None
        if self.is_cat_[j]:
            code = self._codes[j].get(v)
            return None if code is None else float(code)
        return float(v)

    def _find_node(self, x, node: RegrNode) -> RegrNode:
        if node.is_leaf:
            return node
        code = self._encode_value(x[node.feature_index], node.feature_index)
        if code is None:
            return node
        return self._find_node(x, node.children[node.split.calculate_direction(code)])
