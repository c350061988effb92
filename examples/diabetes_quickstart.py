import logging
from time import perf_counter

from sklearn.datasets import load_diabetes
from sklearn.model_selection import train_test_split
from regsplit import RegressionTree

logging.basicConfig(level=logging.INFO)

data = load_diabetes()
X_train, X_test, y_train, y_test = train_test_split(
    data.data, data.target, test_size=0.25, random_state=42)
feats = list(data.feature_names)

for criterion in ("mse", "mad"):
    reg = RegressionTree(criterion=criterion, min_samples_leaf=10, max_depth=4,
                         feature_names=feats)
    t0 = perf_counter(); reg.fit(X_train, y_train); print(f"{criterion} fit: {perf_counter()-t0:.3f} s")
    print(f"{criterion} test R^2: {reg.score(X_test, y_test):.3f} ({reg.n_leaves_} leaves)")

try:
    reg.export_graphviz("diabetes_tree", format="dot")
except RuntimeError as e:
    print(f"Skipping Graphviz export: {e}")
reg.print_tree()
