"""Pick the best split of one node by hand, the way RegressionTree does per node."""
import numpy as np

from regsplit import AllCategoricalSplit, BestBinaryNumericSplit, MSEGain

rng = np.random.default_rng(0)
n = 200
size = rng.uniform(20, 200, n)              # numeric feature
district = rng.integers(0, 4, n)            # categorical feature, 4 codes
price = 1.5 * size + 40 * (district == 2) + rng.normal(0, 10, n)

metric = MSEGain()
features = {
    "size": (BestBinaryNumericSplit(metric), (size,)),
    "district": (AllCategoricalSplit(metric), (district, 4)),
}

best_gain = metric.evaluate(price)
print(f"node gain: {best_gain:.2f}")
best = None
for name, (finder, args) in features.items():
    result = finder.split_if_better(best_gain, *args, price, min_leaf_size=5, min_gain_split=1e-7)
    print(f"{name:>8}: {'gain %.2f' % result.gain if result.is_split else 'no split'}")
    if result.is_split:
        best, best_gain = (name, result), result.gain

if best is None:
    print("leaf")
else:
    name, result = best
    print(f"split on {name}: {result.split} into {result.num_children} children")
