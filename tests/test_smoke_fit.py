import numpy as np
from regsplit import RegressionTree, BestBinaryNumericSplit, AllCategoricalSplit, MSEGain

def test_regressor_smoke():
    X = np.array([[1.0,'A'],[2.0,'A'],[3.0,'B'],[4.0,'B']], dtype=object)
    y = np.array([1.0, 1.5, 2.0, 2.5])
    regr = RegressionTree(categorical_features=[1], feature_names=['num','cat'], min_samples_leaf=1)
    regr.fit(X,y)
    _ = regr.predict(X)
    _ = regr.export_rules(feature_names=['num','cat'])

def test_driver_contract_smoke():
    # baseline gain, then each feature with the best gain so far
    y = np.array([1.0, 1.0, 1.0, 5.0, 5.0, 5.0])
    num = np.array([0.1, 0.2, 0.3, 0.7, 0.8, 0.9])
    cat = np.array([0, 1, 0, 1, 0, 1], dtype=float)
    best = MSEGain().evaluate(y)
    r1 = BestBinaryNumericSplit().split_if_better(best, num, y, min_leaf_size=1, min_gain_split=1e-7)
    r2 = AllCategoricalSplit().split_if_better(r1.gain, cat, 2, y, min_leaf_size=1, min_gain_split=1e-7)
    assert r1.is_split and not r2.is_split
