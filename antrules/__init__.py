"""
Package implementing ant colony optimization algorithms for the induction of
classification models: ordered rule lists (Ant-Miner, cAnt-Miner PB and its
archive based variant), unordered rule sets and decision trees (Ant-Tree-Miner).

Models handle both nominal and numerical attributes and follow the scikit-learn
estimator interface.
"""
