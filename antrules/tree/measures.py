"""Error statistics and quality measures of decision trees."""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import Optional

import numpy as np
from sklearn.metrics import accuracy_score

from antrules.cost import Cost
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.stats import estimated_errors
from antrules.tree._node import InternalNode
from antrules.tree._node import Node
from antrules.tree._node import Tree
from antrules.tree._node import majority


def error(distribution: np.ndarray, prediction: Optional[int] = None) -> float:
    """Weight of the instances not belonging to the predicted class, the
    majority class when no prediction is given."""
    if prediction is None:
        prediction = majority(distribution)
    return float(distribution.sum() - distribution[prediction])


def estimated(distribution: np.ndarray, prediction: Optional[int] = None) -> float:
    """Observed error plus the C4.5 upper confidence estimate of the extra
    errors."""
    observed: float = error(distribution, prediction)
    return observed + estimated_errors(float(distribution.sum()), observed)


def node_error(node: Node) -> float:
    if node.is_leaf():
        return error(node.distribution, node.prediction)
    return sum(node_error(child) for child in node.children)


def node_estimated(node: Node) -> float:
    if node.is_leaf():
        return estimated(node.distribution, node.prediction)
    internal: InternalNode = node
    return sum(node_estimated(child) for child in internal.children)


class TreeMeasure(ABC):

    @abstractmethod
    def evaluate(self, dataset: Dataset, tree: Tree) -> Cost:
        pass


class TreeAccuracy(TreeMeasure):
    """Fraction of the training instances correctly classified."""

    def evaluate(self, dataset: Dataset, tree: Tree) -> Cost:
        predicted: np.ndarray = tree.predict_values(
            dataset.values, dataset.class_length()
        )
        return Maximise(accuracy_score(dataset.target, predicted))


class TreePessimisticAccuracy(TreeMeasure):
    """One minus the estimated errors of the leaves over the number of
    training instances."""

    def evaluate(self, dataset: Dataset, tree: Tree) -> Cost:
        total: int = dataset.size()
        return Maximise((total - node_estimated(tree.root)) / total)


def tree_measure(name: str) -> TreeMeasure:
    if name == "accuracy":
        return TreeAccuracy()
    if name == "pessimistic":
        return TreePessimisticAccuracy()
    raise ValueError(f"Unknown tree measure: {name}")
