"""Decision tree nodes and the tree model."""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from collections import deque
from typing import Iterator
from typing import Optional

import numpy as np

from antrules.conditions import Condition
from antrules.cost import Cost
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances


class Node(ABC):

    def __init__(self, name: str, level: int):
        self.name: str = name
        self.level: int = level
        self.distribution: np.ndarray = np.zeros(0)
        self.total: float = 0.0

    def set_distribution(self, distribution: np.ndarray):
        self.distribution = distribution
        self.total = float(distribution.sum())

    def set_level(self, level: int):
        self.level = level

    @abstractmethod
    def is_leaf(self) -> bool:
        pass

    def __str__(self) -> str:
        return self.name


class LeafNode(Node):

    def __init__(self, name: str, level: int, prediction: int):
        super().__init__(name, level)
        self.prediction: int = prediction

    def is_leaf(self) -> bool:
        return True


class InternalNode(Node):

    def __init__(self, name: str, attribute: int, level: int, conditions: list[Condition]):
        super().__init__(name, level)
        self.attribute: int = attribute
        self.conditions: list[Condition] = conditions
        self.children: list[Optional[Node]] = [None] * len(conditions)
        #: instances reaching the node, used to recalculate pruned subtrees
        self.coverage: Optional[Instances] = None

    def is_leaf(self) -> bool:
        return False

    def set_level(self, level: int):
        super().set_level(level)
        for child in self.children:
            if child is not None:
                child.set_level(level + 1)

    def frequent_branch(self) -> int:
        """Index of the child with the largest total; ties go to the last
        one."""
        index: int = 0
        for i in range(1, len(self.children)):
            if self.children[i].total >= self.children[index].total:
                index = i
        return index

    def internal_children(self) -> Iterator[tuple[int, InternalNode]]:
        for i, child in enumerate(self.children):
            if not child.is_leaf():
                yield i, child


def encode(node: InternalNode, condition: Condition) -> int:
    """Code of the branch leaving ``node`` through ``condition``."""
    return hash(f"{node.name}{condition}{node.level}")


START_CODE: int = hash("[START]")


def coverage_distribution(dataset: Dataset, instances: Instances) -> np.ndarray:
    """Weighted class distribution of the RULE_COVERED instances."""
    return dataset.distribution(instances.mask(Flag.RULE_COVERED), instances.weight)


def majority(distribution: np.ndarray) -> int:
    return int(np.argmax(distribution)) if len(distribution) > 0 else 0


def partition(
    dataset: Dataset, instances: Instances, conditions: list[Condition]
) -> tuple[list[Instances], np.ndarray, list[np.ndarray]]:
    """Splits the RULE_COVERED instances over the branches of a node.
    Instances with a missing value follow every branch, with their weight
    scaled by the fraction of known instances satisfying the branch.

    Returns:
        tuple: instances, total weight and class distribution of each
            branch
    """
    covered: np.ndarray = instances.mask(Flag.RULE_COVERED)
    column: np.ndarray = dataset.column(conditions[0].attribute)
    missing: np.ndarray = covered & np.isnan(column)
    split: list[Instances] = []
    counts: np.ndarray = np.zeros(len(conditions))
    distributions: list[np.ndarray] = []

    for i, condition in enumerate(conditions):
        satisfied: np.ndarray = covered & condition.satisfies_array(column)
        rejected: np.ndarray = covered & ~satisfied & ~missing
        branch: Instances = instances.copy()
        branch.flag[rejected] = int(Flag.NOT_COVERED)

        count: float = float(instances.weight[satisfied].sum())
        total: float = count + float(instances.weight[rejected].sum())
        fraction: float = count / total if total > 0 else 0.0
        branch.weight[missing] = instances.weight[missing] * fraction

        distribution: np.ndarray = dataset.distribution(
            satisfied, instances.weight
        ) + dataset.distribution(missing, branch.weight)
        counts[i] = count + float(branch.weight[missing].sum())
        split.append(branch)
        distributions.append(distribution)

    return split, counts, distributions


class Tree:

    def __init__(self, root: Node):
        self.root: Node = root
        self.quality: Cost = Maximise()
        self.iteration: int = 0

    def nodes(self) -> Iterator[Node]:
        pending: deque[Node] = deque([self.root])
        while pending:
            node: Node = pending.popleft()
            yield node
            if not node.is_leaf():
                pending.extend(node.children)

    def size(self) -> int:
        return sum(1 for _ in self.nodes())

    def internal(self) -> int:
        return sum(1 for node in self.nodes() if not node.is_leaf())

    def _probabilities(
        self,
        node: Node,
        values: np.ndarray,
        rows: np.ndarray,
        weight: np.ndarray,
        probabilities: np.ndarray,
    ):
        if not np.any(rows):
            return
        if node.is_leaf():
            if node.total > 0:
                probabilities[rows] += np.outer(
                    weight[rows], node.distribution / node.total
                )
            else:
                probabilities[rows, node.prediction] += weight[rows]
            return

        column: np.ndarray = values[:, node.attribute]
        missing: np.ndarray = rows & np.isnan(column)
        for condition, child in zip(node.conditions, node.children):
            satisfied: np.ndarray = rows & condition.satisfies_array(column)
            child_weight: np.ndarray = weight.copy()
            if node.total > 0:
                child_weight[missing] *= child.total / node.total
            else:
                child_weight[missing] = 0.0
            self._probabilities(
                child, values, satisfied | missing, child_weight, probabilities
            )

    def predict_values(self, values: np.ndarray, n_classes: int) -> np.ndarray:
        """Returns the class index predicted for each row. Missing values are
        resolved by following every branch weighted by its training
        coverage."""
        n: int = values.shape[0]
        probabilities: np.ndarray = np.zeros((n, n_classes))
        self._probabilities(
            self.root, values, np.ones(n, dtype=bool), np.ones(n), probabilities
        )
        return np.argmax(probabilities, axis=1)

    def compare_to(self, other: Tree) -> int:
        """Positive when this tree is better: higher quality, then fewer
        nodes."""
        result: int = self.quality.compare_to(other.quality)
        if result == 0:
            return other.size() - self.size()
        return result

    def __lt__(self, other: Tree) -> bool:
        return self.compare_to(other) < 0

    def fix_thresholds(self, dataset: Dataset):
        """Replaces the cut points of continuous branches by the closest
        values occurring in the dataset."""
        for node in self.nodes():
            if node.is_leaf() or dataset.attributes[node.attribute].is_nominal:
                continue
            column: np.ndarray = dataset.column(node.attribute)
            for c in node.conditions:
                candidates: np.ndarray = column[
                    (column <= c.value[0]) & (column > c.threshold[0])
                ]
                if len(candidates) > 0:
                    c.threshold[0] = float(candidates.max())
                c.value[0] = c.threshold[0]

    def _to_string(self, dataset: Dataset, node: Node, indent: str) -> list[str]:
        if node.is_leaf():
            errors: float = node.total - (
                node.distribution[node.prediction] if node.total > 0 else 0.0
            )
            text: str = f"{node.name} ({node.total:.1f}"
            if errors > 0:
                text += f"/{errors:.1f}"
            return [text + ")"]

        lines: list[str] = []
        for condition, child in zip(node.conditions, node.children):
            branch: str = indent + condition.to_string(dataset) + ": "
            below: list[str] = self._to_string(dataset, child, indent + "|    ")
            if child.is_leaf():
                lines.append(branch + below[0])
            else:
                lines.append(branch)
                lines.extend(below)
        return lines

    def to_string(self, dataset: Dataset) -> str:
        lines: list[str] = self._to_string(dataset, self.root, "")
        size: int = self.size()
        lines.append("")
        lines.append(f"Total number of nodes: {size}")
        lines.append(f"Number of leaf nodes: {size - self.internal()}")
        lines.append(f"Tree quality: {self.quality.raw():.6f}")
        lines.append(f"Tree iteration: {self.iteration}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"Tree(size={self.size()}, quality={self.quality})"


def leaf(dataset: Dataset, instances: Instances, level: int) -> LeafNode:
    """Leaf predicting the majority class of the RULE_COVERED instances."""
    distribution: np.ndarray = coverage_distribution(dataset, instances)
    prediction: int = majority(distribution)
    node: LeafNode = LeafNode(dataset.class_attribute.value(prediction), level, prediction)
    node.set_distribution(distribution)
    return node

