"""Construction graph and pheromone policy of decision trees.

Pheromone is associated with the branches of a tree: each branch code (see
:func:`antrules.tree._node.encode`) maps to one value per predictive
attribute, the desirability of testing that attribute at the end of the
branch. Branches never reinforced share the template values.
"""
from __future__ import annotations

from collections import deque
from typing import Optional

import numpy as np

from antrules._helpers import truncate
from antrules._params import AlgorithmParams
from antrules.cost import Cost
from antrules.dataset import Dataset
from antrules.tree._node import START_CODE
from antrules.tree._node import InternalNode
from antrules.tree._node import Tree
from antrules.tree._node import encode

INITIAL_PHEROMONE: float = 10.0


class TreeGraph:

    def __init__(self, dataset: Dataset):
        attributes = dataset.predictive_attributes()
        self.template: np.ndarray = np.zeros(len(attributes))
        self.matrix: dict[int, np.ndarray] = {}

    def size(self) -> int:
        return len(self.template)

    def pheromone(self, code: int) -> np.ndarray:
        return self.matrix.get(code, self.template)

    def entry(self, code: int, t_max: float) -> np.ndarray:
        if code not in self.matrix:
            self.matrix[code] = np.full(len(self.template), t_max)
        return self.matrix[code]

    def entries(self) -> list[int]:
        return list(self.matrix)


def _branches(tree: Tree):
    """Yields the code of every branch leading to an internal node, together
    with the attribute tested there."""
    root = tree.root
    if root.is_leaf():
        return
    yield START_CODE, root.attribute
    pending: deque[InternalNode] = deque([root])
    while pending:
        node: InternalNode = pending.popleft()
        for i, child in node.internal_children():
            yield encode(node, node.conditions[i]), child.attribute
            pending.append(child)


class TreePheromonePolicy:
    """MAX-MIN policy over the branch entries of a :class:`TreeGraph`."""

    FRACTION: float = 10.0

    def __init__(self, params: AlgorithmParams):
        self.factor: float = params["evaporation_factor"]
        self.p_best: float = params["p_best"]
        self.global_quality: Optional[Cost] = None
        self.t_max: float = 0.0
        self.t_min: float = 0.0

    def initialise(self, graph: TreeGraph):
        graph.matrix = {}
        graph.template[:] = INITIAL_PHEROMONE

    def _update_bounds(self, graph: TreeGraph, tree: Tree):
        if self.global_quality is None or tree.quality > self.global_quality:
            self.global_quality = tree.quality
            n: float = graph.size()
            average: float = (n / 2.0) * tree.size()
            p_dec: float = self.p_best ** (1.0 / n)
            self.t_max = (1.0 / (1.0 - self.factor)) * (
                tree.quality.adjusted() / self.FRACTION
            )
            if average > 1.0:
                self.t_min = (self.t_max * (1.0 - p_dec)) / ((average - 1.0) * p_dec)
            else:
                self.t_min = self.t_max
            self.t_min = min(self.t_min, self.t_max)

    def _update(self, slots: np.ndarray, index: int, delta: float):
        slots *= self.factor
        if index >= 0:
            slots[index] += delta
        slots[slots > truncate(self.t_max)] = self.t_max
        slots[slots < truncate(self.t_min)] = self.t_min

    def update(self, graph: TreeGraph, tree: Tree):
        self._update_bounds(graph, tree)
        delta: float = tree.quality.adjusted() / self.FRACTION

        updated: set[int] = set()
        for code, attribute in _branches(tree):
            updated.add(code)
            self._update(graph.entry(code, self.t_max), attribute, delta)

        for code in graph.entries():
            if code not in updated:
                self._update(graph.matrix[code], -1, 0.0)

    def _check(self, values: np.ndarray) -> bool:
        truncated: np.ndarray = np.array([truncate(v) for v in values])
        upper: int = int(np.count_nonzero(truncated == truncate(self.t_max)))
        lower: int = int(np.count_nonzero(truncated == truncate(self.t_min)))
        return upper == 1 and lower == len(values) - 1

    def has_converged(self, graph: TreeGraph, tree: Tree) -> bool:
        """True when every branch of the tree has a single attribute at the
        upper bound and all the others at the lower bound."""
        return all(
            self._check(graph.pheromone(code)) for code, _ in _branches(tree)
        )

    def max(self) -> float:
        return self.t_max

    def min(self) -> float:
        return self.t_min
