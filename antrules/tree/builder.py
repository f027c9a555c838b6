"""Top-down induction of decision trees."""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import Optional

import numpy as np

from antrules._helpers import roulette
from antrules._params import AlgorithmParams
from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.dataset import Attribute
from antrules.dataset import Dataset
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.tree._node import START_CODE
from antrules.tree._node import InternalNode
from antrules.tree._node import Node
from antrules.tree._node import Tree
from antrules.tree._node import coverage_distribution
from antrules.tree._node import encode
from antrules.tree._node import leaf
from antrules.tree._node import majority
from antrules.tree._node import partition
from antrules.tree.graph import TreeGraph
from antrules.tree.heuristic import EPSILON
from antrules.tree.heuristic import TreeHeuristic
from antrules.tree.measures import node_error

INITIAL_LEVEL: int = 0


class TreeBuilder(ABC):
    """Grows a tree from the root, choosing the attribute of each internal
    node with :meth:`select`.

    A node becomes a leaf when its instances belong to a single class, when
    no attribute can be selected or when the selected attribute cannot be
    branched. An attribute whose branches do not give at least two children
    with ``minimum_cases`` instances is discarded and another one selected.
    """

    def __init__(
        self,
        params: AlgorithmParams,
        builder: IntervalBuilder,
        heuristic: TreeHeuristic,
    ):
        self.minimum: int = params["minimum_cases"]
        self.builder: IntervalBuilder = builder
        self.heuristic: TreeHeuristic = heuristic

    def build(
        self,
        graph: TreeGraph,
        heuristic: np.ndarray,
        dataset: Dataset,
        instances: Instances,
        rng: np.random.Generator,
    ) -> Tree:
        used: np.ndarray = np.zeros(graph.size(), dtype=bool)
        return Tree(
            self.follow(
                graph, heuristic, dataset, instances, used, INITIAL_LEVEL, None, -1, rng
            )
        )

    @abstractmethod
    def select(
        self,
        graph: TreeGraph,
        heuristic: np.ndarray,
        dataset: Dataset,
        used: np.ndarray,
        instances: Instances,
        parent: Optional[InternalNode],
        index: int,
        rng: np.random.Generator,
    ) -> Optional[Attribute]:
        """Returns the attribute tested by the node reached through branch
        ``index`` of ``parent``, or None to create a leaf."""

    def branch(
        self, dataset: Dataset, attribute: Attribute, instances: Instances
    ) -> Optional[list[Condition]]:
        if attribute.is_nominal:
            return [
                Condition(
                    attribute=attribute.index,
                    relation=Relation.EQUAL_TO,
                    value=[float(i), 0.0],
                )
                for i in range(attribute.size())
            ]
        return self.builder.multiple(dataset, instances, attribute.index)

    def follow(
        self,
        graph: TreeGraph,
        heuristic: np.ndarray,
        dataset: Dataset,
        instances: Instances,
        used: np.ndarray,
        level: int,
        parent: Optional[InternalNode],
        index: int,
        rng: np.random.Generator,
    ) -> Node:
        used = used.copy()
        overall: np.ndarray = coverage_distribution(dataset, instances)
        # every retry marks one more attribute as used
        while True:
            if np.count_nonzero(overall) <= 1:
                return leaf(dataset, instances, level)
            attribute: Optional[Attribute] = self.select(
                graph, heuristic, dataset, used, instances, parent, index, rng
            )
            if attribute is None:
                return leaf(dataset, instances, level)
            conditions: Optional[list[Condition]] = self.branch(
                dataset, attribute, instances
            )
            if conditions is None:
                return leaf(dataset, instances, level)

            split, counts, distributions = partition(dataset, instances, conditions)
            if np.count_nonzero(counts >= self.minimum) >= 2:
                break
            used[attribute.index] = True

        node: InternalNode = InternalNode(
            attribute.name, attribute.index, level, conditions
        )
        node.coverage = instances
        node.set_distribution(overall)

        expanded: np.ndarray = used.copy()
        if attribute.is_nominal:
            expanded[attribute.index] = True

        for i, count in enumerate(counts):
            if count == 0:
                child: Node = leaf(dataset, instances, level + 1)
            elif count < self.minimum * 2:
                child = leaf(dataset, split[i], level + 1)
            else:
                child = self.follow(
                    graph, heuristic, dataset, split[i], expanded, level + 1, node, i, rng
                )
                errors: float = count - distributions[i][majority(distributions[i])]
                if not child.is_leaf() and node_error(child) >= errors - EPSILON:
                    child = leaf(dataset, split[i], level + 1)
            child.set_distribution(distributions[i])
            node.children[i] = child
        return node


class GreedyBuilder(TreeBuilder):
    """C4.5 style builder: the attribute with the highest heuristic value,
    computed on the instances reaching the node, is selected."""

    def select(self, graph, heuristic, dataset, used, instances, parent, index, rng):
        values: np.ndarray = self.heuristic.compute(dataset, instances, used)
        values[used] = 0.0
        if not np.any(values > 0):
            return None
        return dataset.attributes[int(np.argmax(values))]


class StochasticBuilder(TreeBuilder):
    """Selects the attribute by roulette over pheromone x heuristic, using
    the pheromone of the branch leading to the node."""

    def __init__(
        self,
        params: AlgorithmParams,
        builder: IntervalBuilder,
        heuristic: TreeHeuristic,
    ):
        super().__init__(params, builder, heuristic)
        self.dynamic_heuristic: bool = params["dynamic_heuristic"]

    def select(self, graph, heuristic, dataset, used, instances, parent, index, rng):
        if self.dynamic_heuristic:
            heuristic = self.heuristic.compute(dataset, instances, used)
        code: int = (
            START_CODE if parent is None else encode(parent, parent.conditions[index])
        )
        probabilities: np.ndarray = np.where(
            used, 0.0, graph.pheromone(code) * heuristic
        )
        selected: Optional[int] = roulette(probabilities, rng)
        return None if selected is None else dataset.attributes[selected]
