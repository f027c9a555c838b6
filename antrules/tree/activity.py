"""Iterative activity building decision trees."""
from __future__ import annotations

from typing import Optional

import numpy as np

from antrules._params import AlgorithmParams
from antrules.archive import Archive
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.scheduler import IterativeActivity
from antrules.tree._node import Tree
from antrules.tree.builder import StochasticBuilder
from antrules.tree.builder import TreeBuilder
from antrules.tree.graph import TreeGraph
from antrules.tree.graph import TreePheromonePolicy
from antrules.tree.heuristic import TreeHeuristic
from antrules.tree.heuristic import tree_heuristic_from_params
from antrules.tree.measures import TreeMeasure
from antrules.tree.measures import tree_measure
from antrules.tree.pruning import TreePruner
from antrules.tree.pruning import tree_pruner_from_params


class FindTreeActivity(IterativeActivity[Tree]):
    """Each ant builds a complete decision tree, choosing the attribute of
    every node according to the pheromone of the branch leading to it. Trees
    are pruned before being evaluated. A restart resets the pheromone of the
    graph."""

    def __init__(
        self,
        graph: TreeGraph,
        dataset: Dataset,
        params: AlgorithmParams,
        builder: Optional[TreeBuilder] = None,
        policy: Optional[TreePheromonePolicy] = None,
        heuristic: Optional[TreeHeuristic] = None,
        pruner: Optional[TreePruner] = None,
    ):
        super().__init__(params)
        self.graph: TreeGraph = graph
        self.dataset: Dataset = dataset
        intervals: IntervalBuilder = IntervalBuilder(params)
        self.heuristic: TreeHeuristic = heuristic or tree_heuristic_from_params(
            params, intervals
        )
        self.builder: TreeBuilder = builder or StochasticBuilder(
            params, intervals, self.heuristic
        )
        self.policy: TreePheromonePolicy = policy or TreePheromonePolicy(params)
        self.pruner: TreePruner = pruner or tree_pruner_from_params(params)
        self.measure: TreeMeasure = tree_measure(params["tree_measure"])
        self.initial_heuristic: np.ndarray = np.zeros(graph.size())

    def initialise(self):
        super().initialise()
        self.policy.initialise(self.graph)
        instances: Instances = Instances(self.dataset.size(), Flag.RULE_COVERED)
        self.initial_heuristic = self.heuristic.compute(
            self.dataset, instances, np.zeros(self.graph.size(), dtype=bool)
        )

    def restart(self):
        self.policy.initialise(self.graph)

    def create(self, rng: np.random.Generator) -> Tree:
        instances: Instances = Instances(self.dataset.size(), Flag.RULE_COVERED)
        tree: Tree = self.builder.build(
            self.graph, self.initial_heuristic, self.dataset, instances, rng
        )
        tree.iteration = self.iteration
        self.pruner.prune(self.dataset, tree)
        tree.quality = self.measure.evaluate(self.dataset, tree)
        return tree

    def update(self, archive: Archive[Tree]):
        super().update(archive)
        self.policy.update(self.graph, archive.highest())
