"""Post-pruning of decision trees.

Pruners visit the internal nodes bottom-up and may replace a node either by
a leaf or by the subtree of its most frequent branch (subtree raising).
"""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import Optional

from antrules._params import AlgorithmParams
from antrules.dataset import Dataset
from antrules.dataset import Instances
from antrules.tree._node import InternalNode
from antrules.tree._node import LeafNode
from antrules.tree._node import Node
from antrules.tree._node import Tree
from antrules.tree._node import coverage_distribution
from antrules.tree._node import majority
from antrules.tree._node import partition
from antrules.tree.measures import error
from antrules.tree.measures import estimated
from antrules.tree.measures import node_error
from antrules.tree.measures import node_estimated


def recalculate(dataset: Dataset, subtree: InternalNode):
    """Redistributes the coverage of ``subtree`` over its branches, updating
    the distributions of every node below it and the predictions of the
    leaves."""
    instances: Instances = subtree.coverage
    split, counts, distributions = partition(dataset, instances, subtree.conditions)
    for i, child in enumerate(subtree.children):
        child.set_distribution(distributions[i])
        if not child.is_leaf():
            child.coverage = split[i]
            recalculate(dataset, child)
        else:
            source: Instances = instances if counts[i] == 0 else split[i]
            child.prediction = majority(coverage_distribution(dataset, source))
            child.name = dataset.class_attribute.value(child.prediction)


class TreePruner(ABC):

    def prune(self, dataset: Dataset, tree: Tree) -> Tree:
        if not tree.root.is_leaf():
            self._prune(dataset, tree, tree.root, None, -1)
        return tree

    @abstractmethod
    def _prune(
        self,
        dataset: Dataset,
        tree: Tree,
        node: InternalNode,
        parent: Optional[InternalNode],
        index: int,
    ):
        pass


class _ReplacementPruner(TreePruner):
    """Shared bottom-up procedure. Subclasses compare the error of the node,
    of a majority leaf and of the raised frequent branch."""

    @abstractmethod
    def _errors(
        self, node: InternalNode, subtree: Optional[InternalNode]
    ) -> tuple[float, float, float]:
        """Returns the error of the tree, of the leaf and of the branch,
        the latter already computed on the coverage of ``node``."""

    @abstractmethod
    def _replace_by_leaf(self, tree: float, leaf: float, branch: float) -> bool:
        pass

    @abstractmethod
    def _replace_by_branch(self, tree: float, branch: float) -> bool:
        pass

    def _prune(self, dataset, tree, node, parent, index):
        for i, child in node.internal_children():
            self._prune(dataset, tree, child, node, i)

        frequent: int = node.frequent_branch()
        subtree: Optional[InternalNode] = None
        if not node.children[frequent].is_leaf():
            subtree = node.children[frequent]
            subtree.coverage = node.coverage
            subtree.set_distribution(node.distribution)
            recalculate(dataset, subtree)

        tree_error, leaf_error, branch_error = self._errors(node, subtree)

        substitute: Optional[Node] = None
        if self._replace_by_leaf(tree_error, leaf_error, branch_error):
            prediction: int = majority(coverage_distribution(dataset, node.coverage))
            substitute = LeafNode(
                dataset.class_attribute.value(prediction), node.level, prediction
            )
            substitute.set_distribution(node.distribution)
        elif self._replace_by_branch(tree_error, branch_error):
            substitute = subtree

        if substitute is not None:
            if parent is None:
                tree.root = substitute
            else:
                parent.children[index] = substitute
            substitute.set_level(node.level)
            if not substitute.is_leaf():
                self._prune(dataset, tree, substitute, parent, index)
        elif subtree is not None:
            # the raised branch was recalculated on the coverage of the node
            recalculate(dataset, node)


class PessimisticPruner(_ReplacementPruner):
    """C4.5 error based pruning using the estimated (pessimistic) errors."""

    TOLERANCE: float = 0.1

    def _errors(self, node, subtree):
        leaf: float = estimated(node.distribution)
        branch: float = leaf if subtree is None else node_estimated(subtree)
        return node_estimated(node), leaf, branch

    def _replace_by_leaf(self, tree, leaf, branch):
        return leaf <= tree + self.TOLERANCE and leaf <= branch + self.TOLERANCE

    def _replace_by_branch(self, tree, branch):
        return branch <= tree + self.TOLERANCE


class AccuracyPruner(_ReplacementPruner):
    """Replaces a node whenever the replacement is at least as accurate on
    the training instances."""

    def _errors(self, node, subtree):
        leaf: float = error(node.distribution)
        branch: float = leaf if subtree is None else node_error(subtree)
        return node_error(node), leaf, branch

    def _replace_by_leaf(self, tree, leaf, branch):
        return leaf <= tree and leaf <= branch

    def _replace_by_branch(self, tree, branch):
        return branch <= tree


class NoPruner(TreePruner):

    def _prune(self, dataset, tree, node, parent, index):
        pass


def tree_pruner_from_params(params: AlgorithmParams) -> TreePruner:
    name: str = params["tree_pruner"]
    if name == "pessimistic":
        return PessimisticPruner()
    if name == "accuracy":
        return AccuracyPruner()
    if name == "none":
        return NoPruner()
    raise ValueError(f"Unknown tree pruner: {name}")
