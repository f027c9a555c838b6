"""Heuristic information of the vertices of a rule construction graph.

Heuristic values are numpy arrays with one value per vertex; the START
vertex and the vertices of used attributes have value 0.
"""
from __future__ import annotations

import math
from abc import ABC
from abc import abstractmethod
from typing import Optional

import numpy as np

from antrules.conditions import Condition
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.interval import class_entropy
from antrules.rule.graph import Graph

ZERO: float = 1e-15


class Heuristic(ABC):

    def compute(
        self,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        used: Optional[np.ndarray] = None,
        target: Optional[int] = None,
    ) -> np.ndarray:
        """Computes the heuristic value of each vertex considering only the
        instances flagged as RULE_COVERED.

        Args:
            graph (Graph): construction graph
            dataset (Dataset): dataset
            instances (Instances): coverage flags
            used (Optional[np.ndarray]): boolean mask of vertices whose
                attribute is already in use
            target (Optional[int]): class value of the rule, if fixed

        Returns:
            np.ndarray: heuristic value of each vertex
        """
        heuristic: np.ndarray = np.zeros(graph.size())
        unavailable: set[int] = set()
        if used is not None:
            unavailable = {
                graph.vertices[i].attribute for i in np.flatnonzero(used)
            }
        for attribute in dataset.predictive_attributes():
            if attribute.index in unavailable:
                continue
            self._compute_attribute(
                heuristic, graph, dataset, instances, attribute.index, target
            )
        heuristic[heuristic < ZERO] = 0.0
        return heuristic

    @abstractmethod
    def _compute_attribute(
        self,
        heuristic: np.ndarray,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        attribute: int,
        target: Optional[int],
    ):
        pass


class EntropyHeuristic(Heuristic):
    """Information gain of a term: log2(k) minus the entropy of the class
    distribution of the covered instances satisfying it. The split point of
    continuous attributes comes from the interval builder."""

    def __init__(self, builder: IntervalBuilder):
        self.builder: IntervalBuilder = builder

    def _compute_attribute(
        self,
        heuristic: np.ndarray,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        attribute: int,
        target: Optional[int],
    ):
        log_k: float = math.log2(dataset.class_length())
        if dataset.attributes[attribute].is_nominal:
            covered: np.ndarray = instances.mask(Flag.RULE_COVERED)
            column: np.ndarray = dataset.column(attribute)
            for index in graph.attribute_vertices(attribute):
                vertex = graph.vertices[index]
                distribution: np.ndarray = dataset.distribution(
                    covered & (column == vertex.value)
                )
                if distribution.sum() > 0:
                    heuristic[index] = log_k - class_entropy(distribution)[0]
        else:
            condition: Optional[Condition] = self.builder.single(
                dataset, instances, attribute
            )
            if condition is not None:
                heuristic[graph.index_of(attribute)] = log_k - condition.entropy


class ClassFrequencyHeuristic(Heuristic):
    """Relative frequency of the target class among the covered instances
    satisfying each term. Without a fixed target the frequency of the
    majority class is used."""

    def __init__(self, builder: IntervalBuilder):
        self.builder: IntervalBuilder = builder

    def _frequency(self, distribution: np.ndarray, target: Optional[int]) -> float:
        total: float = distribution.sum()
        if total == 0:
            return 0.0
        if target is None:
            return float(distribution.max() / total)
        return float(distribution[target] / total)

    def _compute_attribute(
        self,
        heuristic: np.ndarray,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        attribute: int,
        target: Optional[int],
    ):
        if dataset.attributes[attribute].is_nominal:
            covered: np.ndarray = instances.mask(Flag.RULE_COVERED)
            column: np.ndarray = dataset.column(attribute)
            for index in graph.attribute_vertices(attribute):
                vertex = graph.vertices[index]
                heuristic[index] = self._frequency(
                    dataset.distribution(covered & (column == vertex.value)), target
                )
        else:
            condition: Optional[Condition] = self.builder.single(
                dataset, instances, attribute
            )
            if condition is not None:
                heuristic[graph.index_of(attribute)] = self._frequency(
                    condition.frequency, target
                )


class NoHeuristic(Heuristic):
    """Every available vertex has heuristic value 1."""

    def _compute_attribute(
        self,
        heuristic: np.ndarray,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        attribute: int,
        target: Optional[int],
    ):
        heuristic[graph.attribute_vertices(attribute)] = 1.0


def heuristic_from_params(name: str, builder: IntervalBuilder) -> Heuristic:
    if name == "entropy":
        return EntropyHeuristic(builder)
    if name == "class_frequency":
        return ClassFrequencyHeuristic(builder)
    if name == "none":
        return NoHeuristic()
    raise ValueError(f"Unknown heuristic: {name}")
