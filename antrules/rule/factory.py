"""Stochastic construction of a single rule by walking the construction
graph."""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import Optional

import numpy as np

from antrules._helpers import roulette
from antrules._params import AlgorithmParams
from antrules.conditions import Condition
from antrules.dataset import Dataset
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.rule._rule import CLASSIFICATION
from antrules.rule._rule import Rule
from antrules.rule._rule import RuleKind
from antrules.rule._rule import Term
from antrules.rule.graph import START_INDEX
from antrules.rule.graph import Graph
from antrules.rule.graph import Vertex
from antrules.rule.heuristic import Heuristic


class RuleFactory(ABC):
    """Creates a rule by repeatedly selecting a vertex with probability
    proportional to pheromone x heuristic among the vertices whose attribute
    is not used yet.

    A term is only kept if it changes the number of covered instances and the
    rule still covers at least ``minimum_cases`` instances. The construction
    stops when no vertex can be added, when the rule covers no more than the
    minimum or when all covered instances belong to the same class.
    """

    def __init__(
        self,
        params: AlgorithmParams,
        builder: IntervalBuilder,
        heuristic: Heuristic,
        kind: RuleKind = CLASSIFICATION,
    ):
        self.minimum: int = params["minimum_cases"]
        self.dynamic_heuristic: bool = params["dynamic_heuristic"]
        self.builder: IntervalBuilder = builder
        self.heuristic: Heuristic = heuristic
        self.kind: RuleKind = kind

    @abstractmethod
    def pheromone(self, graph: Graph, previous: int, level: int) -> np.ndarray:
        """Returns the pheromone of moving from ``previous`` to each vertex;
        0 for vertices that cannot be reached."""

    def _condition(
        self, vertex: Vertex, dataset: Dataset, instances: Instances
    ) -> Optional[Condition]:
        if vertex.condition is not None:
            return vertex.condition
        # continuous attributes are discretised on the covered instances
        return self.builder.single(dataset, instances, vertex.attribute)

    def create(
        self,
        level: int,
        graph: Graph,
        heuristic: np.ndarray,
        dataset: Dataset,
        instances: Instances,
        rng: np.random.Generator,
        target: Optional[int] = None,
    ) -> Rule:
        """Creates a new rule. The consequent is only set when ``target`` is
        given; the coverage of the rule is left in ``instances``.

        Args:
            level (int): position of the rule in the list
            graph (Graph): construction graph
            heuristic (np.ndarray): heuristic value of each vertex
            dataset (Dataset): training data
            instances (Instances): coverage flags, owned by the caller
            rng (np.random.Generator): random generator of the candidate
            target (Optional[int]): fixed class of the rule

        Returns:
            Rule: new rule, possibly without terms
        """
        rule: Rule = Rule(self.kind)
        if target is not None:
            rule.consequent = target
            rule.fixed = True
        covered: int = rule.apply(dataset, instances)
        previous: int = START_INDEX

        incompatible: np.ndarray = np.zeros(graph.size(), dtype=bool)
        incompatible[START_INDEX] = True
        nominal_vertices: np.ndarray = np.array(
            [v.condition is not None for v in graph.vertices]
        )

        while covered > self.minimum and rule.is_diverse():
            selected: Optional[int] = None

            while selected is None:
                probabilities: np.ndarray = np.where(
                    incompatible, 0.0, self.pheromone(graph, previous, level) * heuristic
                )
                if probabilities.sum() <= 0.0:
                    break
                if (
                    not np.any(nominal_vertices & (probabilities > 0))
                    and covered < self.minimum * 2
                ):
                    # no interval can satisfy the minimum on both sides
                    break

                selected = roulette(probabilities, rng)
                vertex: Vertex = graph.vertices[selected]
                condition: Optional[Condition] = self._condition(
                    vertex, dataset, instances
                )
                if condition is None:
                    incompatible[selected] = True
                    selected = None
                    continue

                rule.push(Term(selected, condition))
                clone: Instances = instances.copy()
                current: int = rule.apply(dataset, clone)
                target_covered: bool = target is None or rule.covered[target] > 0

                if current != covered and current >= self.minimum and target_covered:
                    incompatible[graph.attribute_vertices(vertex.attribute)] = True
                    instances.flag[:] = clone.flag
                    previous = selected
                    covered = current
                    if self.dynamic_heuristic:
                        heuristic = self.heuristic.compute(
                            graph, dataset, instances, incompatible, target
                        )
                else:
                    rule.pop()
                    incompatible[selected] = True
                    selected = None

            if selected is None:
                break

        rule.compact()
        if rule.stale:
            # coverage information still refers to a removed term
            rule.apply(dataset, instances)
        return rule


class LevelRuleFactory(RuleFactory):
    """Uses the pheromone of the edge leaving the previous vertex at the
    level of the rule."""

    def pheromone(self, graph: Graph, previous: int, level: int) -> np.ndarray:
        return np.array(
            [0.0 if e is None else e.value(level) for e in graph.matrix[previous]]
        )


class EdgeRuleFactory(RuleFactory):
    """Single level edge pheromone, as in Ant-Miner with edge pheromone."""

    def pheromone(self, graph: Graph, previous: int, level: int) -> np.ndarray:
        return np.array(
            [0.0 if e is None else e.value(0) for e in graph.matrix[previous]]
        )


class VertexRuleFactory(RuleFactory):
    """Uses the pheromone of the vertices, ignoring the path."""

    def pheromone(self, graph: Graph, previous: int, level: int) -> np.ndarray:
        return graph.vertex_pheromone
