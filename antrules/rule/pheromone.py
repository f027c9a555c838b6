"""Pheromone policies of the rule construction graphs.

All level based values are truncated to two decimal digits before being
compared against the MAX-MIN bounds, so values oscillating around a bound
settle on it.
"""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import Optional
from typing import Sequence

import numpy as np

from antrules._helpers import roulette
from antrules._helpers import truncate
from antrules._params import AlgorithmParams
from antrules.cost import Cost
from antrules.quality import FUNCTIONS
from antrules.quality import RuleFunction
from antrules.rule._list import RuleList
from antrules.rule._rule import Rule
from antrules.rule.graph import START_INDEX
from antrules.rule.graph import Entry
from antrules.rule.graph import Graph

INITIAL_PHEROMONE: float = 10.0


class PheromonePolicy(ABC):

    @abstractmethod
    def initialise(self, graph: Graph):
        pass

    @abstractmethod
    def update(self, graph: Graph, solution):
        pass

    def has_converged(self, graph: Graph, solution) -> bool:
        return False


class LevelPheromonePolicy(PheromonePolicy):
    """MAX-MIN pheromone policy where the edges hold one value per level,
    the position of the rule in the list."""

    FRACTION: float = 5.0

    def __init__(self, params: AlgorithmParams):
        self.factor: float = params["evaporation_factor"]
        self.p_best: float = params["p_best"]
        self.global_quality: Optional[Cost] = None
        self.t_max: float = 0.0
        self.t_min: float = 0.0

    def initialise(self, graph: Graph):
        for _, _, entry in graph.edges():
            entry.reset(INITIAL_PHEROMONE, INITIAL_PHEROMONE)

    def _update_bounds(self, graph: Graph, quality: Cost):
        if self.global_quality is None or quality > self.global_quality:
            self.global_quality = quality
            n: float = graph.size()
            average: float = n / 2.0
            p_dec: float = self.p_best ** (1.0 / n)
            self.t_max = (1.0 / (1.0 - self.factor)) * (
                quality.adjusted() / self.FRACTION
            )
            if average > 1.0:
                self.t_min = (self.t_max * (1.0 - p_dec)) / ((average - 1.0) * p_dec)
            else:
                self.t_min = self.t_max
            self.t_min = min(self.t_min, self.t_max)

    def clamp(self, value: float) -> float:
        truncated: float = truncate(value)
        if truncated > truncate(self.t_max):
            return self.t_max
        if truncated < truncate(self.t_min):
            return self.t_min
        return value

    def _evaporate(self, entry: Entry, size: int):
        length: int = entry.size()
        if length < size:
            entry.set(size - 1, entry.initial)
        for level in range(max(size, length)):
            entry.set(level, self.clamp(entry.value(level) * self.factor))

    def update(self, graph: Graph, solution: RuleList):
        # the default rule is not used
        rules: list[Rule] = solution.non_default_rules()
        size: int = len(rules)
        self._update_bounds(graph, solution.quality)

        for _, _, entry in graph.edges():
            self._evaporate(entry, size)

        delta: float = solution.quality.adjusted() / self.FRACTION
        for level, rule in enumerate(rules):
            source: int = START_INDEX
            for term in rule.terms:
                entry: Entry = graph.matrix[source][term.vertex]
                value: float = entry.value(level) + delta
                if truncate(value) > truncate(self.t_max):
                    value = self.t_max
                entry.set(level, value)
                source = term.vertex

    def has_converged(self, graph: Graph, solution: RuleList) -> bool:
        """Returns True if, along the path of every rule, exactly one
        neighbour is at the upper bound and all the others at the lower
        bound."""
        upper: float = truncate(self.t_max)
        lower: float = truncate(self.t_min)
        for level, rule in enumerate(solution.rules):
            source: int = START_INDEX
            for term in rule.terms:
                values: list[float] = [
                    truncate(e.value(level))
                    for e in graph.matrix[source]
                    if e is not None
                ]
                if values.count(upper) != 1 or values.count(lower) != len(values) - 1:
                    return False
                source = term.vertex
        return solution.size() > 0

    def max(self) -> float:
        return self.t_max

    def min(self) -> float:
        return self.t_min


class VertexPheromonePolicy(PheromonePolicy):
    """Pheromone stored per vertex. Used vertices are reinforced in
    proportion to the rule quality and all values are normalised to sum 1,
    which evaporates the vertices that were not used."""

    def initialise(self, graph: Graph):
        graph.vertex_pheromone = np.full(graph.size(), 1.0 / graph.size())
        graph.vertex_pheromone[START_INDEX] = 0.0

    def update(self, graph: Graph, solution: Rule):
        q: float = solution.quality.adjusted()
        for term in solution.terms:
            graph.vertex_pheromone[term.vertex] += graph.vertex_pheromone[term.vertex] * q
        total: float = graph.vertex_pheromone[1:].sum()
        if total > 0:
            graph.vertex_pheromone[1:] /= total


class EdgePheromonePolicy(PheromonePolicy):
    """Single level edge pheromone, reinforced along the path of the rule and
    normalised per source vertex."""

    def initialise(self, graph: Graph):
        for i in range(graph.size()):
            neighbours: list[int] = graph.neighbours(i)
            if not neighbours:
                continue
            initial: float = 1.0 / len(neighbours)
            for j in neighbours:
                graph.matrix[i][j].reset(initial, initial)

    def update(self, graph: Graph, solution: Rule):
        q: float = solution.quality.adjusted()
        source: int = START_INDEX
        for term in solution.terms:
            entry: Entry = graph.matrix[source][term.vertex]
            entry.set(0, entry.value(0) + entry.value(0) * q)
            source = term.vertex
        for i in range(graph.size()):
            entries: list[Entry] = [e for e in graph.matrix[i] if e is not None]
            total: float = sum(e.value(0) for e in entries)
            if total > 0:
                for e in entries:
                    e.set(0, e.value(0) / total)


class FunctionSelector:
    """Chooses the rule quality function used for each level of a rule set,
    using a separate pheromone matrix bounded by the graph policy."""

    def __init__(self, functions: Sequence = FUNCTIONS):
        self.functions: list[RuleFunction] = [RuleFunction(f) for f in functions]
        self.pheromone: list[Entry] = [
            Entry(INITIAL_PHEROMONE, INITIAL_PHEROMONE) for _ in self.functions
        ]

    def select(self, level: int, rng: np.random.Generator) -> int:
        values: np.ndarray = np.array([e.value(level) for e in self.pheromone])
        selected: Optional[int] = roulette(values, rng)
        return 0 if selected is None else selected

    def get(self, index: int) -> RuleFunction:
        return self.functions[index]

    def update(self, solution: RuleList, policy: LevelPheromonePolicy, factor: float):
        delta: float = solution.quality.adjusted() / LevelPheromonePolicy.FRACTION
        for level, rule in enumerate(solution.rules):
            if rule.is_empty():
                continue
            for index, entry in enumerate(self.pheromone):
                value: float = entry.value(level) * factor
                if index == rule.function:
                    value += delta
                entry.set(level, policy.clamp(value))
