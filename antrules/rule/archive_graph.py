"""Archive based construction graph.

Instead of discretising continuous attributes during construction, each
attribute vertex keeps, per level, archives of the best values used in
previous rules and samples new conditions from them. Vertex 0 is START and
vertex 1 is END; selecting END finishes the rule.
"""
from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Optional
from typing import Union

import numpy as np

from antrules._helpers import roulette
from antrules._params import AlgorithmParams
from antrules.archive import Archive
from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Instances
from antrules.rule._list import RuleList
from antrules.rule._rule import CLASSIFICATION
from antrules.rule._rule import Rule
from antrules.rule._rule import RuleKind
from antrules.rule._rule import Term
from antrules.rule.graph import START_INDEX
from antrules.rule.graph import Entry
from antrules.rule.graph import Graph
from antrules.rule.graph import Vertex
from antrules.rule.pheromone import LevelPheromonePolicy

END_INDEX: int = 1

_OPERATORS: tuple[Relation, Relation] = (
    Relation.LESS_THAN_OR_EQUAL_TO,
    Relation.GREATER_THAN,
)


@dataclass
class _Sample:
    value: float
    quality: Maximise
    weight: float = 0.0


class ContinuousArchive:
    """Archive of continuous values. Values are drawn uniformly from the
    attribute bounds until the archive is full; afterwards a stored value is
    selected by roulette over the rank weights and a new value drawn from a
    Gaussian centred on it."""

    def __init__(self, lower: float, upper: float, params: AlgorithmParams):
        self.lower: float = lower
        self.upper: float = upper
        self.params: AlgorithmParams = params
        self.archive: Archive[_Sample] = Archive(params["archive_size"], params["q"])

    def add(self, value: float, quality: float):
        self.archive.add(_Sample(float(value), Maximise(quality)))

    def update(self):
        self.archive.update()

    def sample(self, rng: np.random.Generator) -> float:
        if not self.archive.is_full():
            sampled: float = rng.random() * (self.upper - self.lower) + self.lower
        else:
            samples: list[_Sample] = list(self.archive)
            weights: np.ndarray = np.array([s.weight for s in samples])
            selected: Optional[int] = roulette(weights, rng)
            if selected is None:
                selected = len(samples) - 1
            centre: float = samples[selected].value
            deviation: float = sum(abs(s.value - centre) for s in samples)
            # a single stored value gives a zero deviation
            deviation = (
                self.params["convergence_speed"]
                * deviation
                / max(len(samples) - 1, 1)
            )
            sampled = rng.standard_normal() * deviation + centre
        factor: float = 10.0 ** self.params["precision"]
        return int(sampled * factor) / factor

    def clone(self) -> ContinuousArchive:
        return ContinuousArchive(self.lower, self.upper, self.params)


class CategoricalArchive:
    """Archive of value indexes. Once full, each value is weighted by the
    weight of the best stored sample using it divided by the number of
    samples using it; unused values share the ``q`` mass."""

    def __init__(self, length: int, params: AlgorithmParams):
        self.length: int = length
        self.params: AlgorithmParams = params
        self.archive: Archive[_Sample] = Archive(params["archive_size"], params["q"])

    def add(self, value: int, quality: float):
        self.archive.add(_Sample(value, Maximise(quality)))

    def update(self):
        self.archive.update()

    def sample(self, rng: np.random.Generator) -> int:
        if not self.archive.is_full():
            return int(rng.integers(self.length))

        weight: np.ndarray = np.zeros(self.length)
        count: np.ndarray = np.zeros(self.length)
        # samples are sorted, so the first one seen is the best
        for s in self.archive:
            value: int = int(s.value)
            if count[value] == 0:
                weight[value] = s.weight
            count[value] += 1

        unused: int = int(np.count_nonzero(count == 0))
        probabilities: np.ndarray = np.divide(
            weight, count, out=np.zeros(self.length), where=count > 0
        )
        if unused > 0:
            probabilities += self.params["q"] / unused
        selected: Optional[int] = roulette(probabilities, rng)
        return self.length - 1 if selected is None else selected

    def clone(self) -> CategoricalArchive:
        return CategoricalArchive(self.length, self.params)


class NominalVariable:

    def __init__(self, attribute: int, length: int, params: AlgorithmParams):
        self.attribute: int = attribute
        self.values: CategoricalArchive = CategoricalArchive(length, params)

    def sample(self, rng: np.random.Generator) -> Condition:
        return Condition(
            attribute=self.attribute,
            relation=Relation.EQUAL_TO,
            value=[float(self.values.sample(rng)), 0.0],
        )

    def add(self, condition: Condition, quality: float):
        self.values.add(int(condition.value[0]), quality)
        self.values.update()

    def clone(self) -> NominalVariable:
        clone: NominalVariable = NominalVariable.__new__(NominalVariable)
        clone.attribute = self.attribute
        clone.values = self.values.clone()
        return clone


class ContinuousVariable:
    """Samples a relational operator and a threshold independently."""

    def __init__(
        self, attribute: int, lower: float, upper: float, params: AlgorithmParams
    ):
        self.attribute: int = attribute
        self.operator: CategoricalArchive = CategoricalArchive(len(_OPERATORS), params)
        self.values: ContinuousArchive = ContinuousArchive(lower, upper, params)

    def sample(self, rng: np.random.Generator) -> Condition:
        relation: Relation = _OPERATORS[self.operator.sample(rng)]
        value: float = self.values.sample(rng)
        return Condition(
            attribute=self.attribute,
            relation=relation,
            value=[value, 0.0],
            threshold=[value, 0.0],
        )

    def add(self, condition: Condition, quality: float):
        self.operator.add(_OPERATORS.index(condition.relation), quality)
        self.operator.update()
        self.values.add(condition.value[0], quality)
        self.values.update()

    def clone(self) -> ContinuousVariable:
        clone: ContinuousVariable = ContinuousVariable.__new__(ContinuousVariable)
        clone.attribute = self.attribute
        clone.operator = self.operator.clone()
        clone.values = self.values.clone()
        return clone


Variable = Union[NominalVariable, ContinuousVariable]


@dataclass
class ArchiveVertex(Vertex):
    #: empty variable used for levels without an archive yet
    initial: Optional[Variable] = None
    archive: list[Variable] = field(default_factory=list)

    def sample(self, level: int, rng: np.random.Generator) -> Condition:
        variable: Variable = (
            self.archive[level] if level < len(self.archive) else self.initial
        )
        return variable.sample(rng)

    def update(self, level: int, condition: Condition, quality: float):
        while len(self.archive) <= level:
            self.archive.append(self.initial.clone())
        self.archive[level].add(condition, quality)

    def reset(self):
        self.archive.clear()


class ArchiveGraph(Graph):
    """Graph with a single vertex per predictive attribute plus START and
    END. Every vertex can be reached from any other one, except START; END
    has no outgoing edges and cannot follow START directly."""

    def __init__(self, vertices: list[ArchiveVertex]):
        super().__init__(vertices)
        n: int = len(vertices)
        self.matrix = [
            [
                Entry()
                if i != END_INDEX
                and j != START_INDEX
                and i != j
                and not (i == START_INDEX and j == END_INDEX)
                else None
                for j in range(n)
            ]
            for i in range(n)
        ]

    def heuristic(self) -> np.ndarray:
        """Uniform heuristic over the attribute vertices and END."""
        heuristic: np.ndarray = np.ones(self.size())
        heuristic[START_INDEX] = 0.0
        return heuristic

    def condition(self, vertex: int, level: int, rng: np.random.Generator) -> Condition:
        return self.vertices[vertex].sample(level, rng)

    def update(self, vertex: int, level: int, condition: Condition, quality: float):
        self.vertices[vertex].update(level, condition, quality)

    def reset_archives(self):
        for vertex in self.vertices[END_INDEX + 1:]:
            vertex.reset()

    @staticmethod
    def create(dataset: Dataset, params: AlgorithmParams) -> ArchiveGraph:
        vertices: list[ArchiveVertex] = [
            ArchiveVertex(attribute=-1),
            ArchiveVertex(attribute=-2),
        ]
        for attribute in dataset.predictive_attributes():
            if attribute.is_nominal:
                variable: Variable = NominalVariable(
                    attribute.index, attribute.size(), params
                )
            else:
                variable = ContinuousVariable(
                    attribute.index, attribute.lower, attribute.upper, params
                )
            vertices.append(ArchiveVertex(attribute=attribute.index, initial=variable))
        return ArchiveGraph(vertices)


class ArchiveRuleFactory:
    """Walks the archive graph choosing the next vertex by roulette over
    pheromone x heuristic until END is selected. Each visited attribute
    contributes a condition sampled from its archive at the level of the
    rule; a condition is discarded if the rule would then cover fewer than
    ``minimum_cases`` instances."""

    def __init__(self, params: AlgorithmParams, kind: RuleKind = CLASSIFICATION):
        self.minimum: int = params["minimum_cases"]
        self.kind: RuleKind = kind

    def create(
        self,
        level: int,
        graph: ArchiveGraph,
        heuristic: np.ndarray,
        dataset: Dataset,
        instances: Instances,
        rng: np.random.Generator,
        target: Optional[int] = None,
    ) -> Rule:
        rule: Rule = Rule(self.kind)
        if target is not None:
            rule.consequent = target
            rule.fixed = True
        rule.apply(dataset, instances)
        previous: int = START_INDEX
        incompatible: np.ndarray = np.zeros(graph.size(), dtype=bool)
        incompatible[START_INDEX] = True

        while True:
            pheromone: np.ndarray = np.array(
                [0.0 if e is None else e.value(level) for e in graph.matrix[previous]]
            )
            probabilities: np.ndarray = np.where(
                incompatible, 0.0, pheromone * heuristic
            )
            selected: Optional[int] = roulette(probabilities, rng)
            if selected is None or selected == END_INDEX:
                break
            incompatible[selected] = True

            rule.push(Term(selected, graph.condition(selected, level, rng)))
            clone: Instances = instances.copy()
            current: int = rule.apply(dataset, clone)
            if current > 0 and current >= self.minimum:
                instances.flag[:] = clone.flag
                previous = selected
            else:
                rule.pop()

        rule.compact()
        if rule.stale:
            # coverage information must match the accepted terms
            rule.apply(dataset, instances)
        return rule


class ArchivePheromonePolicy(LevelPheromonePolicy):
    """Level pheromone policy that also feeds the conditions of the best
    list to the archives of the visited vertices."""

    def update(self, graph: ArchiveGraph, solution: RuleList):
        super().update(graph, solution)
        quality: float = solution.quality.adjusted()
        for level, rule in enumerate(solution.non_default_rules()):
            for term in rule.terms:
                graph.update(term.vertex, level, term.condition, quality)
