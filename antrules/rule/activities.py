"""Iterative activities building rule lists, rule sets and single rules."""
from __future__ import annotations

from typing import Optional

import numpy as np

from antrules._params import AlgorithmParams
from antrules._timing import SearchTimes
from antrules.archive import Archive
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.quality import ListAccuracy
from antrules.quality import ListMeasure
from antrules.quality import RuleFunction
from antrules.quality import list_measure
from antrules.rule._list import RuleList
from antrules.rule._list import RuleSet
from antrules.rule._rule import CLASSIFICATION
from antrules.rule._rule import Rule
from antrules.rule._rule import RuleKind
from antrules.rule.archive_graph import ArchiveGraph
from antrules.rule.archive_graph import ArchivePheromonePolicy
from antrules.rule.archive_graph import ArchiveRuleFactory
from antrules.rule.factory import LevelRuleFactory
from antrules.rule.factory import RuleFactory
from antrules.rule.factory import VertexRuleFactory
from antrules.rule.graph import Graph
from antrules.rule.heuristic import Heuristic
from antrules.rule.heuristic import heuristic_from_params
from antrules.rule.pheromone import FunctionSelector
from antrules.rule.pheromone import LevelPheromonePolicy
from antrules.rule.pheromone import PheromonePolicy
from antrules.rule.pheromone import VertexPheromonePolicy
from antrules.rule.pruning import ListPruner
from antrules.rule.pruning import Pruner
from antrules.rule.pruning import pruner_from_params
from antrules.scheduler import IterativeActivity
from antrules.scheduler import Scheduler


def uncovered_limit(available: int, fraction: float) -> int:
    """Number of available instances below which no more rules are
    created."""
    return int(available * fraction + 0.5)


class _RuleActivity:
    """Components shared by the rule based activities, built from the
    parameters unless given explicitly."""

    def _setup(
        self,
        params: AlgorithmParams,
        heuristic: Optional[Heuristic],
        pruner: Optional[Pruner],
    ):
        self.builder: IntervalBuilder = IntervalBuilder(params)
        self.heuristic: Heuristic = heuristic or heuristic_from_params(
            params["heuristic"], self.builder
        )
        self.pruner: Pruner = pruner or pruner_from_params(params)
        self.function: RuleFunction = RuleFunction(params["rule_quality"])
        self.measure: ListMeasure = list_measure(params["list_measure"])

    def _initial_heuristic(self, graph: Graph, dataset: Dataset) -> np.ndarray:
        instances: Instances = Instances(dataset.size(), Flag.RULE_COVERED)
        return self.heuristic.compute(graph, dataset, instances)

    def _available_heuristic(
        self,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        target: Optional[int] = None,
    ) -> np.ndarray:
        """Heuristic over the instances not yet covered by previous rules."""
        instances.mark(Flag.NOT_COVERED, Flag.RULE_COVERED)
        heuristic: np.ndarray = self.heuristic.compute(
            graph, dataset, instances, target=target
        )
        instances.mark(Flag.RULE_COVERED, Flag.NOT_COVERED)
        return heuristic

    def _default_rule(
        self,
        dataset: Dataset,
        instances: Instances,
        kind: RuleKind,
        rng: np.random.Generator,
    ) -> Rule:
        rule: Rule = Rule(kind)
        rule.apply(dataset, instances)
        rule.assign(dataset, rng)
        rule.quality = self.function.evaluate(rule)
        return rule


class FindRuleListActivity(IterativeActivity[RuleList], _RuleActivity):
    """Each ant creates a complete rule list by sequential covering. The
    position of a rule in the list is the pheromone level used to build it.
    A restart resets the pheromone of the graph."""

    def __init__(
        self,
        graph: Graph,
        dataset: Dataset,
        params: AlgorithmParams,
        factory: Optional[RuleFactory] = None,
        policy: Optional[LevelPheromonePolicy] = None,
        heuristic: Optional[Heuristic] = None,
        pruner: Optional[Pruner] = None,
        kind: RuleKind = CLASSIFICATION,
    ):
        super().__init__(params)
        self._setup(params, heuristic, pruner)
        self.graph: Graph = graph
        self.dataset: Dataset = dataset
        self.kind: RuleKind = kind
        self.factory: RuleFactory = factory or LevelRuleFactory(
            params, self.builder, self.heuristic, kind
        )
        self.policy: LevelPheromonePolicy = policy or LevelPheromonePolicy(params)
        self.list_pruner: Optional[ListPruner] = (
            ListPruner(params, self.measure) if params["enable_list_pruning"] else None
        )
        self.initial_heuristic: np.ndarray = np.zeros(graph.size())

    def initialise(self):
        super().initialise()
        self.policy.initialise(self.graph)
        self.initial_heuristic = self._initial_heuristic(self.graph, self.dataset)

    def restart(self):
        self.policy.initialise(self.graph)

    def _heuristic(self, instances: Instances) -> np.ndarray:
        return self._available_heuristic(self.graph, self.dataset, instances)

    def _create_rule(
        self, level: int, heuristic: np.ndarray, instances: Instances, rng
    ) -> Rule:
        return self.factory.create(
            level, self.graph, heuristic, self.dataset, instances, rng
        )

    def create(self, rng: np.random.Generator) -> RuleList:
        dataset: Dataset = self.dataset
        instances: Instances = Instances(dataset.size(), Flag.NOT_COVERED)
        heuristic: np.ndarray = self.initial_heuristic.copy()
        rule_list: RuleList = RuleList()

        available: int = dataset.size()
        uncovered: int = uncovered_limit(dataset.size(), self.params["uncovered"])

        while available > 0 and available >= uncovered:
            if rule_list.size() > 0:
                heuristic = self._heuristic(instances)
            rule: Rule = self._create_rule(rule_list.size(), heuristic, instances, rng)
            available = self.pruner.prune(
                dataset, rule, instances, self.function, rng
            )
            rule_list.add(rule)
            if rule.is_empty():
                break
            available = dataset.mark_covered(instances)

        if not rule_list.has_default():
            if available == 0:
                instances.mark_all(Flag.NOT_COVERED)
            rule_list.add(self._default_rule(dataset, instances, self.kind, rng))

        if self.list_pruner is not None:
            self.list_pruner.prune(dataset, rule_list, rng)

        rule_list.quality = self.measure.evaluate(dataset, rule_list)
        rule_list.iteration = self.iteration
        return rule_list

    def update(self, archive: Archive[RuleList]):
        super().update(archive)
        self.policy.update(self.graph, archive.highest())


class ArchiveFindRuleListActivity(FindRuleListActivity):
    """Rule list activity over an archive graph: continuous conditions are
    sampled from the archives of the vertices instead of being computed by
    the interval builder. The archives learned so far survive a restart."""

    def __init__(
        self,
        graph: ArchiveGraph,
        dataset: Dataset,
        params: AlgorithmParams,
        factory: Optional[ArchiveRuleFactory] = None,
        policy: Optional[ArchivePheromonePolicy] = None,
        pruner: Optional[Pruner] = None,
        kind: RuleKind = CLASSIFICATION,
    ):
        super().__init__(
            graph,
            dataset,
            params,
            factory=factory or ArchiveRuleFactory(params, kind),
            policy=policy or ArchivePheromonePolicy(params),
            pruner=pruner,
            kind=kind,
        )

    def initialise(self):
        super().initialise()
        self.graph.reset_archives()

    def _initial_heuristic(self, graph: ArchiveGraph, dataset: Dataset) -> np.ndarray:
        return graph.heuristic()

    def _heuristic(self, instances: Instances) -> np.ndarray:
        return self.initial_heuristic.copy()


class FindRuleSetActivity(IterativeActivity[RuleSet], _RuleActivity):
    """Each ant creates an unordered rule set: rules are created for one class
    at a time, and only the correctly classified instances are removed from
    the training set. When ``dynamic_function`` is set, the quality function
    used to prune each rule is chosen by a :class:`FunctionSelector`.

    A restart resets the pheromone of both the graph and the function
    selector.
    """

    def __init__(
        self,
        graph: Graph,
        dataset: Dataset,
        params: AlgorithmParams,
        factory: Optional[RuleFactory] = None,
        policy: Optional[LevelPheromonePolicy] = None,
        heuristic: Optional[Heuristic] = None,
        pruner: Optional[Pruner] = None,
        kind: RuleKind = CLASSIFICATION,
    ):
        super().__init__(params)
        self._setup(params, heuristic, pruner)
        self.graph: Graph = graph
        self.dataset: Dataset = dataset
        self.kind: RuleKind = kind
        self.factory: RuleFactory = factory or LevelRuleFactory(
            params, self.builder, self.heuristic, kind
        )
        self.policy: LevelPheromonePolicy = policy or LevelPheromonePolicy(params)
        self.dynamic_function: bool = params["dynamic_function"]
        self.selector: FunctionSelector = FunctionSelector()

    def initialise(self):
        super().initialise()
        self.restart()

    def restart(self):
        self.policy.initialise(self.graph)
        self.selector = FunctionSelector()

    def create(self, rng: np.random.Generator) -> RuleSet:
        dataset: Dataset = self.dataset
        instances: Instances = Instances(dataset.size(), Flag.NOT_COVERED)
        rule_set: RuleSet = RuleSet()

        for target in range(dataset.class_length()):
            instances.mark_all(Flag.NOT_COVERED)
            in_class: np.ndarray = dataset.target == target
            available: int = int(np.count_nonzero(in_class))
            uncovered: int = uncovered_limit(available, self.params["uncovered"])

            while available > 0 and available >= uncovered:
                level: int = rule_set.size()
                heuristic: np.ndarray = self._available_heuristic(
                    self.graph, dataset, instances, target
                )
                rule: Rule = self.factory.create(
                    level, self.graph, heuristic, dataset, instances, rng, target
                )
                function: RuleFunction = self.function
                if self.dynamic_function:
                    rule.function = self.selector.select(level, rng)
                    function = self.selector.get(rule.function)
                self.pruner.prune(dataset, rule, instances, function, rng)
                if rule.is_empty():
                    break
                rule_set.add(rule)
                dataset.mark_correct(instances, target)
                available = int(
                    np.count_nonzero(instances.mask(Flag.NOT_COVERED) & in_class)
                )

        instances.mark_all(Flag.NOT_COVERED)
        rule_set.add(self._default_rule(dataset, instances, self.kind, rng))

        rule_set.quality = self.measure.evaluate(dataset, rule_set)
        rule_set.iteration = self.iteration
        return rule_set

    def update(self, archive: Archive[RuleSet]):
        super().update(archive)
        best: RuleSet = archive.highest()
        self.policy.update(self.graph, best)
        if self.dynamic_function:
            self.selector.update(best, self.policy, self.policy.factor)


class FindRuleActivity(IterativeActivity[Rule], _RuleActivity):
    """Ant-Miner activity: each ant creates a single rule over the instances
    still available. The run stops on stagnation without restarting."""

    restarts = False

    def __init__(
        self,
        graph: Graph,
        dataset: Dataset,
        instances: Instances,
        params: AlgorithmParams,
        factory: Optional[RuleFactory] = None,
        policy: Optional[PheromonePolicy] = None,
        heuristic: Optional[Heuristic] = None,
        pruner: Optional[Pruner] = None,
        kind: RuleKind = CLASSIFICATION,
    ):
        super().__init__(params)
        self._setup(params, heuristic, pruner)
        self.graph: Graph = graph
        self.dataset: Dataset = dataset
        self.instances: Instances = instances
        self.factory: RuleFactory = factory or VertexRuleFactory(
            params, self.builder, self.heuristic, kind
        )
        self.policy: PheromonePolicy = policy or VertexPheromonePolicy()
        self.initial_heuristic: np.ndarray = np.zeros(graph.size())

    def initialise(self):
        super().initialise()
        self.policy.initialise(self.graph)
        self.initial_heuristic = self._available_heuristic(
            self.graph, self.dataset, self.instances.copy()
        )

    def create(self, rng: np.random.Generator) -> Rule:
        instances: Instances = self.instances.copy()
        rule: Rule = self.factory.create(
            0, self.graph, self.initial_heuristic.copy(), self.dataset, instances, rng
        )
        self.pruner.prune(self.dataset, rule, instances, self.function, rng)
        return rule

    def update(self, archive: Archive[Rule]):
        super().update(archive)
        self.policy.update(self.graph, archive.highest())


class SequentialCovering:
    """Builds a rule list one rule at a time, running a complete
    :class:`FindRuleActivity` search for each rule and removing the
    instances it covers before the next one."""

    def __init__(self, params: AlgorithmParams, kind: RuleKind = CLASSIFICATION):
        self.params: AlgorithmParams = params
        self.kind: RuleKind = kind
        self.times: SearchTimes = SearchTimes()

    def _params(self, index: int) -> AlgorithmParams:
        params: AlgorithmParams = self.params.copy()
        if params["random_state"] is not None:
            params["random_state"] = params["random_state"] + index
        return params

    def train(self, graph: Graph, dataset: Dataset) -> RuleList:
        instances: Instances = Instances(dataset.size(), Flag.NOT_COVERED)
        rule_list: RuleList = RuleList()
        available: int = dataset.size()
        uncovered: int = uncovered_limit(dataset.size(), self.params["uncovered"])
        rng: np.random.Generator = np.random.default_rng(self.params["random_state"])

        while available > 0 and available >= uncovered:
            params: AlgorithmParams = self._params(rule_list.size())
            activity: FindRuleActivity = FindRuleActivity(
                graph, dataset, instances, params, kind=self.kind
            )
            scheduler: Scheduler[Rule] = Scheduler.new_instance(activity, params)
            scheduler.run()
            self.times += scheduler.times

            rule: Optional[Rule] = activity.best()
            if rule is None or rule.is_empty():
                break
            rule.apply(dataset, instances)
            rule_list.add(rule)
            available = dataset.mark_covered(instances)

        instances_left: Instances = (
            instances if available > 0 else Instances(dataset.size(), Flag.NOT_COVERED)
        )
        default: Rule = Rule(self.kind)
        default.apply(dataset, instances_left)
        default.assign(dataset, rng)
        rule_list.add(default)
        rule_list.quality = ListAccuracy().evaluate(dataset, rule_list)
        return rule_list
