import numpy as np
import pytest
import utils

from antrules._params import AlgorithmParams
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.rule._list import RuleList
from antrules.rule._rule import CLASSIFICATION
from antrules.rule._rule import HIERARCHICAL
from antrules.rule._rule import OPTIMISED
from antrules.rule._rule import RULE_KINDS
from antrules.rule._rule import Rule
from antrules.rule._rule import Term
from antrules.rule.activities import FindRuleActivity
from antrules.rule.factory import EdgeRuleFactory
from antrules.rule.graph import START_INDEX
from antrules.rule.graph import Graph
from antrules.rule.graph import GraphFactory
from antrules.rule.heuristic import EntropyHeuristic
from antrules.rule.pheromone import EdgePheromonePolicy
from antrules.rule.pheromone import LevelPheromonePolicy
from antrules.rule.pheromone import VertexPheromonePolicy
from antrules.scheduler import Scheduler


@pytest.fixture
def nominal() -> Dataset:
    return utils.to_dataset(utils.nominal_dataset())


def _rule(graph: Graph, vertex: int, quality: float) -> Rule:
    rule: Rule = Rule()
    rule.push(Term(vertex, graph.vertices[vertex].condition))
    rule.quality = Maximise(quality)
    return rule


def test_vertex_policy(nominal: Dataset):
    graph: Graph = GraphFactory.create(nominal)
    policy: VertexPheromonePolicy = VertexPheromonePolicy()
    policy.initialise(graph)

    assert graph.vertex_pheromone[START_INDEX] == 0.0
    assert np.all(graph.vertex_pheromone[1:] == graph.vertex_pheromone[1])

    policy.update(graph, _rule(graph, 2, 0.5))

    assert graph.vertex_pheromone[1:].sum() == pytest.approx(1.0)
    assert int(np.argmax(graph.vertex_pheromone)) == 2
    assert graph.vertex_pheromone[1] < graph.vertex_pheromone[2]


def test_edge_policy(nominal: Dataset):
    graph: Graph = GraphFactory.create(nominal)
    policy: EdgePheromonePolicy = EdgePheromonePolicy()
    policy.initialise(graph)

    for i in range(graph.size()):
        neighbours: list[int] = graph.neighbours(i)
        for j in neighbours:
            assert graph.matrix[i][j].value(0) == pytest.approx(1.0 / len(neighbours))

    policy.update(graph, _rule(graph, 3, 0.8))

    row: list[float] = [
        graph.matrix[START_INDEX][j].value(0) for j in graph.neighbours(START_INDEX)
    ]
    assert sum(row) == pytest.approx(1.0)
    assert graph.matrix[START_INDEX][3].value(0) == pytest.approx(max(row))


def test_rule_search_with_edge_pheromone(nominal: Dataset):
    params: AlgorithmParams = utils.params(
        colony_size=4, max_iterations=10, minimum_cases=2, random_state=5
    )
    graph: Graph = GraphFactory.create(nominal)
    builder: IntervalBuilder = IntervalBuilder(params)
    activity: FindRuleActivity = FindRuleActivity(
        graph,
        nominal,
        Instances(nominal.size(), Flag.NOT_COVERED),
        params,
        factory=EdgeRuleFactory(params, builder, EntropyHeuristic(builder)),
        policy=EdgePheromonePolicy(),
    )

    Scheduler.new_instance(activity, params).run()
    best: Rule = activity.best()

    assert best is not None
    assert best.quality > Maximise(0.0)
    assert len(best.attributes()) == best.size()


def test_level_policy_convergence(nominal: Dataset):
    graph: Graph = GraphFactory.create(nominal)
    policy: LevelPheromonePolicy = LevelPheromonePolicy(utils.params())
    policy.initialise(graph)
    policy.t_max = 1.0
    policy.t_min = 0.1
    rule: Rule = _rule(graph, 2, 0.9)
    solution: RuleList = RuleList()
    solution.add(rule)

    assert not policy.has_converged(graph, solution)

    for j in graph.neighbours(START_INDEX):
        graph.matrix[START_INDEX][j].set(0, 1.0 if j == 2 else 0.1)

    assert policy.has_converged(graph, solution)


def test_level_policy_bounds_after_updates(nominal: Dataset):
    graph: Graph = GraphFactory.create(nominal)
    policy: LevelPheromonePolicy = LevelPheromonePolicy(utils.params())
    policy.initialise(graph)
    solution: RuleList = RuleList()
    solution.add(_rule(graph, 2, 0.0))
    solution.add(Rule())
    solution.quality = Maximise(0.7)

    for _ in range(20):
        policy.update(graph, solution)

    assert policy.min() <= policy.max()
    for _, _, entry in graph.edges():
        # bounds are compared on values truncated to two decimal digits
        assert policy.min() - 0.01 <= entry.value(0) <= policy.max() + 0.01


def test_hierarchical_kind(nominal: Dataset):
    graph: Graph = GraphFactory.create(nominal)
    rule: Rule = Rule(HIERARCHICAL)
    rule.push(Term(1, graph.vertices[1].condition))
    rule.apply(nominal, Instances(nominal.size()))

    rule.assign(nominal, np.random.default_rng(0))

    assert rule.probabilities.sum() == pytest.approx(1.0)
    assert rule.consequent == int(np.argmax(rule.probabilities))
    assert rule.is_diverse()


def test_rule_kinds_by_name():
    assert RULE_KINDS["classification"] is CLASSIFICATION
    assert RULE_KINDS["optimised"] is OPTIMISED
    assert RULE_KINDS["hierarchical"] is HIERARCHICAL
