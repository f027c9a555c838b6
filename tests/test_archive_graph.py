import numpy as np
import pytest
import utils

from antrules._params import AlgorithmParams
from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.rule._list import RuleList
from antrules.rule._rule import Rule
from antrules.rule._rule import Term
from antrules.rule.activities import ArchiveFindRuleListActivity
from antrules.rule.archive_graph import END_INDEX
from antrules.rule.archive_graph import ArchiveGraph
from antrules.rule.archive_graph import ArchivePheromonePolicy
from antrules.rule.archive_graph import ArchiveRuleFactory
from antrules.rule.archive_graph import CategoricalArchive
from antrules.rule.archive_graph import ContinuousArchive
from antrules.rule.graph import START_INDEX


@pytest.fixture
def mixed() -> Dataset:
    return utils.to_dataset(utils.mixed_dataset())


def test_continuous_archive_samples_within_bounds():
    params: AlgorithmParams = utils.params(archive_size=4, precision=2)
    archive: ContinuousArchive = ContinuousArchive(-1.5, 3.0, params)
    rng: np.random.Generator = np.random.default_rng(5)

    for _ in range(100):
        value: float = archive.sample(rng)
        assert -1.5 <= value <= 3.0
        assert value == pytest.approx(round(value, 2))


def test_continuous_archive_samples_around_stored_values():
    params: AlgorithmParams = utils.params(archive_size=3)
    archive: ContinuousArchive = ContinuousArchive(0.0, 10.0, params)
    for quality in (0.2, 0.4, 0.6):
        archive.add(5.25, quality)
        archive.update()
    rng: np.random.Generator = np.random.default_rng(0)

    assert archive.archive.is_full()
    # all stored values are equal, so the deviation is zero
    assert all(archive.sample(rng) == 5.25 for _ in range(20))


def test_single_slot_archives_sample_the_stored_value():
    params: AlgorithmParams = utils.params(archive_size=1)
    continuous: ContinuousArchive = ContinuousArchive(0.0, 10.0, params)
    continuous.add(5.0, 0.5)
    continuous.update()
    categorical: CategoricalArchive = CategoricalArchive(3, params)
    categorical.add(2, 0.5)
    categorical.update()
    rng: np.random.Generator = np.random.default_rng(0)

    assert continuous.archive.is_full()
    assert all(continuous.sample(rng) == 5.0 for _ in range(20))
    assert all(0 <= categorical.sample(rng) < 3 for _ in range(20))


def test_archive_weights_after_update():
    params: AlgorithmParams = utils.params(archive_size=3)
    archive: ContinuousArchive = ContinuousArchive(0.0, 1.0, params)
    for value, quality in ((0.1, 0.3), (0.2, 0.9), (0.3, 0.6)):
        archive.add(value, quality)
    archive.update()

    weights: list[float] = [s.weight for s in archive.archive]

    assert [s.value for s in archive.archive] == [0.2, 0.3, 0.1]
    assert weights[0] > weights[1] > weights[2] > 0


def test_categorical_archive_prefers_stored_value():
    params: AlgorithmParams = utils.params(archive_size=3)
    archive: CategoricalArchive = CategoricalArchive(3, params)
    rng: np.random.Generator = np.random.default_rng(3)

    assert all(0 <= archive.sample(rng) < 3 for _ in range(50))

    for quality in (0.5, 0.6, 0.7):
        archive.add(1, quality)
        archive.update()
    samples: list[int] = [archive.sample(rng) for _ in range(200)]

    assert all(0 <= s < 3 for s in samples)
    assert samples.count(1) > 150


def test_graph_structure(mixed: Dataset):
    params: AlgorithmParams = utils.params()
    graph: ArchiveGraph = ArchiveGraph.create(mixed, params)
    n: int = graph.size()

    assert n == 2 + len(mixed.predictive_attributes())
    assert all(e is None for e in graph.matrix[END_INDEX])
    assert graph.matrix[START_INDEX][END_INDEX] is None
    for i in range(n):
        assert graph.matrix[i][START_INDEX] is None
        assert graph.matrix[i][i] is None
    assert graph.matrix[START_INDEX][2] is not None
    assert graph.matrix[2][END_INDEX] is not None

    heuristic: np.ndarray = graph.heuristic()
    assert heuristic[START_INDEX] == 0.0
    assert np.all(heuristic[1:] == 1.0)


def test_condition_sampling_per_attribute_type(mixed: Dataset):
    graph: ArchiveGraph = ArchiveGraph.create(mixed, utils.params())
    rng: np.random.Generator = np.random.default_rng(1)

    for vertex in range(2, graph.size()):
        condition: Condition = graph.condition(vertex, 0, rng)
        attribute = mixed.attributes[graph.vertices[vertex].attribute]
        assert condition.attribute == attribute.index
        if attribute.is_nominal:
            assert condition.relation == Relation.EQUAL_TO
            assert 0 <= condition.value[0] < attribute.size()
        else:
            assert condition.relation in (
                Relation.LESS_THAN_OR_EQUAL_TO,
                Relation.GREATER_THAN,
            )
            # values are truncated to two decimal digits
            assert attribute.lower - 0.01 <= condition.value[0] <= attribute.upper


@pytest.mark.parametrize("seed", range(5))
def test_factory_accepts_conditions_covering_minimum_cases(mixed: Dataset, seed: int):
    params: AlgorithmParams = utils.params(minimum_cases=5)
    graph: ArchiveGraph = ArchiveGraph.create(mixed, params)
    ArchivePheromonePolicy(params).initialise(graph)
    factory: ArchiveRuleFactory = ArchiveRuleFactory(params)
    instances: Instances = Instances(mixed.size(), Flag.NOT_COVERED)
    rng: np.random.Generator = np.random.default_rng(seed)

    rule: Rule = factory.create(0, graph, graph.heuristic(), mixed, instances, rng)

    assert rule.is_empty() or rule.covered.sum() >= 5
    assert len(rule.attributes()) == rule.size()
    assert instances.count(Flag.RULE_COVERED) == int(rule.covered.sum())


def _solution(dataset: Dataset, vertex: int, condition: Condition) -> RuleList:
    rule: Rule = Rule()
    rule.push(Term(vertex, condition))
    rule.apply(dataset, Instances(dataset.size()))
    solution: RuleList = RuleList()
    solution.add(rule)
    solution.add(Rule())
    solution.quality = Maximise(0.8)
    return solution


def test_policy_feeds_archives(mixed: Dataset):
    params: AlgorithmParams = utils.params()
    graph: ArchiveGraph = ArchiveGraph.create(mixed, params)
    policy: ArchivePheromonePolicy = ArchivePheromonePolicy(params)
    policy.initialise(graph)
    condition: Condition = Condition(
        attribute=0,
        relation=Relation.LESS_THAN_OR_EQUAL_TO,
        value=[3.0, 0.0],
        threshold=[3.0, 0.0],
    )

    policy.update(graph, _solution(mixed, 2, condition))

    vertex = graph.vertices[2]
    assert len(vertex.archive) == 1
    assert vertex.archive[0].values.archive.size() == 1
    assert vertex.archive[0].values.archive.highest().value == 3.0
    assert all(not v.archive for v in graph.vertices[3:])

    graph.reset_archives()
    assert all(not v.archive for v in graph.vertices)


def test_archives_survive_restart_and_reset_on_initialise(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5, random_state=0)
    graph: ArchiveGraph = ArchiveGraph.create(mixed, params)
    activity: ArchiveFindRuleListActivity = ArchiveFindRuleListActivity(
        graph, mixed, params
    )
    activity.initialise()

    rule_list: RuleList = activity.create(np.random.default_rng(0))
    graph.update(2, 0, graph.condition(2, 0, np.random.default_rng(1)), 0.5)
    activity.restart()

    assert rule_list.has_default()
    assert np.all(activity.initial_heuristic == graph.heuristic())
    assert graph.vertices[2].archive

    activity.initialise()
    assert not graph.vertices[2].archive
