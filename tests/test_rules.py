import numpy as np
import pytest
import utils

from antrules._helpers import truncate
from antrules._params import AlgorithmParams
from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.exceptions import InvariantError
from antrules.interval import IntervalBuilder
from antrules.quality import ListAccuracy
from antrules.quality import ListPessimisticAccuracy
from antrules.quality import RuleFunction
from antrules.quality import sensitivity_specificity
from antrules.rule._list import RuleList
from antrules.rule._list import RuleSet
from antrules.rule._rule import CLASSIFICATION
from antrules.rule._rule import OPTIMISED
from antrules.rule._rule import Rule
from antrules.rule._rule import RuleKind
from antrules.rule._rule import Term
from antrules.rule.activities import FindRuleListActivity
from antrules.rule.activities import FindRuleSetActivity
from antrules.rule.activities import SequentialCovering
from antrules.rule.activities import uncovered_limit
from antrules.rule.factory import LevelRuleFactory
from antrules.rule.graph import START_INDEX
from antrules.rule.graph import Graph
from antrules.rule.graph import GraphFactory
from antrules.rule.heuristic import EntropyHeuristic
from antrules.rule.heuristic import Heuristic
from antrules.rule.pheromone import LevelPheromonePolicy
from antrules.rule.pruning import BacktrackPruner
from antrules.rule.pruning import GreedyPruner
from antrules.rule.pruning import ListPruner
from antrules.rule.pruning import NoPruner
from antrules.rule.pruning import Pruner
from antrules.rule.pruning import SinglePassPruner
from antrules.scheduler import Scheduler
from antrules.stats import estimated_errors


@pytest.fixture
def nominal() -> Dataset:
    return utils.to_dataset(utils.nominal_dataset())


@pytest.fixture
def mixed() -> Dataset:
    return utils.to_dataset(utils.mixed_dataset())


def _create_rule(
    dataset: Dataset,
    params: AlgorithmParams,
    seed: int,
    target: int,
    kind: RuleKind = CLASSIFICATION,
) -> tuple[Rule, Instances]:
    graph: Graph = GraphFactory.create(dataset)
    LevelPheromonePolicy(params).initialise(graph)
    builder: IntervalBuilder = IntervalBuilder(params)
    heuristic: Heuristic = EntropyHeuristic(builder)
    instances: Instances = Instances(dataset.size(), Flag.RULE_COVERED)
    values: np.ndarray = heuristic.compute(graph, dataset, instances)
    instances.mark_all(Flag.NOT_COVERED)
    factory: LevelRuleFactory = LevelRuleFactory(params, builder, heuristic, kind)
    rule: Rule = factory.create(
        0, graph, values, dataset, instances, np.random.default_rng(seed), target
    )
    return rule, instances


def test_graph_structure(mixed: Dataset):
    graph: Graph = GraphFactory.create(mixed)

    # START + x1 + x2 + three colors
    assert graph.size() == 6
    for i in range(graph.size()):
        assert graph.matrix[i][i] is None
        assert graph.matrix[i][START_INDEX] is None
        for j in graph.neighbours(i):
            assert graph.vertices[i].attribute != graph.vertices[j].attribute

    color: int = mixed.attributes[2].index
    assert len(graph.attribute_vertices(color)) == 3
    assert graph.vertices[graph.index_of(color, 1)].condition.value[0] == 1.0
    with pytest.raises(InvariantError):
        graph.index_of(color, 7)


def test_entry_levels():
    graph: Graph = GraphFactory.create(utils.to_dataset(utils.nominal_dataset()))
    _, _, entry = next(graph.edges())
    entry.reset(10.0, 10.0)
    entry.set(3, 2.0)

    assert entry.size() == 4
    assert entry.value(1) == 10.0
    assert entry.value(3) == 2.0
    assert entry.value(8) == 10.0
    with pytest.raises(InvariantError):
        entry.set(0, float("nan"))


def test_dataset_conversion(mixed: Dataset):
    assert mixed.class_length() == 3
    assert mixed.class_index == 3
    assert mixed.class_attribute.values == ["a", "b", "c"]
    assert mixed.attributes[2].is_nominal
    assert not mixed.attributes[0].is_nominal
    assert mixed.attributes[0].lower >= 0.0
    assert mixed.attributes[0].upper <= 10.0
    with pytest.raises(ValueError):
        mixed.attributes[2].index_of("purple")


def test_interval_builder(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5)
    builder: IntervalBuilder = IntervalBuilder(params)
    instances: Instances = Instances(mixed.size(), Flag.RULE_COVERED)

    conditions: list[Condition] = builder.multiple(mixed, instances, 0)

    assert [c.relation for c in conditions] == [
        Relation.LESS_THAN_OR_EQUAL_TO,
        Relation.GREATER_THAN,
    ]
    cut: float = conditions[0].value[0]
    assert 2.0 < cut < 8.0
    assert conditions[0].length + conditions[1].length == mixed.size()
    assert min(c.length for c in conditions) >= 5
    column: np.ndarray = mixed.column(0)
    assert np.count_nonzero(conditions[0].satisfies_array(column)) == conditions[0].length

    best: Condition = builder.single(mixed, instances, 0)
    assert best.entropy == min(c.entropy for c in conditions)


def test_interval_builder_without_valid_split():
    dataset: Dataset = utils.to_dataset(utils.mixed_dataset(12))
    builder: IntervalBuilder = IntervalBuilder(utils.params(minimum_cases=10))
    instances: Instances = Instances(dataset.size(), Flag.RULE_COVERED)

    assert builder.multiple(dataset, instances, 0) is None


def test_heuristic_is_non_negative(mixed: Dataset):
    graph: Graph = GraphFactory.create(mixed)
    heuristic: Heuristic = EntropyHeuristic(IntervalBuilder(utils.params()))
    values: np.ndarray = heuristic.compute(
        graph, mixed, Instances(mixed.size(), Flag.RULE_COVERED)
    )

    assert values[START_INDEX] == 0.0
    assert np.all(values >= 0.0)
    # x1 determines the class, x2 is noise
    assert values[1] > values[2]


def test_coverage_partition(mixed: Dataset):
    rule: Rule = Rule()
    rule.push(
        Term(1, Condition(attribute=0, relation=Relation.LESS_THAN_OR_EQUAL_TO, value=[5.0, 0.0]))
    )
    instances: Instances = Instances(mixed.size(), Flag.NOT_COVERED)

    covered: int = rule.apply(mixed, instances)

    assert set(np.unique(instances.flag)) <= {int(f) for f in Flag}
    assert covered == instances.count(Flag.RULE_COVERED)
    assert rule.covered.sum() + rule.uncovered.sum() == mixed.size()

    instances.flag[:10] = int(Flag.COVERED)
    rule.apply(mixed, instances)
    assert (
        rule.covered.sum() + rule.uncovered.sum() + instances.count(Flag.COVERED)
        == mixed.size()
    )
    assert instances.count(Flag.COVERED) == 10


def test_optimised_kind_restores_coverage(mixed: Dataset):
    rule: Rule = Rule(OPTIMISED)
    instances: Instances = Instances(mixed.size(), Flag.NOT_COVERED)
    rule.push(Term(1, Condition(attribute=0, relation=Relation.GREATER_THAN, value=[2.0, 0.0])))
    rule.apply(mixed, instances)
    covered: np.ndarray = rule.covered.copy()
    rule.push(Term(2, Condition(attribute=1, relation=Relation.GREATER_THAN, value=[0.0, 0.0])))
    rule.apply(mixed, instances)

    rule.pop()

    assert np.array_equal(rule.covered, covered)
    assert not rule.stale


def test_pop_leaves_classification_coverage_stale(mixed: Dataset):
    rule: Rule = Rule(CLASSIFICATION)
    instances: Instances = Instances(mixed.size(), Flag.NOT_COVERED)
    rule.push(Term(1, Condition(attribute=0, relation=Relation.GREATER_THAN, value=[2.0, 0.0])))
    rule.apply(mixed, instances)

    rule.pop()
    assert rule.stale

    rule.apply(mixed, instances)
    assert not rule.stale
    assert rule.covered.sum() == mixed.size()


@pytest.mark.parametrize("seed", range(5))
def test_backtrack_pruning_on_cached_coverage(mixed: Dataset, seed: int):
    params: AlgorithmParams = utils.params(minimum_cases=5)
    function: RuleFunction = RuleFunction(sensitivity_specificity)
    pruned: list[tuple] = []

    for kind in (CLASSIFICATION, OPTIMISED):
        rule, instances = _create_rule(mixed, params, seed, target=seed % 3, kind=kind)
        BacktrackPruner().prune(
            mixed, rule, instances, function, np.random.default_rng(seed)
        )

        assert not rule.stale
        assert instances.count(Flag.RULE_COVERED) == int(rule.covered.sum())
        pruned.append((rule.size(), rule.covered.tolist(), rule.quality))

    assert pruned[0] == pruned[1]


class _TableFunction:
    """Quality looked up from the vertices of the enabled terms."""

    def __init__(self, table: dict[frozenset, float]):
        self.table: dict[frozenset, float] = table

    def evaluate(self, rule: Rule) -> Maximise:
        key: frozenset = frozenset(t.vertex for t in rule.terms if t.enabled)
        return Maximise(self.table.get(key, 0.0))


def test_greedy_pruner_removes_first_of_equally_good_terms(mixed: Dataset):
    rule: Rule = Rule()
    for vertex, attribute, value in ((1, 0, 1.0), (2, 0, 0.5), (3, 1, -3.0)):
        rule.push(
            Term(
                vertex,
                Condition(
                    attribute=attribute, relation=Relation.GREATER_THAN, value=[value, 0.0]
                ),
            )
        )
    instances: Instances = Instances(mixed.size(), Flag.NOT_COVERED)
    rule.apply(mixed, instances)
    function: _TableFunction = _TableFunction(
        {
            frozenset({1, 2, 3}): 0.5,
            frozenset({2, 3}): 0.6,
            frozenset({1, 3}): 0.7,
            frozenset({1, 2}): 0.7,
            frozenset({1}): 0.6,
            frozenset({3}): 0.6,
        }
    )

    GreedyPruner().prune(mixed, rule, instances, function, np.random.default_rng(0))

    assert [t.vertex for t in rule.terms] == [1, 3]
    assert rule.quality == Maximise(0.7)



@pytest.mark.parametrize("seed", range(5))
@pytest.mark.parametrize(
    "pruner",
    [BacktrackPruner(), GreedyPruner(), SinglePassPruner({"minimum_cases": 5}), NoPruner()],
)
def test_pruning_non_degradation(mixed: Dataset, pruner: Pruner, seed: int):
    params: AlgorithmParams = utils.params(minimum_cases=5)
    function: RuleFunction = RuleFunction(sensitivity_specificity)
    rng: np.random.Generator = np.random.default_rng(seed)
    rule, instances = _create_rule(mixed, params, seed, target=seed % 3)
    rule.assign(mixed, rng)
    before = function.evaluate(rule)
    size: int = rule.size()

    pruner.prune(mixed, rule, instances, function, rng)

    assert rule.quality >= before
    assert rule.size() <= size
    assert all(t.enabled for t in rule.terms)


@pytest.mark.parametrize("seed", range(10))
def test_nominal_scenario(nominal: Dataset, seed: int):
    params: AlgorithmParams = utils.params(minimum_cases=2)
    function: RuleFunction = RuleFunction(sensitivity_specificity)
    rng: np.random.Generator = np.random.default_rng(seed)
    target: int = nominal.class_attribute.index_of("yes")

    rule, instances = _create_rule(nominal, params, seed, target)

    assert rule.covered.sum() >= 2
    assert instances.count(Flag.RULE_COVERED) == rule.covered.sum()
    before = function.evaluate(rule)

    SinglePassPruner(params).prune(nominal, rule, instances, function, rng)

    assert rule.quality >= before
    assert rule.covered.sum() >= 2 or rule.is_empty()


def test_pheromone_bounds(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5, random_state=7)
    graph: Graph = GraphFactory.create(mixed)
    activity: FindRuleListActivity = FindRuleListActivity(graph, mixed, params)
    activity.initialise()
    policy: LevelPheromonePolicy = activity.policy

    for seed in range(15):
        rule_list: RuleList = activity.create(np.random.default_rng(seed))
        policy.update(graph, rule_list)
        upper: float = truncate(policy.max())
        lower: float = truncate(policy.min())
        assert lower <= upper
        for _, _, entry in graph.edges():
            for level in range(entry.size()):
                value: float = truncate(entry.value(level))
                assert lower <= value <= upper


def test_rule_list_creation(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5)
    activity: FindRuleListActivity = FindRuleListActivity(
        GraphFactory.create(mixed), mixed, params
    )
    activity.initialise()

    rule_list: RuleList = activity.create(np.random.default_rng(0))

    assert rule_list.has_default()
    assert all(not r.is_empty() for r in rule_list.rules[:-1])
    predicted: np.ndarray = rule_list.predict_values(mixed.values)
    assert np.all(predicted >= 0)
    assert 0.0 < rule_list.quality.raw() <= 1.0
    assert "Number of rules" in rule_list.to_string(mixed)


def test_list_pruner_never_decreases_quality(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5, enable_list_pruning=False)
    activity: FindRuleListActivity = FindRuleListActivity(
        GraphFactory.create(mixed), mixed, params
    )
    activity.initialise()
    measure: ListAccuracy = ListAccuracy()

    for seed in range(5):
        rule_list: RuleList = activity.create(np.random.default_rng(seed))
        before = measure.evaluate(mixed, rule_list)
        ListPruner(params, measure).prune(mixed, rule_list, np.random.default_rng(seed))
        assert measure.evaluate(mixed, rule_list) >= before
        assert all(r.enabled for r in rule_list.rules)


def test_rule_set_creation(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5, dynamic_function=True)
    activity: FindRuleSetActivity = FindRuleSetActivity(
        GraphFactory.create(mixed), mixed, params
    )
    activity.initialise()

    rule_set: RuleSet = activity.create(np.random.default_rng(3))

    assert rule_set.has_default()
    consequents: set[int] = {r.consequent for r in rule_set.non_default_rules()}
    assert len(consequents) > 1
    assert all(r.function >= 0 for r in rule_set.non_default_rules())
    assert np.all(rule_set.predict_values(mixed.values) >= 0)


def test_rule_set_restart_resets_selector(mixed: Dataset):
    params: AlgorithmParams = utils.params(minimum_cases=5, dynamic_function=True)
    activity: FindRuleSetActivity = FindRuleSetActivity(
        GraphFactory.create(mixed), mixed, params
    )
    activity.initialise()
    selector = activity.selector

    activity.restart()

    assert activity.selector is not selector


def test_sequential_covering(mixed: Dataset):
    params: AlgorithmParams = utils.params(
        colony_size=5, max_iterations=20, stagnation=5, minimum_cases=5, random_state=1
    )
    covering: SequentialCovering = SequentialCovering(params)

    rule_list: RuleList = covering.train(GraphFactory.create(mixed), mixed)

    assert rule_list.size() >= 2
    assert rule_list.has_default()
    assert covering.times.total_training_time.total_seconds() > 0


def test_rule_list_search_improves_on_first_iteration(mixed: Dataset):
    params: AlgorithmParams = utils.params(
        max_iterations=15, minimum_cases=5, random_state=5
    )
    activity: FindRuleListActivity = FindRuleListActivity(
        GraphFactory.create(mixed), mixed, params
    )
    scheduler: Scheduler[RuleList] = Scheduler(activity, params)

    scheduler.run()

    assert activity.iteration <= 15
    assert activity.best() is not None
    assert activity.best().quality.raw() > 0.5


def test_uncovered_limit():
    assert uncovered_limit(200, 0.01) == 2
    assert uncovered_limit(20, 0.01) == 0


def _single_term_rule(vertex: int, attribute: int, value: float) -> Rule:
    rule: Rule = Rule()
    rule.push(
        Term(
            vertex,
            Condition(attribute=attribute, relation=Relation.GREATER_THAN, value=[value, 0.0]),
        )
    )
    return rule


def test_pessimistic_list_measure_skips_disabled_rules(mixed: Dataset):
    rng: np.random.Generator = np.random.default_rng(0)
    first: Rule = _single_term_rule(1, 0, 7.0)
    middle: Rule = _single_term_rule(2, 1, 0.0)
    default: Rule = Rule()
    rule_list: RuleList = RuleList()
    for rule in (first, middle, default):
        rule_list.add(rule)
    rule_list.apply(mixed)
    for rule in rule_list.rules:
        rule.assign(mixed, rng)
    measure: ListPessimisticAccuracy = ListPessimisticAccuracy()
    measure.evaluate(mixed, rule_list)

    middle.enabled = False
    disabled = measure.evaluate(mixed, rule_list)

    expected_list: RuleList = RuleList()
    expected_list.add(first)
    expected_list.add(default)
    assert disabled.raw() == pytest.approx(measure.evaluate(mixed, expected_list).raw())


def test_pessimistic_list_measure_without_consequent(mixed: Dataset):
    rule_list: RuleList = RuleList()
    rule_list.add(Rule())
    total: float = float(mixed.size())

    quality = ListPessimisticAccuracy().evaluate(mixed, rule_list)

    assert rule_list.rules[0].consequent == -1
    assert quality.raw() == pytest.approx(
        1.0 - (total + estimated_errors(total, total)) / total
    )


def test_rule_list_without_usable_attributes():
    dataset: Dataset = utils.to_dataset(utils.constant_dataset())
    params: AlgorithmParams = utils.params(minimum_cases=2)
    activity: FindRuleListActivity = FindRuleListActivity(
        GraphFactory.create(dataset), dataset, params
    )
    activity.initialise()

    rule_list: RuleList = activity.create(np.random.default_rng(0))

    assert rule_list.size() == 1
    assert rule_list.has_default()
    assert rule_list.rules[0].consequent == dataset.class_attribute.index_of("a")
    assert np.all(rule_list.predict_values(dataset.values) == 0)
