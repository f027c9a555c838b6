from typing import Literal
from typing import Optional

import pandas as pd
from decision_rules.classification import ClassificationRuleSet

from antrules._model import BaseModel
from antrules._params import DEFAULT_PARAMS_VALUES
from antrules._params import AlgorithmParams
from antrules._params import QualityMeasure
from antrules.dataset import Dataset
from antrules.rule._list import RuleList
from antrules.rule._list import RuleSet
from antrules.rule.activities import ArchiveFindRuleListActivity
from antrules.rule.activities import FindRuleListActivity
from antrules.rule.activities import FindRuleSetActivity
from antrules.rule.activities import SequentialCovering
from antrules.rule.archive_graph import ArchiveGraph
from antrules.rule.graph import GraphFactory
from antrules.scheduler import Scheduler


class AntMinerClassifier(BaseModel):
    """Ant-Miner classifier. Rules are discovered one at a time by sequential
    covering: every rule is the best one found by a complete ACO search over
    the instances not covered by the previous rules. The result is an ordered
    rule list ending with a default rule.
    """

    def __init__(
        self,
        colony_size: int = 60,
        max_iterations: int = 1500,
        stagnation: int = 10,
        minimum_cases: int = DEFAULT_PARAMS_VALUES["minimum_cases"],
        maximum_limit: int = DEFAULT_PARAMS_VALUES["maximum_limit"],
        uncovered: float = DEFAULT_PARAMS_VALUES["uncovered"],
        heuristic: Literal["entropy", "class_frequency", "none"] = DEFAULT_PARAMS_VALUES[
            "heuristic"
        ],
        rule_quality: QualityMeasure = DEFAULT_PARAMS_VALUES["rule_quality"],
        pruner: Literal["backtrack", "greedy", "single_pass", "none"] = "greedy",
        parallel: Optional[int] = DEFAULT_PARAMS_VALUES["parallel"],
        random_state: Optional[int] = DEFAULT_PARAMS_VALUES["random_state"],
    ):
        """
        Args:
            colony_size (int, optional): Number of rules created in each
                iteration of the search of a rule. Defaults to 60.
            max_iterations (int, optional): Maximum number of iterations of the
                search of a rule. Defaults to 1500.
            stagnation (int, optional): Number of iterations without
                improvement after which the search of a rule stops. Defaults
                to 10.
            minimum_cases (int, optional): Minimum number of instances covered
                by a rule. Defaults to DEFAULT_PARAMS_VALUES["minimum_cases"].
            maximum_limit (int, optional): Maximum number of candidate cut
                points of continuous attributes. Defaults to
                DEFAULT_PARAMS_VALUES["maximum_limit"].
            uncovered (float, optional): Fraction of the training instances
                that may remain uncovered by the rules. Defaults to
                DEFAULT_PARAMS_VALUES["uncovered"].
            heuristic (str, optional): Heuristic information of the terms.
                Defaults to DEFAULT_PARAMS_VALUES["heuristic"].
            rule_quality (QualityMeasure, optional): Quality measure of the
                rules. Defaults to DEFAULT_PARAMS_VALUES["rule_quality"].
            pruner (str, optional): Rule pruning procedure. Defaults to
                "greedy".
            parallel (Optional[int], optional): Number of worker threads
                creating the rules of an iteration, -1 for all the cores and
                None to create them sequentially. Defaults to None.
            random_state (Optional[int], optional): Seed of the search.
                Defaults to None.
        """
        # pylint: disable=unused-argument
        params: dict = locals()
        params.pop("self")
        super().__init__(**params)

    def _search(self, dataset: Dataset, params: AlgorithmParams) -> RuleList:
        covering: SequentialCovering = SequentialCovering(params)
        rule_list: RuleList = covering.train(GraphFactory.create(dataset), dataset)
        self.search_times = covering.times
        return rule_list

    def fit(self, X: pd.DataFrame, y: pd.Series) -> RuleList:
        return super().fit(X, y)


class PittsburghClassifier(BaseModel):
    """cAnt-Miner PB classifier. Each ant creates a complete rule list and
    the pheromone reinforces the terms of the best list of every iteration,
    so the rules are optimised together instead of one at a time.
    """

    def __init__(
        self,
        colony_size: int = DEFAULT_PARAMS_VALUES["colony_size"],
        max_iterations: int = DEFAULT_PARAMS_VALUES["max_iterations"],
        stagnation: int = DEFAULT_PARAMS_VALUES["stagnation"],
        evaporation_factor: float = DEFAULT_PARAMS_VALUES["evaporation_factor"],
        p_best: float = DEFAULT_PARAMS_VALUES["p_best"],
        minimum_cases: int = DEFAULT_PARAMS_VALUES["minimum_cases"],
        maximum_limit: int = DEFAULT_PARAMS_VALUES["maximum_limit"],
        uncovered: float = DEFAULT_PARAMS_VALUES["uncovered"],
        dynamic_heuristic: bool = DEFAULT_PARAMS_VALUES["dynamic_heuristic"],
        heuristic: Literal["entropy", "class_frequency", "none"] = DEFAULT_PARAMS_VALUES[
            "heuristic"
        ],
        rule_quality: QualityMeasure = DEFAULT_PARAMS_VALUES["rule_quality"],
        pruner: Literal["backtrack", "greedy", "single_pass", "none"] = DEFAULT_PARAMS_VALUES[
            "pruner"
        ],
        list_measure: Literal["accuracy", "pessimistic"] = "pessimistic",
        enable_list_pruning: bool = DEFAULT_PARAMS_VALUES["enable_list_pruning"],
        parallel: Optional[int] = DEFAULT_PARAMS_VALUES["parallel"],
        random_state: Optional[int] = DEFAULT_PARAMS_VALUES["random_state"],
    ):
        """
        Args:
            colony_size (int, optional): Number of rule lists created in each
                iteration. Defaults to DEFAULT_PARAMS_VALUES["colony_size"].
            max_iterations (int, optional): Maximum number of iterations.
                Defaults to DEFAULT_PARAMS_VALUES["max_iterations"].
            stagnation (int, optional): Number of iterations without
                improvement after which the pheromone is reset once, and the
                search stops the second time. Defaults to
                DEFAULT_PARAMS_VALUES["stagnation"].
            evaporation_factor (float, optional): Fraction of the pheromone
                kept at each update. Defaults to
                DEFAULT_PARAMS_VALUES["evaporation_factor"].
            p_best (float, optional): Probability of constructing the best
                solution once converged, used to derive the minimum pheromone.
                Defaults to DEFAULT_PARAMS_VALUES["p_best"].
            minimum_cases (int, optional): Minimum number of instances covered
                by a rule. Defaults to DEFAULT_PARAMS_VALUES["minimum_cases"].
            maximum_limit (int, optional): Maximum number of candidate cut
                points of continuous attributes. Defaults to
                DEFAULT_PARAMS_VALUES["maximum_limit"].
            uncovered (float, optional): Fraction of the training instances
                that may remain uncovered by the rules. Defaults to
                DEFAULT_PARAMS_VALUES["uncovered"].
            dynamic_heuristic (bool, optional): Recomputes the heuristic
                information on the instances covered by the partial rule.
                Defaults to DEFAULT_PARAMS_VALUES["dynamic_heuristic"].
            heuristic (str, optional): Heuristic information of the terms.
                Defaults to DEFAULT_PARAMS_VALUES["heuristic"].
            rule_quality (QualityMeasure, optional): Quality measure used to
                prune the rules. Defaults to DEFAULT_PARAMS_VALUES["rule_quality"].
            pruner (str, optional): Rule pruning procedure. Defaults to
                DEFAULT_PARAMS_VALUES["pruner"].
            list_measure (str, optional): Quality measure of the rule lists.
                Defaults to "pessimistic".
            enable_list_pruning (bool, optional): Removes the last terms and
                rules of a list while its quality does not decrease. Defaults
                to DEFAULT_PARAMS_VALUES["enable_list_pruning"].
            parallel (Optional[int], optional): Number of worker threads
                creating the lists of an iteration, -1 for all the cores and
                None to create them sequentially. Defaults to None.
            random_state (Optional[int], optional): Seed of the search.
                Defaults to None.
        """
        # pylint: disable=unused-argument
        params: dict = locals()
        params.pop("self")
        super().__init__(**params)

    def _activity(self, dataset: Dataset, params: AlgorithmParams) -> FindRuleListActivity:
        return FindRuleListActivity(GraphFactory.create(dataset), dataset, params)

    def _search(self, dataset: Dataset, params: AlgorithmParams) -> RuleList:
        activity: FindRuleListActivity = self._activity(dataset, params)
        scheduler: Scheduler[RuleList] = Scheduler.new_instance(activity, params)
        scheduler.run()
        self.search_times = scheduler.times
        return activity.best()

    def fit(self, X: pd.DataFrame, y: pd.Series) -> RuleList:
        return super().fit(X, y)


class ArchiveClassifier(PittsburghClassifier):
    """cAnt-Miner PB variant sampling the conditions of continuous and nominal
    attributes from solution archives kept at every vertex of the
    construction graph, instead of computing the cut points from the data.
    """

    def __init__(
        self,
        colony_size: int = 100,
        max_iterations: int = DEFAULT_PARAMS_VALUES["max_iterations"],
        stagnation: int = 10,
        evaporation_factor: float = DEFAULT_PARAMS_VALUES["evaporation_factor"],
        p_best: float = DEFAULT_PARAMS_VALUES["p_best"],
        archive_size: int = 20,
        q: float = DEFAULT_PARAMS_VALUES["q"],
        convergence_speed: float = DEFAULT_PARAMS_VALUES["convergence_speed"],
        precision: int = DEFAULT_PARAMS_VALUES["precision"],
        minimum_cases: int = DEFAULT_PARAMS_VALUES["minimum_cases"],
        uncovered: float = DEFAULT_PARAMS_VALUES["uncovered"],
        rule_quality: QualityMeasure = DEFAULT_PARAMS_VALUES["rule_quality"],
        pruner: Literal["backtrack", "greedy", "single_pass", "none"] = "single_pass",
        list_measure: Literal["accuracy", "pessimistic"] = "pessimistic",
        enable_list_pruning: bool = False,
        parallel: Optional[int] = DEFAULT_PARAMS_VALUES["parallel"],
        random_state: Optional[int] = DEFAULT_PARAMS_VALUES["random_state"],
    ):
        """
        Args:
            archive_size (int, optional): Number of solutions kept by each
                archive. Defaults to 20.
            q (float, optional): Locality of the search; small values favour
                the best solutions of the archives. Defaults to
                DEFAULT_PARAMS_VALUES["q"].
            convergence_speed (float, optional): Scale of the deviation of the
                sampled continuous values. Defaults to
                DEFAULT_PARAMS_VALUES["convergence_speed"].
            precision (int, optional): Number of decimal digits of the sampled
                continuous values. Defaults to DEFAULT_PARAMS_VALUES["precision"].

        The remaining arguments are the ones of :class:`PittsburghClassifier`.
        """
        # pylint: disable=unused-argument
        params: dict = locals()
        params.pop("self")
        BaseModel.__init__(self, **params)

    def _activity(self, dataset: Dataset, params: AlgorithmParams) -> FindRuleListActivity:
        return ArchiveFindRuleListActivity(
            ArchiveGraph.create(dataset, params), dataset, params
        )


class UnorderedClassifier(PittsburghClassifier):
    """Unordered cAnt-Miner PB classifier. Each ant creates a set of rules
    for every class in turn; an instance is classified by the best rule
    covering it. With ``dynamic_function`` the quality function used to prune
    each rule is learned together with the rules.
    """

    def __init__(
        self,
        colony_size: int = DEFAULT_PARAMS_VALUES["colony_size"],
        max_iterations: int = DEFAULT_PARAMS_VALUES["max_iterations"],
        stagnation: int = DEFAULT_PARAMS_VALUES["stagnation"],
        evaporation_factor: float = DEFAULT_PARAMS_VALUES["evaporation_factor"],
        p_best: float = DEFAULT_PARAMS_VALUES["p_best"],
        minimum_cases: int = DEFAULT_PARAMS_VALUES["minimum_cases"],
        maximum_limit: int = DEFAULT_PARAMS_VALUES["maximum_limit"],
        uncovered: float = DEFAULT_PARAMS_VALUES["uncovered"],
        dynamic_heuristic: bool = DEFAULT_PARAMS_VALUES["dynamic_heuristic"],
        dynamic_function: bool = True,
        heuristic: Literal["entropy", "class_frequency", "none"] = "class_frequency",
        rule_quality: QualityMeasure = DEFAULT_PARAMS_VALUES["rule_quality"],
        pruner: Literal["backtrack", "greedy", "single_pass", "none"] = DEFAULT_PARAMS_VALUES[
            "pruner"
        ],
        list_measure: Literal["accuracy", "pessimistic"] = "accuracy",
        parallel: Optional[int] = DEFAULT_PARAMS_VALUES["parallel"],
        random_state: Optional[int] = DEFAULT_PARAMS_VALUES["random_state"],
    ):
        """
        Args:
            dynamic_function (bool, optional): Selects the rule quality
                function of each rule with pheromone. Defaults to True.

        The remaining arguments are the ones of :class:`PittsburghClassifier`.
        """
        # pylint: disable=unused-argument
        params: dict = locals()
        params.pop("self")
        BaseModel.__init__(self, **params)

    def _activity(self, dataset: Dataset, params: AlgorithmParams) -> FindRuleSetActivity:
        return FindRuleSetActivity(GraphFactory.create(dataset), dataset, params)

    def fit(self, X: pd.DataFrame, y: pd.Series) -> RuleSet:
        return super().fit(X, y)

    def to_ruleset(self) -> ClassificationRuleSet:
        """Exports the induced rules as a ruleset of the `decision_rules
        <https://github.com/ruleminer/decision-rules>`_ package.
        """
        if self.model_ is None:
            raise ValueError("Model is not fitted, call fit first.")
        ruleset: ClassificationRuleSet = self.model_.to_decision_rules(self.dataset_)
        ruleset.decision_attribute = self.dataset_.class_attribute.name
        return ruleset
