"""Rule and rule list pruning.

Every rule pruner leaves the coverage flags, the class distributions and the
consequent of the rule consistent with its final terms, and sets the rule
quality. Pruning may remove every term of a rule.
"""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from typing import Optional

import numpy as np

from antrules._params import AlgorithmParams
from antrules.cost import Cost
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.exceptions import InvariantError
from antrules.quality import ListMeasure
from antrules.quality import RuleFunction
from antrules.rule._list import RuleList
from antrules.rule._rule import Rule
from antrules.rule._rule import Term


class Pruner(ABC):

    @abstractmethod
    def prune(
        self,
        dataset: Dataset,
        rule: Rule,
        instances: Instances,
        function: RuleFunction,
        rng: np.random.Generator,
    ) -> int:
        """Prunes the rule in place.

        Args:
            dataset (Dataset): training data
            rule (Rule): rule to prune, already applied to ``instances``
            instances (Instances): coverage flags of the rule
            function (RuleFunction): rule quality function
            rng (np.random.Generator): random generator used for tie breaks

        Returns:
            int: number of available instances not covered by the rule
        """


class NoPruner(Pruner):
    """Leaves the terms untouched, only assigns the consequent and the
    quality."""

    def prune(self, dataset, rule, instances, function, rng) -> int:
        available: int = rule.assign(dataset, rng)
        rule.quality = function.evaluate(rule)
        return available


class BacktrackPruner(Pruner):
    """Removes the last term while the quality of the rule does not
    decrease. When the rule kind restores the coverage on removal, the
    coverage flags are only brought up to date once at the end."""

    def prune(self, dataset, rule, instances, function, rng) -> int:
        available: int = rule.assign(dataset, rng)
        best: Cost = function.evaluate(rule)
        synced: bool = True

        while rule.size() > 1:
            last: Term = rule.pop()
            synced = rule.stale
            if rule.stale:
                rule.apply(dataset, instances)
            pruned: int = rule.assign(dataset, rng)
            current: Cost = function.evaluate(rule)

            if current >= best:
                available = pruned
                best = current
            else:
                rule.push(last)
                rule.apply(dataset, instances)
                available = rule.assign(dataset, rng)
                synced = True
                break

        if not synced:
            rule.apply(dataset, instances)
        rule.compact()
        rule.quality = best
        return available


class GreedyPruner(Pruner):
    """Repeatedly removes the term whose removal gives the best quality, as
    long as the quality does not decrease. Each pass compares the candidates
    against the quality at the start of the pass; among equally good
    candidates the first term is removed."""

    def prune(self, dataset, rule, instances, function, rng) -> int:
        rule.assign(dataset, rng)
        best: Cost = function.evaluate(rule)

        while rule.size() > 1:
            irrelevant: int = -1
            candidate: Optional[Cost] = None
            for i, term in enumerate(rule.terms):
                term.enabled = False
                rule.apply(dataset, instances)
                rule.assign(dataset, rng)
                current: Cost = function.evaluate(rule)
                if current >= best and (candidate is None or current > candidate):
                    candidate = current
                    irrelevant = i
                term.enabled = True

            if irrelevant == -1:
                break
            best = candidate
            rule.terms[irrelevant].enabled = False
            rule.compact()

        rule.apply(dataset, instances)
        available: int = rule.assign(dataset, rng)
        rule.quality = function.evaluate(rule)
        return available


class SinglePassPruner(Pruner):
    """Evaluates every prefix of the rule from a single pass over the data and
    keeps the shortest prefix with the best quality. Leading terms covering
    fewer than the minimum number of cases are dropped first."""

    def __init__(self, params: AlgorithmParams):
        self.minimum: int = params["minimum_cases"]

    def _prefix_coverage(
        self, dataset: Dataset, terms: list[Term], active: np.ndarray
    ) -> np.ndarray:
        """Covered mask of each prefix of ``terms`` over the active rows."""
        masks: np.ndarray = np.empty((len(terms), dataset.size()), dtype=bool)
        current: np.ndarray = active.copy()
        for j, term in enumerate(terms):
            condition = term.condition
            current = current & condition.satisfies_array(
                dataset.column(condition.attribute)
            )
            masks[j] = current
        return masks

    def prune(self, dataset, rule, instances, function, rng) -> int:
        rule.compact()
        terms: list[Term] = rule.terms
        active: np.ndarray = instances.flag != int(Flag.COVERED)

        start: int = 0
        masks: np.ndarray = self._prefix_coverage(dataset, terms, active)
        while start < len(terms) and np.count_nonzero(masks[0]) < self.minimum:
            terms[start].enabled = False
            start += 1
            masks = self._prefix_coverage(dataset, terms[start:], active)

        selected: int = -1
        best: Optional[Cost] = None
        for j in range(len(terms) - start):
            if np.count_nonzero(masks[j]) < self.minimum:
                # longer prefixes cover even fewer cases
                break
            rule.covered = dataset.distribution(masks[j])
            rule.uncovered = dataset.distribution(active & ~masks[j])
            rule.assign(dataset, rng)
            current: Cost = function.evaluate(rule)
            if best is None or current > best:
                selected = start + j
                best = current

        for term in terms[selected + 1:]:
            term.enabled = False
        rule.compact()
        rule.apply(dataset, instances)
        available: int = rule.assign(dataset, rng)
        rule.quality = function.evaluate(rule)
        return available


def pruner_from_params(params: AlgorithmParams) -> Pruner:
    name: str = params["pruner"]
    if name == "backtrack":
        return BacktrackPruner()
    if name == "greedy":
        return GreedyPruner()
    if name == "single_pass":
        return SinglePassPruner(params)
    if name == "none":
        return NoPruner()
    raise ValueError(f"Unknown pruner: {name}")


class ListPruner:
    """Top-down pruning of a rule list: the last term of each rule is removed
    while the quality of the whole list does not decrease. Rules left without
    terms, or covering fewer than the minimum number of cases, are
    disabled."""

    def __init__(self, params: AlgorithmParams, measure: ListMeasure):
        self.minimum: int = params["minimum_cases"]
        self.measure: ListMeasure = measure

    def prune(self, dataset: Dataset, rule_list: RuleList, rng: np.random.Generator):
        best: Cost = self.measure.evaluate(dataset, rule_list)

        for index, rule in enumerate(rule_list.rules):
            while rule.enabled and not rule.is_empty():
                last: Term = rule.pop()
                if rule.is_empty():
                    rule.enabled = False
                self._update(dataset, rule_list, index, rng)
                current: Cost = self.measure.evaluate(dataset, rule_list)
                if current >= best:
                    best = current
                else:
                    rule.push(last)
                    rule.enabled = True
                    self._update(dataset, rule_list, index, rng)
                    break

        rule_list.compact()

    def _update(
        self,
        dataset: Dataset,
        rule_list: RuleList,
        index: int,
        rng: np.random.Generator,
    ):
        instances: Instances = Instances(dataset.size(), Flag.NOT_COVERED)
        for i, rule in enumerate(rule_list.rules):
            # rules below the current one are considered even if disabled,
            # since their coverage might change
            if not (rule.enabled or i > index):
                continue
            coverage: int = rule.apply(dataset, instances)
            if coverage >= self.minimum or rule.is_empty():
                rule.assign(dataset, rng)
                dataset.mark_covered(instances)
                rule.enabled = True
            else:
                rule.enabled = False
                if i <= index:
                    raise InvariantError(
                        f"Invalid rule coverage during update: current rule {index}, "
                        f"disabled rule {i}"
                    )
