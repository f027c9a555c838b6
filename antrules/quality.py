"""Rule and rule list quality functions.

Rule quality functions follow the decision-rules convention: they are plain
callables mapping a :class:`decision_rules.core.coverage.Coverage` (positives
and negatives covered by the rule, total positives and negatives) to a float,
so every measure from :mod:`decision_rules.measures` can be used directly.
"""
from __future__ import annotations

import math
from abc import ABC
from abc import abstractmethod
from typing import Callable
from typing import TYPE_CHECKING

import numpy as np
from decision_rules import measures
from decision_rules.core.coverage import Coverage
from sklearn.metrics import accuracy_score

from antrules.cost import Cost
from antrules.cost import Maximise
from antrules.stats import estimated_errors

if TYPE_CHECKING:
    from antrules.dataset import Dataset
    from antrules.rule._list import RuleList
    from antrules.rule._rule import Rule


def sensitivity_specificity(c: Coverage) -> float:
    """Sensitivity x specificity, the measure of the original Ant-Miner."""
    if c.P == 0 or c.N == 0:
        return 0.0
    return (c.p / c.P) * ((c.N - c.n) / c.N)


def laplace(c: Coverage) -> float:
    return (c.p + 1.0) / (c.p + c.n + 2.0)


def accuracy(c: Coverage) -> float:
    total: float = c.P + c.N
    if total == 0:
        return 0.0
    return (c.p + (c.N - c.n)) / total


def m_estimate(c: Coverage, m: float = 2.0) -> float:
    total: float = c.P + c.N
    if total == 0:
        return 0.0
    return (c.p + m * (c.P / total)) / (c.p + c.n + m)


def pessimistic_accuracy(c: Coverage) -> float:
    """One minus the C4.5 pessimistic error rate of the covered cases."""
    total: float = c.p + c.n
    if total == 0:
        return 0.0
    return 1.0 - (c.n + estimated_errors(total, c.n)) / total


#: functions available to the pheromone based function selector
FUNCTIONS: tuple[Callable[[Coverage], float], ...] = (
    accuracy,
    laplace,
    m_estimate,
    pessimistic_accuracy,
    sensitivity_specificity,
    measures.c2,
    measures.correlation,
)


def rule_coverage(rule: Rule) -> Coverage:
    """Builds the coverage of a rule from its covered and uncovered class
    distributions, taking the consequent as the positive class."""
    covered: np.ndarray = rule.covered
    uncovered: np.ndarray = rule.uncovered
    predicted: int = rule.consequent
    p: float = float(covered[predicted])
    n: float = float(covered.sum() - p)
    P: float = p + float(uncovered[predicted])
    N: float = float(covered.sum() + uncovered.sum()) - P
    return Coverage(p, n, P, N)


class RuleFunction:
    """Wraps a coverage based measure into a rule evaluation returning a
    :class:`Maximise` cost."""

    def __init__(self, measure: Callable[[Coverage], float]):
        self.measure: Callable[[Coverage], float] = measure

    def evaluate(self, rule: Rule) -> Maximise:
        coverage: Coverage = rule_coverage(rule)
        if coverage.p + coverage.n == 0:
            return Maximise(0.0)
        value: float = float(self.measure(coverage))
        return Maximise(0.0 if math.isnan(value) else value)

    def __repr__(self) -> str:
        return f"RuleFunction({getattr(self.measure, '__name__', self.measure)})"


class ListMeasure(ABC):

    @abstractmethod
    def evaluate(self, dataset: Dataset, rule_list: RuleList) -> Cost:
        pass


class ListAccuracy(ListMeasure):
    """Fraction of the training instances correctly classified by the list."""

    def evaluate(self, dataset: Dataset, rule_list: RuleList) -> Cost:
        if rule_list.size() == 0:
            return Maximise()
        predicted: np.ndarray = rule_list.predict_values(dataset.values)
        return Maximise(accuracy_score(dataset.target, predicted))


class ListPessimisticAccuracy(ListMeasure):
    """One minus the sum of the C4.5 estimated errors of every enabled rule,
    divided by the number of instances."""

    def evaluate(self, dataset: Dataset, rule_list: RuleList) -> Cost:
        if rule_list.size() == 0:
            return Maximise()
        rule_list.apply(dataset)
        predicted: float = 0.0
        for rule in rule_list.rules:
            if not rule.enabled:
                continue
            coverage: float = float(rule.covered.sum())
            # a rule without consequent misclassifies every covered instance
            errors: float = coverage
            if rule.consequent >= 0:
                errors -= float(rule.covered[rule.consequent])
            predicted += errors + estimated_errors(coverage, errors)
        return Maximise(1.0 - predicted / dataset.size())


def list_measure(name: str) -> ListMeasure:
    if name == "accuracy":
        return ListAccuracy()
    if name == "pessimistic":
        return ListPessimisticAccuracy()
    raise ValueError(f"Unknown list measure: {name}")
