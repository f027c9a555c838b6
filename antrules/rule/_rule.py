"""Classification rules and the coverage behaviour of their variants."""
from __future__ import annotations

from abc import ABC
from abc import abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np
from decision_rules.classification import ClassificationConclusion
from decision_rules.classification import ClassificationRule
from decision_rules.conditions import CompoundCondition
from decision_rules.conditions import LogicOperators

from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.cost import Cost
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.exceptions import InvariantError

_CONTINUOUS_RELATIONS: tuple[Relation, ...] = (
    Relation.LESS_THAN_OR_EQUAL_TO,
    Relation.LESS_THAN,
    Relation.GREATER_THAN,
    Relation.GREATER_THAN_OR_EQUAL_TO,
    Relation.IN_RANGE,
)


@dataclass
class Term:
    vertex: int
    condition: Condition
    enabled: bool = True


class RuleKind(ABC):
    """Coverage behaviour of a rule: how it is applied to the instances, which
    instances it covers and how its consequent is determined. The kind is
    chosen when the rule is created."""

    name: str = ""

    def covers(self, rule: Rule, dataset: Dataset, instance: int) -> bool:
        for term in rule.terms:
            if term.enabled and not term.condition.satisfies(
                dataset.value(instance, term.condition.attribute)
            ):
                return False
        return True

    def apply(self, rule: Rule, dataset: Dataset, instances: Instances) -> int:
        """Flags every instance not yet COVERED as RULE_COVERED or
        NOT_COVERED and updates the class distributions of the rule.

        Returns:
            int: number of instances covered by the rule
        """
        mask: np.ndarray = rule.covers_mask(dataset)
        active: np.ndarray = instances.flag != int(Flag.COVERED)
        covered: np.ndarray = active & mask
        uncovered: np.ndarray = active & ~mask
        instances.flag[covered] = int(Flag.RULE_COVERED)
        instances.flag[uncovered] = int(Flag.NOT_COVERED)
        rule.covered = dataset.distribution(covered)
        rule.uncovered = dataset.distribution(uncovered)
        return int(np.count_nonzero(covered))

    @abstractmethod
    def consequent(self, rule: Rule, dataset: Dataset, rng: np.random.Generator):
        """Determines the consequent of the rule from its current coverage."""

    def on_pop(self, rule: Rule) -> bool:
        """Called after the last term of the rule is removed.

        Returns:
            bool: whether the coverage of the rule was restored, so that it
                does not need to be applied again
        """
        return False

    def is_diverse(self, rule: Rule) -> bool:
        return rule.diversity() > 1

    def __repr__(self) -> str:
        return f"RuleKind({self.name})"


class ClassificationKind(RuleKind):
    """Consequent is the majority class of the covered instances."""

    name = "classification"

    def consequent(self, rule: Rule, dataset: Dataset, rng: np.random.Generator):
        MajorityAssignator().assign(rule, rng)


class OptimisedKind(ClassificationKind):
    """Classification rule remembering the class distributions computed for
    each number of terms, so that removing the last term restores the
    previous coverage without a new pass over the dataset."""

    name = "optimised"

    def apply(self, rule: Rule, dataset: Dataset, instances: Instances) -> int:
        total: int = super().apply(rule, dataset, instances)
        rule.history[rule.size()] = (rule.covered.copy(), rule.uncovered.copy())
        return total

    def on_pop(self, rule: Rule) -> bool:
        size: int = rule.size()
        for key in [k for k in rule.history if k > size]:
            del rule.history[key]
        if size not in rule.history:
            return False
        covered, uncovered = rule.history[size]
        rule.covered = covered.copy()
        rule.uncovered = uncovered.copy()
        return True


class HierarchicalKind(RuleKind):
    """Probabilistic rule: the consequent is the class probability vector of
    the covered instances. Such a rule is never considered pure, so the
    construction keeps specialising it."""

    name = "hierarchical"

    def consequent(self, rule: Rule, dataset: Dataset, rng: np.random.Generator):
        total: float = rule.covered.sum()
        if total > 0:
            rule.probabilities = rule.covered / total
        else:
            rule.probabilities = np.full(
                dataset.class_length(), 1.0 / dataset.class_length()
            )
        rule.consequent = int(np.argmax(rule.probabilities))

    def is_diverse(self, rule: Rule) -> bool:
        return True


CLASSIFICATION: RuleKind = ClassificationKind()
OPTIMISED: RuleKind = OptimisedKind()
HIERARCHICAL: RuleKind = HierarchicalKind()

RULE_KINDS: dict[str, RuleKind] = {
    kind.name: kind for kind in (CLASSIFICATION, OPTIMISED, HIERARCHICAL)
}


class Rule:

    def __init__(self, kind: RuleKind = CLASSIFICATION):
        self.kind: RuleKind = kind
        self.terms: list[Term] = []
        self.consequent: int = -1
        self.probabilities: Optional[np.ndarray] = None
        self.quality: Cost = Maximise()
        self.enabled: bool = True
        self.weight: float = 0.0
        #: index of the quality function used to prune the rule, -1 if fixed
        self.function: int = -1
        #: consequent chosen before construction, kept by the assignator
        self.fixed: bool = False
        self.covered: np.ndarray = np.zeros(0)
        self.uncovered: np.ndarray = np.zeros(0)
        self.history: dict[int, tuple[np.ndarray, np.ndarray]] = {}
        #: coverage information does not match the terms after a pop
        self.stale: bool = False

    def push(self, term: Term):
        self.terms.append(term)

    def pop(self) -> Term:
        term: Term = self.terms.pop()
        self.stale = not self.kind.on_pop(self)
        return term

    def compact(self):
        """Physically removes the disabled terms."""
        enabled: list[Term] = self.enabled_terms()
        if len(enabled) != len(self.terms):
            self.terms = enabled
            self.history.clear()

    def size(self) -> int:
        return len(self.terms)

    def enabled_terms(self) -> list[Term]:
        return [t for t in self.terms if t.enabled]

    def is_empty(self) -> bool:
        return not self.enabled_terms()

    def attributes(self) -> set[int]:
        return {t.condition.attribute for t in self.terms if t.enabled}

    def covers(self, dataset: Dataset, instance: int) -> bool:
        return self.kind.covers(self, dataset, instance)

    def covers_values(self, values: np.ndarray) -> np.ndarray:
        mask: np.ndarray = np.ones(values.shape[0], dtype=bool)
        for term in self.terms:
            if term.enabled:
                mask &= term.condition.satisfies_array(
                    values[:, term.condition.attribute]
                )
        return mask

    def covers_mask(self, dataset: Dataset) -> np.ndarray:
        return self.covers_values(dataset.values)

    def apply(self, dataset: Dataset, instances: Instances) -> int:
        self.stale = False
        return self.kind.apply(self, dataset, instances)

    def assign(self, dataset: Dataset, rng: np.random.Generator) -> int:
        """Determines the consequent unless it is fixed.

        Returns:
            int: number of available instances not covered by the rule
        """
        if not self.fixed:
            self.kind.consequent(self, dataset, rng)
        return self.available()

    def available(self) -> int:
        """Returns the number of available instances not covered by the
        rule."""
        return int(self.uncovered.sum())

    def diversity(self) -> int:
        """Returns the number of different classes among the covered
        instances.

        Raises:
            InvariantError: if the rule has no coverage information
        """
        diversity: int = int(np.count_nonzero(self.covered))
        if diversity == 0:
            raise InvariantError("Covered information empty")
        return diversity

    def is_diverse(self) -> bool:
        return self.kind.is_diverse(self)

    def compare_to(self, other: Rule) -> int:
        """Positive when this rule is better: higher quality first, then
        fewer terms."""
        result: int = self.quality.compare_to(other.quality)
        if result == 0:
            return other.size() - self.size()
        return result

    def __lt__(self, other: Rule) -> bool:
        return self.compare_to(other) < 0

    def fix_thresholds(self, dataset: Dataset):
        """Replaces the interval cut points of continuous conditions by the
        closest values occurring in the dataset."""
        for term in self.terms:
            c: Condition = term.condition
            if c.relation not in _CONTINUOUS_RELATIONS:
                continue
            column: np.ndarray = dataset.column(c.attribute)
            slots: int = 2 if c.relation == Relation.IN_RANGE else 1
            for k in range(slots):
                candidates: np.ndarray = column[
                    (column <= c.value[k]) & (column > c.threshold[k])
                ]
                if len(candidates) > 0:
                    c.threshold[k] = float(candidates.max())
                c.value[k] = c.threshold[k]

    def to_string(self, dataset: Dataset) -> str:
        parts: list[str] = []
        for term in self.terms:
            if not term.enabled:
                raise InvariantError("A rule should not contain disabled terms")
            parts.append(term.condition.to_string(dataset))
        antecedent: str = " AND ".join(parts) if parts else "<empty>"
        if self.consequent < 0:
            consequent: str = "<undefined>"
        else:
            consequent = dataset.class_attribute.value(self.consequent)
        return f"IF {antecedent} THEN {consequent}"

    def to_decision_rules(self, dataset: Dataset) -> ClassificationRule:
        """Converts the rule to a decision-rules classification rule."""
        premise = CompoundCondition(
            subconditions=[
                t.condition.to_decision_rules(dataset) for t in self.enabled_terms()
            ],
            logic_operator=LogicOperators.CONJUNCTION,
        )
        return ClassificationRule(
            premise=premise,
            conclusion=ClassificationConclusion(
                value=dataset.class_attribute.value(self.consequent),
                column_name=dataset.class_attribute.name,
            ),
            column_names=[a.name for a in dataset.predictive_attributes()],
        )

    def __repr__(self) -> str:
        return (
            f"Rule(terms={len(self.terms)}, consequent={self.consequent}, "
            f"quality={self.quality})"
        )


class MajorityAssignator:
    """Assigns the majority class of the covered instances. Ties are broken
    at random, unless the current consequent is one of the tied classes."""

    def assign(self, rule: Rule, rng: np.random.Generator) -> int:
        """
        Returns:
            int: number of uncovered instances
        """
        if len(rule.covered) > 0:
            highest: float = rule.covered.max()
            candidates: np.ndarray = np.flatnonzero(rule.covered == highest)
            if rule.consequent not in candidates:
                rule.consequent = int(candidates[rng.integers(len(candidates))])
        return rule.available()
