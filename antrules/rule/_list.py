from __future__ import annotations

from typing import Optional

import numpy as np
from decision_rules.classification import ClassificationRuleSet

from antrules.cost import Cost
from antrules.cost import Maximise
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.rule._rule import Rule


class RuleList:
    """Ordered list of rules, optionally ending with a default rule (a rule
    without terms). An instance is classified by the first rule covering
    it."""

    def __init__(self):
        self.rules: list[Rule] = []
        self.quality: Cost = Maximise()
        self.iteration: int = 0
        self.weight: float = 0.0

    def add(self, rule: Rule):
        self.rules.append(rule)

    def size(self) -> int:
        return len(self.rules)

    def has_default(self) -> bool:
        return bool(self.rules) and self.rules[-1].is_empty()

    def default_rule(self) -> Optional[Rule]:
        return self.rules[-1] if self.has_default() else None

    def non_default_rules(self) -> list[Rule]:
        return [r for r in self.rules if not r.is_empty()]

    def total_terms(self) -> int:
        return sum(r.size() for r in self.rules)

    def compact(self):
        """Removes the disabled rules."""
        self.rules = [r for r in self.rules if r.enabled]

    def fix_thresholds(self, dataset: Dataset):
        for rule in self.rules:
            rule.fix_thresholds(dataset)

    def apply(self, dataset: Dataset) -> Instances:
        """Updates the coverage of every rule: instances covered by a rule are
        not available to the rules that follow it."""
        instances: Instances = Instances(dataset.size(), Flag.NOT_COVERED)
        for rule in self.rules:
            if rule.enabled:
                rule.apply(dataset, instances)
                dataset.mark_covered(instances)
        return instances

    def predict_values(self, values: np.ndarray) -> np.ndarray:
        """Returns the predicted class index of each row; -1 for rows not
        covered by any rule."""
        predicted: np.ndarray = np.full(values.shape[0], -1, dtype=int)
        pending: np.ndarray = np.ones(values.shape[0], dtype=bool)
        for rule in self.rules:
            if not rule.enabled:
                continue
            fired: np.ndarray = pending & rule.covers_values(values)
            predicted[fired] = rule.consequent
            pending &= ~fired
        return predicted

    def compare_to(self, other: RuleList) -> int:
        """Positive when this list is better: higher quality, then fewer rules,
        then fewer terms."""
        result: int = self.quality.compare_to(other.quality)
        if result != 0:
            return result
        if self.size() != other.size():
            return other.size() - self.size()
        return other.total_terms() - self.total_terms()

    def __lt__(self, other: RuleList) -> bool:
        return self.compare_to(other) < 0

    def to_string(self, dataset: Dataset) -> str:
        lines: list[str] = [
            f"{i + 1:>3}: {rule.to_string(dataset)}"
            for i, rule in enumerate(self.rules)
        ]
        lines.append("")
        lines.append(f"Number of rules: {self.size()}")
        lines.append(f"Number of terms: {self.total_terms()}")
        lines.append(f"Average number of terms: {self.total_terms() / max(self.size(), 1):.2f}")
        lines.append(f"List quality: {self.quality.raw():.6f}")
        lines.append(f"Iteration: {self.iteration}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(rules={self.size()}, quality={self.quality})"


class RuleSet(RuleList):
    """Unordered collection of rules. An instance is classified by the best
    quality rule covering it, or by the default rule when none does."""

    def apply(self, dataset: Dataset) -> Instances:
        instances: Instances = Instances(dataset.size(), Flag.NOT_COVERED)
        for rule in self.rules:
            if rule.enabled:
                instances.mark_all(Flag.NOT_COVERED)
                rule.apply(dataset, instances)
        return instances

    def predict_values(self, values: np.ndarray) -> np.ndarray:
        predicted: np.ndarray = np.full(values.shape[0], -1, dtype=int)
        best: np.ndarray = np.full(values.shape[0], -np.inf)
        default: Optional[Rule] = self.default_rule()
        for rule in self.rules:
            if not rule.enabled or rule is default:
                continue
            mask: np.ndarray = rule.covers_values(values) & (
                rule.quality.adjusted() > best
            )
            predicted[mask] = rule.consequent
            best[mask] = rule.quality.adjusted()
        if default is not None:
            predicted[predicted == -1] = default.consequent
        return predicted

    def to_decision_rules(self, dataset: Dataset) -> ClassificationRuleSet:
        """Exports the non-default rules as a decision-rules rule set."""
        return ClassificationRuleSet(
            rules=[r.to_decision_rules(dataset) for r in self.non_default_rules()]
        )
