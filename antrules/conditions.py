"""Attribute-value conditions (terms) of rules and tree branches."""
from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Optional
from typing import TYPE_CHECKING

import numpy as np
from decision_rules.conditions import ElementaryCondition
from decision_rules.conditions import NominalCondition
from decision_rules.core.condition import AbstractCondition

if TYPE_CHECKING:
    from antrules.dataset import Dataset

OUTPUT_LENGTH: int = 6


class Relation(Enum):
    LESS_THAN_OR_EQUAL_TO = "<="
    GREATER_THAN = ">"
    IN_RANGE = "in"
    EQUAL_TO = "="
    LESS_THAN = "<"
    GREATER_THAN_OR_EQUAL_TO = ">="
    ANY_OF = "any"


def _format(value: float) -> str:
    output: str = repr(float(value))
    if len(output) - output.find(".") + 1 > OUTPUT_LENGTH:
        output = f"{value:.6f}".rstrip("0")
    return output


@dataclass
class Condition:
    attribute: int = -1
    relation: Optional[Relation] = None
    value: list[float] = field(default_factory=lambda: [0.0, 0.0])
    threshold: list[float] = field(default_factory=lambda: [0.0, 0.0])
    entropy: float = math.nan
    length: float = 0.0
    tries: float = math.nan
    frequency: Optional[np.ndarray] = None
    diversity: int = 0
    index: int = 0
    quality: float = -math.inf
    weight: float = 0.0

    def satisfies(self, v: float) -> bool:
        """Returns True if the value satisfies the condition. Missing values
        never do."""
        if math.isnan(v):
            return False
        relation: Relation = self.relation
        if relation == Relation.LESS_THAN_OR_EQUAL_TO:
            return v <= self.value[0]
        if relation == Relation.GREATER_THAN:
            return v > self.value[0]
        if relation == Relation.IN_RANGE:
            return self.value[0] <= v < self.value[1]
        if relation == Relation.EQUAL_TO:
            return v == self.value[0]
        if relation == Relation.LESS_THAN:
            return v < self.value[0]
        if relation == Relation.GREATER_THAN_OR_EQUAL_TO:
            return v >= self.value[0]
        if relation == Relation.ANY_OF:
            return v in self.value
        return False

    def satisfies_array(self, values: np.ndarray) -> np.ndarray:
        """Vectorised :meth:`satisfies` over a column of values."""
        relation: Relation = self.relation
        with np.errstate(invalid="ignore"):
            if relation == Relation.LESS_THAN_OR_EQUAL_TO:
                return values <= self.value[0]
            if relation == Relation.GREATER_THAN:
                return values > self.value[0]
            if relation == Relation.IN_RANGE:
                return (values >= self.value[0]) & (values < self.value[1])
            if relation == Relation.EQUAL_TO:
                return values == self.value[0]
            if relation == Relation.LESS_THAN:
                return values < self.value[0]
            if relation == Relation.GREATER_THAN_OR_EQUAL_TO:
                return values >= self.value[0]
            if relation == Relation.ANY_OF:
                return np.isin(values, self.value)
        return np.zeros(values.shape[0], dtype=bool)

    def clone(self) -> Condition:
        return copy.deepcopy(self)

    def __lt__(self, other: Condition) -> bool:
        return self.quality < other.quality

    def __str__(self) -> str:
        relation: str = self.relation.value if self.relation else "?"
        return f"({self.attribute},{relation},{self.value})"

    def to_string(self, dataset: Dataset) -> str:
        attribute = dataset.attributes[self.attribute]
        name: str = attribute.name
        relation: Relation = self.relation
        if relation == Relation.IN_RANGE:
            return f"{_format(self.value[0])} <= {name} < {_format(self.value[1])}"
        if relation == Relation.EQUAL_TO:
            return f"{name} = {attribute.value(int(self.value[0]))}"
        if relation == Relation.ANY_OF:
            options: str = ", ".join(attribute.value(int(v)) for v in self.value)
            return f"{name} = {{{options}}}"
        return f"{name} {relation.value} {_format(self.value[0])}"

    def to_decision_rules(self, dataset: Dataset) -> AbstractCondition:
        """Converts the condition to its decision-rules equivalent."""
        attribute = dataset.attributes[self.attribute]
        relation: Relation = self.relation
        if relation == Relation.EQUAL_TO:
            return NominalCondition(
                column_index=self.attribute,
                value=attribute.value(int(self.value[0])),
            )
        bounds: dict[Relation, dict] = {
            Relation.LESS_THAN_OR_EQUAL_TO: dict(
                left=float("-inf"), right=self.value[0],
                left_closed=False, right_closed=True,
            ),
            Relation.LESS_THAN: dict(
                left=float("-inf"), right=self.value[0],
                left_closed=False, right_closed=False,
            ),
            Relation.GREATER_THAN: dict(
                left=self.value[0], right=float("inf"),
                left_closed=False, right_closed=False,
            ),
            Relation.GREATER_THAN_OR_EQUAL_TO: dict(
                left=self.value[0], right=float("inf"),
                left_closed=True, right_closed=False,
            ),
            Relation.IN_RANGE: dict(
                left=self.value[0], right=self.value[1],
                left_closed=True, right_closed=False,
            ),
        }
        if relation not in bounds:
            raise ValueError(f"Condition {self} has no decision-rules equivalent")
        return ElementaryCondition(column_index=self.attribute, **bounds[relation])
