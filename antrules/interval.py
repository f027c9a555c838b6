"""Dynamic discretisation of continuous attributes.

The split point of a continuous attribute is not part of the construction
graph: it is computed on the fly, restricted to the instances covered by the
partial rule, using the C4.5 entropy criterion.
"""
from __future__ import annotations

from typing import Optional

import numpy as np

from antrules._params import AlgorithmParams
from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances

# constants of the original C4.5 implementation
DELTA: float = 1e-5
PRECISION_10: float = 1e-10
PRECISION_15: float = 1e-15


def class_entropy(frequency: np.ndarray) -> np.ndarray:
    """Entropy (base 2) of each row of a frequency matrix. Rows summing to 0
    have entropy 0."""
    frequency = np.atleast_2d(frequency)
    totals: np.ndarray = frequency.sum(axis=1, keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        p: np.ndarray = np.where(totals > 0, frequency / totals, 0.0)
        terms: np.ndarray = np.where(p > 0, p * np.log2(p), 0.0)
    return -terms.sum(axis=1)


class IntervalBuilder:
    """Creates binary intervals of continuous attributes that maximise the
    entropy gain over the class distribution (C4.5 style)."""

    def __init__(self, params: AlgorithmParams):
        self.minimum: int = params["minimum_cases"]
        self.maximum_limit: int = params["maximum_limit"]

    def minimum_cases(self, dataset: Dataset, length: float) -> float:
        """Returns the minimum number of cases an interval must contain."""
        minimum: float = 0.1 * (length / dataset.class_length())
        return float(min(max(minimum, self.minimum), self.maximum_limit))

    def multiple(
        self,
        dataset: Dataset,
        instances: Instances,
        attribute: int,
        flag: Flag = Flag.RULE_COVERED,
    ) -> Optional[list[Condition]]:
        """Returns the lower and upper interval conditions of the best split
        of the attribute, considering only the rows with the given flag.

        Returns:
            Optional[list[Condition]]: two conditions or None when no split
                satisfies the minimum number of cases
        """
        return self.split(dataset, instances.mask(flag), instances.weight, attribute)

    def single(
        self,
        dataset: Dataset,
        instances: Instances,
        attribute: int,
        flag: Flag = Flag.RULE_COVERED,
    ) -> Optional[Condition]:
        """Returns the interval with the lowest entropy among the ones created
        by :meth:`multiple`; ties are resolved in favour of the larger
        interval."""
        conditions: Optional[list[Condition]] = self.multiple(
            dataset, instances, attribute, flag
        )
        if not conditions:
            return None
        best: Optional[Condition] = None
        for c in conditions:
            if (
                best is None
                or c.entropy < best.entropy
                or (c.entropy == best.entropy and c.length > best.length)
            ):
                best = c
        return best

    def split(
        self,
        dataset: Dataset,
        mask: np.ndarray,
        weights: np.ndarray,
        attribute: int,
    ) -> Optional[list[Condition]]:
        values: np.ndarray = dataset.column(attribute)
        selected: np.ndarray = mask & ~np.isnan(values)
        if not np.any(selected):
            return None

        order: np.ndarray = np.argsort(values[selected], kind="stable")
        v: np.ndarray = values[selected][order]
        c: np.ndarray = dataset.target[selected][order]
        w: np.ndarray = weights[selected][order]

        one_hot: np.ndarray = np.zeros((len(v), dataset.class_length()))
        one_hot[np.arange(len(v)), c] = w
        frequency: np.ndarray = one_hot.sum(axis=0)
        total: float = float(frequency.sum())
        minimum: float = self.minimum_cases(dataset, total)

        # candidate split after position i (lower interval holds v[0..i])
        lower: np.ndarray = np.cumsum(one_hot, axis=0)[:-1]
        upper: np.ndarray = frequency - lower
        lower_size: np.ndarray = lower.sum(axis=1)
        upper_size: np.ndarray = upper.sum(axis=1)
        valid: np.ndarray = (
            (v[:-1] + DELTA < v[1:])
            & (lower_size + PRECISION_10 >= minimum)
            & (upper_size + PRECISION_10 >= minimum)
        )
        tries: int = int(np.count_nonzero(valid))
        if tries == 0:
            return None

        lower_entropy: np.ndarray = class_entropy(lower)
        upper_entropy: np.ndarray = class_entropy(upper)
        gain: np.ndarray = (
            class_entropy(frequency)[0]
            - (lower_size / total) * lower_entropy
            - (upper_size / total) * upper_entropy
        )
        gain = np.where(valid, gain, -np.inf)
        index: int = int(np.argmax(gain))
        if gain[index] <= PRECISION_15:
            return None

        cut: float = (v[index] + v[index + 1]) / 2.0
        conditions: list[Condition] = []
        for relation, distribution, entropy, length in (
            (
                Relation.LESS_THAN_OR_EQUAL_TO,
                lower[index],
                lower_entropy[index],
                lower_size[index],
            ),
            (
                Relation.GREATER_THAN,
                upper[index],
                upper_entropy[index],
                upper_size[index],
            ),
        ):
            conditions.append(
                Condition(
                    attribute=attribute,
                    relation=relation,
                    value=[cut, 0.0],
                    threshold=[float(v[index]), 0.0],
                    entropy=float(entropy),
                    length=float(length),
                    tries=float(tries),
                    frequency=distribution.copy(),
                    diversity=int(np.count_nonzero(distribution)),
                    index=index,
                )
            )
        return conditions
