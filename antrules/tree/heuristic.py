"""C4.5 information gain heuristics of the attributes of a tree node."""
from __future__ import annotations

import math
from abc import ABC
from abc import abstractmethod
from typing import Optional

import numpy as np

from antrules._params import AlgorithmParams
from antrules.conditions import Condition
from antrules.dataset import Attribute
from antrules.dataset import Dataset
from antrules.dataset import Flag
from antrules.dataset import Instances
from antrules.interval import IntervalBuilder
from antrules.interval import class_entropy

EPSILON: float = 1e-3


def _split_info(fractions: np.ndarray) -> float:
    fractions = fractions[fractions > 0]
    return float(-(fractions * np.log2(fractions)).sum())


class TreeHeuristic(ABC):
    """Computes one value per predictive attribute over the RULE_COVERED
    instances. Used attributes and attributes that cannot split the
    instances have value 0."""

    def __init__(self, params: AlgorithmParams, builder: IntervalBuilder):
        self.minimum: int = params["minimum_cases"]
        self.builder: IntervalBuilder = builder

    def _evaluate(
        self, dataset: Dataset, instances: Instances, attribute: Attribute
    ) -> Optional[tuple[float, float]]:
        """Returns the gain and the split information of the attribute, or
        None when it cannot split the instances."""
        covered: np.ndarray = instances.mask(Flag.RULE_COVERED)
        weight: np.ndarray = instances.weight
        column: np.ndarray = dataset.column(attribute.index)
        known: np.ndarray = covered & ~np.isnan(column)

        length: float = float(weight[covered].sum())
        size: float = float(weight[known].sum())
        missing: float = length - size
        if size <= 0:
            return None
        info: float = float(class_entropy(dataset.distribution(known, weight))[0])

        if attribute.is_nominal:
            values: np.ndarray = column[known].astype(int)
            counter: np.ndarray = np.bincount(
                values, weights=weight[known], minlength=attribute.size()
            )
            if np.count_nonzero(counter >= self.minimum) < 2:
                return None
            terms: np.ndarray = np.zeros((attribute.size(), dataset.class_length()))
            np.add.at(terms, (values, dataset.target[known]), weight[known])
            info_x: float = float(((counter / size) * class_entropy(terms)).sum())
            gain: float = (size / length) * (info - info_x)
            fractions: np.ndarray = counter / (size + missing)
        else:
            conditions: Optional[list[Condition]] = self.builder.multiple(
                dataset, instances, attribute.index
            )
            if conditions is None:
                return None
            info_x = sum((c.length / size) * c.entropy for c in conditions)
            gain = (size / length) * (info - info_x) - (
                math.log2(conditions[0].tries) / length
            )
            fractions = np.array([c.length / (size + missing) for c in conditions])

        split: float = _split_info(fractions)
        if missing > 0:
            split += _split_info(np.array([missing / (size + missing)]))
        return gain, split

    def compute(
        self, dataset: Dataset, instances: Instances, used: np.ndarray
    ) -> np.ndarray:
        """
        Args:
            dataset (Dataset): training data
            instances (Instances): instances reaching the node
            used (np.ndarray): boolean mask of the attributes not available

        Returns:
            np.ndarray: non-negative heuristic value of each attribute
        """
        n: int = len(dataset.predictive_attributes())
        gain: np.ndarray = np.full(n, -EPSILON)
        split: np.ndarray = np.zeros(n)
        for attribute in dataset.predictive_attributes():
            if used[attribute.index]:
                continue
            evaluated: Optional[tuple[float, float]] = self._evaluate(
                dataset, instances, attribute
            )
            if evaluated is not None:
                gain[attribute.index], split[attribute.index] = evaluated
        return np.maximum(self._values(gain, split), 0.0)

    @abstractmethod
    def _values(self, gain: np.ndarray, split: np.ndarray) -> np.ndarray:
        pass


class GainHeuristic(TreeHeuristic):

    def _values(self, gain: np.ndarray, split: np.ndarray) -> np.ndarray:
        return gain


class GainRatioHeuristic(TreeHeuristic):
    """Gain divided by the split information. With ``filter_gain`` only the
    attributes with at least average gain keep their ratio."""

    def __init__(self, params: AlgorithmParams, builder: IntervalBuilder):
        super().__init__(params, builder)
        self.filter_gain: bool = params["filter_gain"]

    def _values(self, gain: np.ndarray, split: np.ndarray) -> np.ndarray:
        with np.errstate(divide="ignore", invalid="ignore"):
            ratio: np.ndarray = np.where(
                (gain >= 0) & (split > 0), gain / split, -EPSILON
            )
        if self.filter_gain and np.any(gain >= 0):
            average: float = float(gain[gain >= 0].mean()) - EPSILON
            ratio[(ratio > 0) & (gain < average)] = 0.0
        return ratio


def tree_heuristic_from_params(
    params: AlgorithmParams, builder: IntervalBuilder
) -> TreeHeuristic:
    name: str = params["tree_heuristic"]
    if name == "gain_ratio":
        return GainRatioHeuristic(params, builder)
    if name == "gain":
        return GainHeuristic(params, builder)
    raise ValueError(f"Unknown tree heuristic: {name}")
