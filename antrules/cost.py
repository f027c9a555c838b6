"""Quality values of candidate solutions.

A cost knows in which direction it improves: comparison operators always read
as "worse than" / "better than", regardless of whether the underlying raw
value has to be maximised or minimised.
"""
from __future__ import annotations

import math
from abc import ABC
from abc import abstractmethod
from functools import total_ordering


@total_ordering
class Cost(ABC):

    def __init__(self, value: float):
        self._value: float = float(value)

    def raw(self) -> float:
        """Returns the natural value of the cost."""
        return self._value

    @abstractmethod
    def adjusted(self) -> float:
        """Returns the value rescaled so that larger always means better, used
        when depositing pheromone."""

    @abstractmethod
    def compare_to(self, other: Cost) -> int:
        """Returns a positive number if this cost is better than ``other``,
        a negative number if it is worse and 0 when they are equal."""

    def _check(self, other: object):
        if not isinstance(other, Cost):
            return NotImplemented
        if type(other) is not type(self):
            raise TypeError(
                f"Cannot compare {type(self).__name__} with {type(other).__name__}"
            )
        return None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cost):
            return NotImplemented
        return type(other) is type(self) and self._value == other._value

    def __lt__(self, other: Cost) -> bool:
        if self._check(other) is NotImplemented:
            return NotImplemented
        return self.compare_to(other) < 0

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._value))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._value})"


class Maximise(Cost):
    """Cost where larger raw values are better."""

    def __init__(self, value: float = 0.0):
        super().__init__(value)

    def adjusted(self) -> float:
        return self._value

    def compare_to(self, other: Cost) -> int:
        if self._value == other.raw():
            return 0
        return 1 if self._value > other.raw() else -1


class Minimise(Cost):
    """Cost where smaller raw values are better. The adjusted value is the
    reciprocal of the raw value."""

    def __init__(self, value: float = math.inf):
        super().__init__(value)

    def adjusted(self) -> float:
        if self._value == 0.0:
            return math.inf
        return 1.0 / self._value

    def compare_to(self, other: Cost) -> int:
        if self._value == other.raw():
            return 0
        return 1 if self._value < other.raw() else -1
