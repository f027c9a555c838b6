"""Bounded, quality sorted collections of candidate solutions."""
from __future__ import annotations

import math
import threading
from typing import Generic
from typing import Iterator
from typing import Protocol
from typing import TypeVar

import numpy as np

from antrules.cost import Cost
from antrules.exceptions import ConfigurationError

DEFAULT_Q: float = 0.05099


class Ranked(Protocol):
    quality: Cost


E = TypeVar("E", bound=Ranked)


def rank_weights(size: int, capacity: int, q: float) -> np.ndarray:
    """Gaussian kernel weight of each rank ``i`` in ``[0, size)``:

        w(i) = 1 / (q k sqrt(2 pi)) * exp(-i^2 / (2 q^2 k^2))

    where ``k`` is the capacity of the archive.
    """
    ranks: np.ndarray = np.arange(size, dtype=float)
    qk: float = q * capacity
    return (1.0 / (qk * math.sqrt(2.0 * math.pi))) * np.exp(
        -(ranks**2) / (2.0 * qk * qk)
    )


class Archive(Generic[E]):
    """Fixed capacity collection sorted from best to worst quality.

    Elements only need a ``quality`` attribute holding a :class:`Cost`. If they
    also have a ``weight`` attribute, :meth:`update` assigns them the weight of
    their rank.
    """

    def __init__(self, capacity: int, q: float = DEFAULT_Q):
        if capacity <= 0:
            raise ConfigurationError(
                f"Invalid archive capacity: {capacity}",
                suggestion="The archive capacity must be greater than 0.",
            )
        self._capacity: int = capacity
        self._q: float = q
        self._elements: list[E] = []
        self._weights: np.ndarray = np.zeros(0)

    def add(self, element: E) -> bool:
        """Inserts the element in its sorted position. When the archive is full
        the element is only accepted if it is better than the current worst
        one, which is then evicted.

        Args:
            element (E): candidate solution

        Returns:
            bool: whether the archive contents changed
        """
        if self.is_full():
            if not element.quality > self._elements[-1].quality:
                return False
            self._elements.pop()
        position: int = len(self._elements)
        for i, current in enumerate(self._elements):
            if element.quality > current.quality:
                position = i
                break
        self._elements.insert(position, element)
        return True

    def highest(self) -> E:
        return self._elements[0]

    def lowest(self) -> E:
        return self._elements[-1]

    def top(self, n: int) -> list[E]:
        """Returns the ``n`` best elements.

        Raises:
            ValueError: if the archive holds fewer than ``n`` elements
        """
        if len(self._elements) < n:
            raise ValueError(
                f"Archive holds {len(self._elements)} elements, {n} requested"
            )
        return list(self._elements[:n])

    def get(self, index: int) -> E:
        return self._elements[index]

    def size(self) -> int:
        return len(self._elements)

    def capacity(self) -> int:
        return self._capacity

    def is_full(self) -> bool:
        return len(self._elements) >= self._capacity

    def is_empty(self) -> bool:
        return not self._elements

    def clear(self):
        self._elements.clear()
        self._weights = np.zeros(0)

    def sort(self):
        """Re-sorts the archive, needed when the quality of stored elements
        was modified in place."""
        self._elements.sort(key=lambda e: e.quality, reverse=True)

    def update(self):
        """Recomputes the rank weights and assigns them to the elements."""
        self._weights = rank_weights(len(self._elements), self._capacity, self._q)
        for element, weight in zip(self._elements, self._weights):
            if hasattr(element, "weight"):
                element.weight = float(weight)

    def weights(self) -> np.ndarray:
        if len(self._weights) != len(self._elements):
            self.update()
        return self._weights

    def __iter__(self) -> Iterator[E]:
        return iter(list(self._elements))

    def __len__(self) -> int:
        return len(self._elements)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(capacity={self._capacity}, size={self.size()})"


class SynchronizedArchive(Archive[E]):
    """Archive whose every operation is mutually exclusive, used to collect
    the candidates created by concurrent workers."""

    def __init__(self, capacity: int, q: float = DEFAULT_Q):
        super().__init__(capacity, q)
        self._lock: threading.RLock = threading.RLock()

    def add(self, element: E) -> bool:
        with self._lock:
            return super().add(element)

    def highest(self) -> E:
        with self._lock:
            return super().highest()

    def lowest(self) -> E:
        with self._lock:
            return super().lowest()

    def top(self, n: int) -> list[E]:
        with self._lock:
            return super().top(n)

    def get(self, index: int) -> E:
        with self._lock:
            return super().get(index)

    def size(self) -> int:
        with self._lock:
            return super().size()

    def is_full(self) -> bool:
        with self._lock:
            return super().is_full()

    def is_empty(self) -> bool:
        with self._lock:
            return super().is_empty()

    def clear(self):
        with self._lock:
            super().clear()

    def sort(self):
        with self._lock:
            super().sort()

    def update(self):
        with self._lock:
            super().update()

    def weights(self) -> np.ndarray:
        with self._lock:
            return super().weights()

    def __iter__(self) -> Iterator[E]:
        with self._lock:
            return super().__iter__()

    def __len__(self) -> int:
        with self._lock:
            return super().__len__()
