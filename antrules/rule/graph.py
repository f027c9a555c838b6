"""Construction graph of rules.

Vertices are candidate terms: one per nominal attribute value and one
abstract vertex per continuous attribute, whose condition is only known once
an interval is computed during construction. Vertex 0 is the virtual START
vertex. Edges carry one pheromone value per level (position of a rule in a
list), stored in :class:`Entry` objects.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator
from typing import Optional

import numpy as np

from antrules.conditions import Condition
from antrules.conditions import Relation
from antrules.dataset import Dataset
from antrules.exceptions import InvariantError

START_INDEX: int = 0


@dataclass
class Vertex:
    attribute: int
    #: None for continuous attributes and for the START vertex
    condition: Optional[Condition] = None
    value: int = -1


class Entry:
    """Pheromone values of an edge, one per level. Levels never set return
    the initial value."""

    def __init__(self, initial: float = 0.0, *values: float):
        self.initial: float = initial
        self._values: list[float] = list(values)

    def value(self, level: int) -> float:
        if level < len(self._values):
            return self._values[level]
        return self.initial

    def set(self, level: int, value: float):
        if math.isnan(value):
            raise InvariantError(f"Invalid pheromone value for level {level}: NaN")
        if level >= len(self._values):
            self._values.extend([self.initial] * (level + 1 - len(self._values)))
        self._values[level] = value

    def size(self) -> int:
        return len(self._values)

    def reset(self, initial: float, *values: float):
        self.initial = initial
        self._values = list(values)

    def clone(self) -> Entry:
        return Entry(self.initial, *self._values)

    def __repr__(self) -> str:
        return f"Entry(initial={self.initial}, values={self._values})"


class Graph:

    def __init__(self, vertices: list[Vertex]):
        self.vertices: list[Vertex] = vertices
        self.template: Entry = Entry()
        n: int = len(vertices)
        #: per vertex pheromone, used by vertex based policies
        self.vertex_pheromone: np.ndarray = np.zeros(n)
        self.matrix: list[list[Optional[Entry]]] = [
            [
                Entry()
                if i != j
                and j != START_INDEX
                and vertices[i].attribute != vertices[j].attribute
                else None
                for j in range(n)
            ]
            for i in range(n)
        ]

    def size(self) -> int:
        return len(self.vertices)

    def index_of(self, attribute: int, value: int = -1) -> int:
        """Returns the index of the vertex of the given attribute value. The
        value of continuous attributes is -1.

        Raises:
            InvariantError: if there is no such vertex
        """
        for i, vertex in enumerate(self.vertices):
            if vertex.attribute == attribute and vertex.value == value:
                return i
        raise InvariantError(
            f"Vertex not found: attribute={attribute}, value={value}"
        )

    def pheromone(self, i: int, j: int) -> Entry:
        """Returns the entry of the edge (i, j), or the template entry when
        the edge does not exist."""
        entry: Optional[Entry] = self.matrix[i][j]
        return self.template if entry is None else entry

    def entry(self, i: int, j: int, t_max: float) -> Entry:
        if self.matrix[i][j] is None:
            self.matrix[i][j] = Entry(t_max, t_max)
        return self.matrix[i][j]

    def edges(self) -> Iterator[tuple[int, int, Entry]]:
        for i, row in enumerate(self.matrix):
            for j, entry in enumerate(row):
                if entry is not None:
                    yield i, j, entry

    def neighbours(self, i: int) -> list[int]:
        return [j for j, entry in enumerate(self.matrix[i]) if entry is not None]

    def attribute_vertices(self, attribute: int) -> list[int]:
        return [i for i, v in enumerate(self.vertices) if v.attribute == attribute]


class GraphFactory:

    @staticmethod
    def create(dataset: Dataset) -> Graph:
        vertices: list[Vertex] = [Vertex(attribute=-1)]
        for attribute in dataset.predictive_attributes():
            if attribute.is_nominal:
                for value in range(attribute.size()):
                    vertices.append(
                        Vertex(
                            attribute=attribute.index,
                            condition=Condition(
                                attribute=attribute.index,
                                relation=Relation.EQUAL_TO,
                                value=[float(value), 0.0],
                            ),
                            value=value,
                        )
                    )
            else:
                vertices.append(Vertex(attribute=attribute.index))
        return Graph(vertices)
