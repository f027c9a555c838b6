"""In-memory representation of a classification dataset and of the per-row
coverage flags used while rules and trees are being built."""
from __future__ import annotations

import math
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from enum import IntEnum
from typing import Optional

import numpy as np
import pandas as pd

from antrules import _helpers
from antrules.exceptions import InvariantError


class AttributeType(Enum):
    NOMINAL = "nominal"
    CONTINUOUS = "continuous"


@dataclass
class Attribute:
    name: str
    type: AttributeType
    values: list[str] = field(default_factory=list)
    index: int = -1
    lower: float = math.inf
    upper: float = -math.inf

    def add(self, value: str):
        self.values.append(value)

    def index_of(self, value: str) -> int:
        try:
            return self.values.index(value)
        except ValueError as error:
            raise ValueError(
                f"Value not found for attribute {self.name}: {value}"
            ) from error

    def value(self, index: int) -> str:
        return self.values[index]

    def size(self) -> int:
        """Returns the number of values of a nominal attribute."""
        return len(self.values)

    def widen(self, value: float):
        """Updates the lower and upper bounds of a continuous attribute."""
        if math.isnan(value):
            return
        if value < self.lower:
            self.lower = value
        if value > self.upper:
            self.upper = value

    @property
    def is_nominal(self) -> bool:
        return self.type == AttributeType.NOMINAL

    def __str__(self) -> str:
        return self.name


class Flag(IntEnum):
    NOT_COVERED = 0
    RULE_COVERED = 1
    COVERED = 2


class Instances:
    """Weight and coverage flag of every row of a dataset.

    A buffer belongs to a single construction call tree and is never shared
    between concurrently running tasks; use :meth:`copy` to derive a private
    buffer from a template.
    """

    def __init__(self, size: int, flag: Flag = Flag.NOT_COVERED):
        self.flag: np.ndarray = np.full(size, int(flag), dtype=np.int8)
        self.weight: np.ndarray = np.ones(size, dtype=float)

    def mark_all(self, flag: Flag):
        self.flag[:] = int(flag)

    def mark(self, from_flag: Flag, to_flag: Flag):
        self.flag[self.flag == int(from_flag)] = int(to_flag)

    def mask(self, flag: Flag) -> np.ndarray:
        return self.flag == int(flag)

    def count(self, flag: Flag) -> int:
        return int(np.count_nonzero(self.flag == int(flag)))

    def copy(self) -> Instances:
        clone: Instances = Instances.__new__(Instances)
        clone.flag = self.flag.copy()
        clone.weight = self.weight.copy()
        return clone

    def __len__(self) -> int:
        return self.flag.shape[0]


class Dataset:
    """Attributes plus a float matrix with one row per instance. The class
    attribute is always the last one. Nominal values are stored as the index
    of the value and missing values as NaN."""

    def __init__(self, attributes: list[Attribute], values: np.ndarray):
        values = np.asarray(values, dtype=float)
        if values.ndim != 2 or values.shape[1] != len(attributes):
            raise InvariantError(
                f"Instance rows must have {len(attributes)} values, "
                f"got matrix of shape {values.shape}"
            )
        for index, attribute in enumerate(attributes):
            attribute.index = index
        self.attributes: list[Attribute] = attributes
        self.values: np.ndarray = values
        self.target: np.ndarray = values[:, -1].astype(int)
        for attribute in attributes[:-1]:
            if not attribute.is_nominal:
                column: np.ndarray = values[:, attribute.index]
                if np.any(~np.isnan(column)):
                    attribute.widen(float(np.nanmin(column)))
                    attribute.widen(float(np.nanmax(column)))

    @classmethod
    def from_pandas(cls, X: pd.DataFrame, y: pd.Series) -> Dataset:
        """Builds a dataset from a dataframe. Columns without a numeric dtype are
        treated as nominal attributes, every other column as continuous.

        Args:
            X (pd.DataFrame): data
            y (pd.Series): labels

        Returns:
            Dataset: dataset
        """
        nominal: set[int] = set(_helpers.get_nominal_indexes(X))
        attributes: list[Attribute] = []
        columns: list[np.ndarray] = []
        for index, name in enumerate(X.columns):
            column: pd.Series = X.iloc[:, index]
            if index in nominal:
                values: list[str] = sorted(str(v) for v in column.dropna().unique())
                attributes.append(
                    Attribute(str(name), AttributeType.NOMINAL, values=values)
                )
                mapping: dict[str, int] = {v: i for i, v in enumerate(values)}
                columns.append(
                    column.map(
                        lambda v: np.nan if pd.isna(v) else mapping[str(v)]
                    ).to_numpy(dtype=float)
                )
            else:
                attributes.append(Attribute(str(name), AttributeType.CONTINUOUS))
                columns.append(column.to_numpy(dtype=float))
        labels: list[str] = sorted(str(v) for v in y.unique())
        attributes.append(
            Attribute(
                str(y.name) if y.name is not None else "class",
                AttributeType.NOMINAL,
                values=labels,
            )
        )
        label_index: dict[str, int] = {v: i for i, v in enumerate(labels)}
        columns.append(y.map(lambda v: label_index[str(v)]).to_numpy(dtype=float))
        return cls(attributes, np.column_stack(columns))

    def encode(self, X: pd.DataFrame) -> np.ndarray:
        """Encodes new data with the attributes of this dataset. Unknown
        nominal values are treated as missing.

        Returns:
            np.ndarray: matrix with one column per predictive attribute
        """
        columns: list[np.ndarray] = []
        for index, attribute in enumerate(self.attributes[:-1]):
            column: pd.Series = X.iloc[:, index]
            if attribute.is_nominal:
                mapping: dict[str, int] = {v: i for i, v in enumerate(attribute.values)}
                columns.append(
                    column.map(
                        lambda v: mapping.get(str(v), np.nan)
                        if not pd.isna(v)
                        else np.nan
                    ).to_numpy(dtype=float)
                )
            else:
                columns.append(column.to_numpy(dtype=float))
        return np.column_stack(columns)

    def size(self) -> int:
        return self.values.shape[0]

    @property
    def class_index(self) -> int:
        return len(self.attributes) - 1

    @property
    def class_attribute(self) -> Attribute:
        return self.attributes[-1]

    def class_length(self) -> int:
        return self.attributes[-1].size()

    def predictive_attributes(self) -> list[Attribute]:
        return self.attributes[:-1]

    def value(self, instance: int, attribute: int) -> float:
        return self.values[instance, attribute]

    def column(self, attribute: int) -> np.ndarray:
        return self.values[:, attribute]

    def distribution(
        self, mask: np.ndarray, weights: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """Returns the (weighted) class distribution of the selected rows."""
        return np.bincount(
            self.target[mask],
            weights=None if weights is None else weights[mask],
            minlength=self.class_length(),
        ).astype(float)

    def mark_covered(self, instances: Instances) -> int:
        """Finalises the coverage of a rule: rows flagged RULE_COVERED become
        COVERED.

        Returns:
            int: number of rows still NOT_COVERED
        """
        instances.mark(Flag.RULE_COVERED, Flag.COVERED)
        return instances.count(Flag.NOT_COVERED)

    def mark_correct(self, instances: Instances, predicted: int) -> int:
        """Rows covered by a rule and belonging to its predicted class become
        COVERED; the remaining covered rows go back to NOT_COVERED.

        Returns:
            int: number of rows marked as COVERED
        """
        rule_covered: np.ndarray = instances.mask(Flag.RULE_COVERED)
        correct: np.ndarray = rule_covered & (self.target == predicted)
        instances.flag[correct] = int(Flag.COVERED)
        instances.flag[rule_covered & ~correct] = int(Flag.NOT_COVERED)
        return int(np.count_nonzero(correct))
