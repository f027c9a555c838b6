import math
from typing import Optional

import numpy as np
import pandas as pd


def get_nominal_indexes(df: pd.DataFrame) -> list[int]:
    """Return indices of nominal columns in given dataframe. Every column
    without a numeric (or boolean) dtype is nominal, which covers object,
    string and category columns.

    Args:
        df (pd.DataFrame): DataFrame

    Returns:
        list[int]: list of indices of nominal columns
    """
    return [
        i
        for i, dtype in enumerate(df.dtypes)
        if not pd.api.types.is_numeric_dtype(dtype)
    ]


def truncate(value: float, digits: int = 2) -> float:
    """Truncates (not rounds) a value to the given number of decimal digits."""
    if math.isinf(value) or math.isnan(value):
        return value
    factor: float = 10.0**digits
    return int(value * factor) / factor


def roulette(
    probabilities: np.ndarray, rng: np.random.Generator
) -> Optional[int]:
    """Selects an index with probability proportional to its value.

    Non-positive entries are never selected. Returns None when all entries are
    zero. Floating point imprecision on the cumulative sum falls back to the
    last selectable index.
    """
    total: float = float(np.sum(probabilities))
    if total <= 0.0:
        return None
    slot: float = rng.random() * total
    cumulative: np.ndarray = np.cumsum(probabilities)
    selected: int = int(np.searchsorted(cumulative, slot, side="right"))
    if selected >= len(probabilities) or probabilities[selected] <= 0.0:
        valid: np.ndarray = np.flatnonzero(probabilities > 0.0)
        if selected >= len(probabilities):
            return int(valid[-1])
        # next selectable index at or after the slot
        following: np.ndarray = valid[valid >= selected]
        return int(following[0]) if len(following) > 0 else int(valid[-1])
    return selected
