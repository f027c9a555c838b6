from typing import Any

import numpy as np
import pandas as pd

from antrules._params import AlgorithmParams
from antrules._params import validate_params
from antrules.dataset import Dataset


def params(**overrides: Any) -> AlgorithmParams:
    return validate_params(overrides)


def nominal_dataset() -> tuple[pd.DataFrame, pd.Series]:
    """Two class dataset with 20 instances and three nominal attributes.
    The class is "yes" when outlook is "sunny" and wind is "weak", with two
    noisy rows."""
    outlook: list[str] = ["sunny", "overcast", "rain", "sunny", "rain"] * 4
    wind: list[str] = ["weak", "strong"] * 10
    humidity: list[str] = ["high", "high", "normal", "normal"] * 5
    y: list[str] = [
        "yes" if o == "sunny" and w == "weak" else "no"
        for o, w in zip(outlook, wind)
    ]
    y[1] = "yes"
    y[7] = "yes"
    X: pd.DataFrame = pd.DataFrame(
        {"outlook": outlook, "wind": wind, "humidity": humidity}
    )
    return X, pd.Series(y, name="class")


def mixed_dataset(
    n: int = 120, seed: int = 0, missing: bool = False
) -> tuple[pd.DataFrame, pd.Series]:
    """Three class dataset with two numerical and one nominal attribute. The
    class is mostly determined by ``x1`` thresholds, refined by ``color``."""
    rng: np.random.Generator = np.random.default_rng(seed)
    x1: np.ndarray = rng.uniform(0.0, 10.0, n)
    x2: np.ndarray = rng.normal(0.0, 1.0, n)
    color: np.ndarray = rng.choice(["red", "green", "blue"], n)
    y: np.ndarray = np.where(x1 < 3.0, "a", np.where(x1 < 7.0, "b", "c"))
    y = np.where((y == "b") & (color == "red"), "a", y)
    noise: np.ndarray = rng.random(n) < 0.05
    y[noise] = rng.choice(["a", "b", "c"], int(noise.sum()))
    X: pd.DataFrame = pd.DataFrame(
        {"x1": x1, "x2": x2, "color": pd.Series(color, dtype=object)}
    )
    if missing:
        X.loc[rng.random(n) < 0.1, "x1"] = np.nan
        X.loc[rng.random(n) < 0.1, "color"] = None
    return X, pd.Series(y, name="class")


def constant_dataset() -> tuple[pd.DataFrame, pd.Series]:
    """Dataset whose attributes hold a single value, so that no condition can
    separate the instances. The majority class is "a"."""
    X: pd.DataFrame = pd.DataFrame({"x": [1.5] * 12, "color": ["red"] * 12})
    return X, pd.Series(["a"] * 8 + ["b"] * 4, name="class")


def to_dataset(data: tuple[pd.DataFrame, pd.Series]) -> Dataset:
    X, y = data
    return Dataset.from_pandas(X, y)
