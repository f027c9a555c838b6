import math
from typing import Callable
from typing import Literal
from typing import Optional
from typing import TypeAlias
from typing import TypedDict

import pandas as pd
from decision_rules.core.coverage import Coverage

from antrules.exceptions import ConfigurationError
from antrules.quality import sensitivity_specificity

QualityMeasure: TypeAlias = Callable[[Coverage], float]


class AlgorithmParams(TypedDict):
    colony_size: int
    max_iterations: int
    stagnation: int
    evaporation_factor: float
    p_best: float
    archive_size: int
    q: float
    convergence_speed: float
    precision: int
    minimum_cases: int
    maximum_limit: int
    uncovered: float
    dynamic_heuristic: bool
    dynamic_function: bool
    heuristic: Literal["entropy", "class_frequency", "none"]
    rule_quality: QualityMeasure
    pruner: Literal["backtrack", "greedy", "single_pass", "none"]
    list_measure: Literal["accuracy", "pessimistic"]
    enable_list_pruning: bool
    tree_heuristic: Literal["gain_ratio", "gain"]
    filter_gain: bool
    tree_measure: Literal["accuracy", "pessimistic"]
    tree_pruner: Literal["pessimistic", "accuracy", "none"]
    parallel: Optional[int]
    random_state: Optional[int]


DEFAULT_PARAMS_VALUES: AlgorithmParams = AlgorithmParams(
    colony_size=5,
    max_iterations=500,
    stagnation=40,
    evaporation_factor=0.9,
    p_best=0.05,
    archive_size=5,
    q=0.05099,
    convergence_speed=0.6795,
    precision=2,
    minimum_cases=10,
    maximum_limit=25,
    uncovered=0.01,
    dynamic_heuristic=False,
    dynamic_function=False,
    heuristic="entropy",
    rule_quality=sensitivity_specificity,
    pruner="backtrack",
    list_measure="accuracy",
    enable_list_pruning=True,
    tree_heuristic="gain_ratio",
    filter_gain=False,
    tree_measure="pessimistic",
    tree_pruner="pessimistic",
    parallel=None,
    random_state=None,
)

_CHOICES: dict[str, tuple[str, ...]] = {
    "heuristic": ("entropy", "class_frequency", "none"),
    "pruner": ("backtrack", "greedy", "single_pass", "none"),
    "list_measure": ("accuracy", "pessimistic"),
    "tree_heuristic": ("gain_ratio", "gain"),
    "tree_measure": ("accuracy", "pessimistic"),
    "tree_pruner": ("pessimistic", "accuracy", "none"),
}


def _require(condition: bool, key: str, value, expected: str):
    if not condition:
        raise ConfigurationError(
            f"Invalid value for parameter '{key}': {value!r}",
            suggestion=f"'{key}' must be {expected}.",
            details={"key": key, "value": value},
        )


def validate_params(params: dict) -> AlgorithmParams:
    """Builds a complete parameters dictionary, filling missing keys with their
    default values.

    Args:
        params (dict): user provided parameters

    Raises:
        ConfigurationError: if a key is unknown or a value is invalid

    Returns:
        AlgorithmParams: validated parameters
    """
    unknown: set[str] = set(params) - set(DEFAULT_PARAMS_VALUES)
    if unknown:
        raise ConfigurationError(
            f"Unknown parameters: {', '.join(sorted(unknown))}",
            suggestion="Valid parameters: "
            + ", ".join(sorted(DEFAULT_PARAMS_VALUES)),
        )
    validated: AlgorithmParams = DEFAULT_PARAMS_VALUES.copy()
    validated.update({k: v for k, v in params.items() if v is not None})
    # None is a meaningful value for these keys
    for key in ("parallel", "random_state"):
        if key in params:
            validated[key] = params[key]

    for key in ("colony_size", "max_iterations", "archive_size", "maximum_limit"):
        value = validated[key]
        _require(
            isinstance(value, int) and value > 0, key, value, "a positive integer"
        )
    for key in ("stagnation", "minimum_cases", "precision"):
        value = validated[key]
        _require(
            isinstance(value, int) and value >= 0, key, value, "a non-negative integer"
        )
    for key in ("evaporation_factor", "p_best"):
        value = validated[key]
        _require(
            isinstance(value, (int, float)) and 0.0 < value < 1.0,
            key,
            value,
            "a number in the open interval (0, 1)",
        )
    for key in ("q", "convergence_speed"):
        value = validated[key]
        _require(
            isinstance(value, (int, float)) and value > 0,
            key,
            value,
            "a positive number",
        )
    _require(
        0.0 <= validated["uncovered"] < 1.0,
        "uncovered",
        validated["uncovered"],
        "a number in [0, 1)",
    )
    _require(
        callable(validated["rule_quality"]),
        "rule_quality",
        validated["rule_quality"],
        "a callable taking a decision_rules Coverage",
    )
    for key, choices in _CHOICES.items():
        _require(
            validated[key] in choices, key, validated[key], f"one of {choices}"
        )
    parallel: Optional[int] = validated["parallel"]
    _require(
        parallel is None or (isinstance(parallel, int) and parallel != 0),
        "parallel",
        parallel,
        "None, -1 or a positive number of workers",
    )
    return validated


def adjust_params_on_dataset(params: AlgorithmParams, y: pd.Series) -> AlgorithmParams:
    new_params: AlgorithmParams = params.copy()
    minority_class_size: int = y.value_counts().min()
    new_params["minimum_cases"] = math.ceil(
        min(minority_class_size, params["minimum_cases"])
    )
    return new_params
