"""C4.5 pessimistic error estimation."""
import math

from scipy.stats import norm

#: confidence factor of the upper limit of the error rate
CF: float = 0.25

_COEFFICIENT: float = float(norm.ppf(1.0 - CF)) ** 2


def estimated_errors(total: float, errors: float) -> float:
    """Returns the additional errors expected if the observed error rate of a
    leaf (or rule) increases to the upper limit of the confidence interval.

    Args:
        total (float): number of covered cases
        errors (float): number of observed errors

    Returns:
        float: additional errors, to be added to ``errors``
    """
    if total <= 0.0:
        return 0.0
    if errors < 1e-6:
        return total * (1.0 - math.exp(math.log(CF) / total))
    if errors < 0.9999:
        v: float = total * (1.0 - math.exp(math.log(CF) / total))
        return v + errors * (estimated_errors(total, 1.0) - v)
    if errors + 0.5 >= total:
        return 0.67 * (total - errors)
    pr: float = (
        errors
        + 0.5
        + _COEFFICIENT / 2.0
        + math.sqrt(
            _COEFFICIENT
            * ((errors + 0.5) * (1.0 - (errors + 0.5) / total) + _COEFFICIENT / 4.0)
        )
    ) / (total + _COEFFICIENT)
    return total * pr - errors
