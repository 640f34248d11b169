"""Percentile bootstrap confidence intervals.

Percentiles use linear interpolation between order statistics (numpy's
``method="linear"``, Hyndman & Fan type 7). The coefficient of variation
uses the sample standard deviation (``ddof=1``).
"""

from dataclasses import dataclass

import numpy as np

from ..errors import DegenerateDistributionError, InvalidConfigurationError

DEFAULT_CONFIDENCE = 0.95


@dataclass(frozen=True)
class IntervalEstimate:
    """Point estimate, percentile interval and CV of a bootstrap distribution."""

    est: float
    lwr: float
    upr: float
    cv: float

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.est, self.lwr, self.upr, self.cv)


def percentile_bounds(confidence: float = DEFAULT_CONFIDENCE) -> tuple[float, float]:
    """Lower and upper percentiles (0-100) of a two-sided interval."""
    if not 0 < confidence < 1:
        raise InvalidConfigurationError(
            f"confidence must be between 0 and 1 (exclusive), got {confidence}"
        )
    alpha = 1 - confidence
    return 100 * alpha / 2, 100 * (1 - alpha / 2)


def estimate(values: np.ndarray, confidence: float = DEFAULT_CONFIDENCE) -> IntervalEstimate:
    """Summarize bootstrap statistic values.

    Args:
        values: One statistic value per resample
        confidence: Two-sided confidence level (default 0.95)

    Returns:
        IntervalEstimate with mean, percentile bounds and CV

    Raises:
        InvalidConfigurationError: Fewer than two values, or bad confidence
        DegenerateDistributionError: Non-finite values or a zero mean
    """
    values = np.asarray(values, dtype=np.float64).ravel()
    if values.size < 2:
        raise InvalidConfigurationError(
            f"At least 2 bootstrap values are required, got {values.size}"
        )
    if not np.isfinite(values).all():
        raise DegenerateDistributionError("Bootstrap values contain NaN or infinite entries")

    lower_q, upper_q = percentile_bounds(confidence)
    mean = float(np.mean(values))
    if mean == 0:
        raise DegenerateDistributionError(
            "Bootstrap distribution has zero mean; coefficient of variation is undefined"
        )
    # np.mean of equal floats can drift from the value itself
    if np.ptp(values) == 0:
        value = float(values[0])
        return IntervalEstimate(est=value, lwr=value, upr=value, cv=0.0)

    lwr, upr = np.percentile(values, [lower_q, upper_q], method="linear")
    sd = float(np.std(values, ddof=1))

    return IntervalEstimate(est=mean, lwr=float(lwr), upr=float(upr), cv=sd / mean)
