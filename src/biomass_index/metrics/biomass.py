"""Stratified biomass statistic.

Biomass is the sum over strata of mean density in the stratum scaled by the
area each stratum unit represents.
"""

from collections.abc import Callable
from functools import partial

import numpy as np

from ..config import DEFAULT_AREA_KM2
from ..errors import InsufficientDataError, InvalidConfigurationError

StatisticFn = Callable[[np.ndarray, np.ndarray], float]


def stratum_means(densities: np.ndarray, strata: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Compute mean density per stratum.

    Args:
        densities: Density per observation
        strata: Stratum label per observation

    Returns:
        Tuple of (sorted stratum labels, mean density per label)
    """
    densities = np.asarray(densities, dtype=np.float64)
    strata = np.asarray(strata)
    if densities.shape != strata.shape:
        raise ValueError(
            f"densities and strata must have the same shape, got {densities.shape} and {strata.shape}"
        )
    if densities.size == 0:
        raise InsufficientDataError("Cannot compute stratum means without observations")

    labels, inverse = np.unique(strata, return_inverse=True)
    inverse = inverse.ravel()
    sums = np.bincount(inverse, weights=densities, minlength=labels.size)
    counts = np.bincount(inverse, minlength=labels.size)
    return labels, sums / counts


def biomass_statistic(
    densities: np.ndarray,
    strata: np.ndarray,
    area_km2: float = DEFAULT_AREA_KM2,
) -> float:
    """Compute the stratified biomass index.

    Args:
        densities: Density per observation (kg per m^2)
        strata: Stratum label per observation
        area_km2: Area represented by each stratum unit

    Returns:
        Sum over strata of mean density times area
    """
    _, means = stratum_means(densities, strata)
    return float(np.sum(means * area_km2))


def make_biomass_statistic(area_km2: float = DEFAULT_AREA_KM2) -> StatisticFn:
    """Bind the area constant into a picklable statistic function."""
    if not area_km2 > 0:
        raise InvalidConfigurationError(f"area_km2 must be positive, got {area_km2}")
    return partial(biomass_statistic, area_km2=area_km2)
