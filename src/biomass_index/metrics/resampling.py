"""Stratified bootstrap resampling.

Each resample draws, with replacement, as many observations from every
stratum as that stratum originally holds, so stratum sizes never change.
"""

from typing import TYPE_CHECKING

import numpy as np

from ..errors import InsufficientDataError, InvalidConfigurationError
from .biomass import StatisticFn

if TYPE_CHECKING:
    from ..processing.grouping import Group

SeedLike = int | np.random.SeedSequence | np.random.Generator | None


def make_rng(seed: SeedLike) -> np.random.Generator:
    """Return a Generator for an int, SeedSequence, existing Generator or None."""
    if isinstance(seed, np.random.Generator):
        return seed
    return np.random.default_rng(seed)


def stratum_indices(strata: np.ndarray) -> list[np.ndarray]:
    """Observation indices of each stratum, in sorted stratum order."""
    strata = np.asarray(strata)
    if strata.size == 0:
        raise InsufficientDataError("Cannot resample a group with no observations")
    labels, inverse = np.unique(strata, return_inverse=True)
    inverse = inverse.ravel()
    indices = [np.flatnonzero(inverse == k) for k in range(labels.size)]
    for label, idx in zip(labels, indices):
        if idx.size == 0:
            raise InsufficientDataError(f"Stratum {label!r} has no observations")
    return indices


def draw_stratified_resample(strata: np.ndarray, rng: np.random.Generator) -> np.ndarray:
    """Draw one stratified bootstrap resample.

    Args:
        strata: Stratum label per observation
        rng: Random generator

    Returns:
        Index array the same length as ``strata``; each stratum contributes
        exactly as many indices as it has observations
    """
    return _draw(stratum_indices(strata), rng)


def _draw(indices: list[np.ndarray], rng: np.random.Generator) -> np.ndarray:
    return np.concatenate([rng.choice(idx, size=idx.size, replace=True) for idx in indices])


def resample_and_compute(
    group: "Group",
    statistic_fn: StatisticFn,
    repetitions: int,
    seed: SeedLike = None,
) -> np.ndarray:
    """Compute a statistic over repeated stratified resamples of a group.

    Args:
        group: Group of observations to resample
        statistic_fn: Function of (densities, strata) returning a float
        repetitions: Number of bootstrap resamples (>= 2)
        seed: Seed for the group's random stream; the same seed reproduces
            the same sequence of values

    Returns:
        Array of length ``repetitions`` with one statistic value per resample
    """
    if int(repetitions) != repetitions or repetitions < 2:
        raise InvalidConfigurationError(f"repetitions must be an integer >= 2, got {repetitions!r}")

    densities = group.densities
    strata = group.strata
    indices = stratum_indices(strata)
    rng = make_rng(seed)

    values = np.empty(int(repetitions), dtype=np.float64)
    for i in range(int(repetitions)):
        sample = _draw(indices, rng)
        values[i] = statistic_fn(densities[sample], strata[sample])
    return values
