"""Bootstrap biomass metrics."""

from .biomass import biomass_statistic, make_biomass_statistic, stratum_means
from .intervals import IntervalEstimate, estimate
from .resampling import draw_stratified_resample, resample_and_compute

__all__ = [
    "biomass_statistic",
    "make_biomass_statistic",
    "stratum_means",
    "IntervalEstimate",
    "estimate",
    "draw_stratified_resample",
    "resample_and_compute",
]
