"""Bootstrap biomass indices for survey-year groups."""

from .config import BootstrapConfig, configure_logging
from .errors import (
    BiomassIndexError,
    DegenerateDistributionError,
    EmptyDatasetError,
    GroupComputationError,
    InsufficientDataError,
    InvalidConfigurationError,
    InvalidDatasetError,
    PoolClosedError,
    RunTimeoutError,
)
from .ingest import build_survey_dataset, survey_dataset_from_dataframe
from .processing import GroupJobRunner, WorkerPool, get_strategy, partition, run

__version__ = "0.1.0"

__all__ = [
    "BootstrapConfig",
    "configure_logging",
    "BiomassIndexError",
    "DegenerateDistributionError",
    "EmptyDatasetError",
    "GroupComputationError",
    "InsufficientDataError",
    "InvalidConfigurationError",
    "InvalidDatasetError",
    "PoolClosedError",
    "RunTimeoutError",
    "build_survey_dataset",
    "survey_dataset_from_dataframe",
    "GroupJobRunner",
    "WorkerPool",
    "get_strategy",
    "partition",
    "run",
]
