"""Exception hierarchy for biomass index computations."""


class BiomassIndexError(Exception):
    """Base class for all biomass index errors."""


class EmptyDatasetError(BiomassIndexError):
    """Raised when a survey dataset has no observations."""


class InvalidDatasetError(BiomassIndexError, ValueError):
    """Raised when a survey dataset is missing columns or holds bad values."""


class InsufficientDataError(BiomassIndexError):
    """Raised when a group or stratum has no observations to resample."""


class InvalidConfigurationError(BiomassIndexError, ValueError):
    """Raised for invalid run parameters, before any work is dispatched."""


class DegenerateDistributionError(BiomassIndexError):
    """Raised when bootstrap values cannot yield a coefficient of variation."""


class RunTimeoutError(BiomassIndexError, TimeoutError):
    """Raised when a run does not complete within its global timeout."""


class GroupComputationError(BiomassIndexError):
    """Raised when the computation for one group fails.

    Carries the group key so the failing survey/year is visible to the caller.
    """

    def __init__(self, key: dict, cause: BaseException):
        self.key = key
        self.cause = cause
        label = ", ".join(f"{k}={v}" for k, v in key.items())
        super().__init__(f"Group ({label}) failed: {type(cause).__name__}: {cause}")

    def __reduce__(self):
        return (type(self), (self.key, self.cause))


class PoolClosedError(BiomassIndexError, RuntimeError):
    """Raised when work is submitted to a worker pool that has been shut down."""
