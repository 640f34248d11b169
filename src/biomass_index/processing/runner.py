"""Group job runner for bootstrap biomass indices.

Partitions a survey table, runs the stratified bootstrap for every group
through an execution strategy, and assembles one result row per group in
partition order.

Random streams are seeded per group, so with the ``spawn`` or ``fixed`` seed
policy every strategy returns identical tables. With ``entropy`` each run
draws fresh seeds and only the distribution of the results is reproducible.
"""

import logging
import time
import traceback
from dataclasses import dataclass
from typing import Any

import numpy as np
import xarray as xr

from ..config import BootstrapConfig
from ..errors import GroupComputationError, InvalidConfigurationError
from ..ingest.survey_table import validate_survey_dataset
from ..metrics.biomass import make_biomass_statistic
from ..metrics.intervals import estimate
from ..metrics.resampling import resample_and_compute
from .grouping import Group, partition
from .strategies import ExecutionStrategy, get_strategy
from .worker_pool import WorkerPool, get_default_pool

logger = logging.getLogger(__name__)

GROUP_DIM = "group"
RESULT_VARIABLES = ("est", "lwr", "upr", "cv")
BASE_KEY_COLUMNS = ("survey", "year")


@dataclass(frozen=True)
class GroupJob:
    """Everything a worker needs to process one group."""

    group: Group
    repetitions: int
    area_km2: float
    confidence: float
    seed: Any = None


@dataclass(frozen=True)
class GroupResult:
    """One output row. ``error`` is set only under the record policy."""

    key: dict[str, Any]
    est: float
    lwr: float
    upr: float
    cv: float
    n_obs: int
    n_strata: int
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class GroupOutcome:
    """Result or exception returned across the worker boundary."""

    key: dict[str, Any]
    result: GroupResult | None = None
    exception: BaseException | None = None
    traceback: str | None = None


def run_group_job(job: GroupJob) -> GroupOutcome:
    """Bootstrap one group and summarize it.

    Exceptions are caught here and returned in the outcome so the submitting
    side decides whether to raise or record them.
    """
    group = job.group
    key = group.key_dict()
    try:
        values = resample_and_compute(
            group,
            make_biomass_statistic(job.area_km2),
            job.repetitions,
            seed=job.seed,
        )
        summary = estimate(values, confidence=job.confidence)
        result = GroupResult(
            key=key,
            est=summary.est,
            lwr=summary.lwr,
            upr=summary.upr,
            cv=summary.cv,
            n_obs=group.n_obs,
            n_strata=len(group.stratum_counts()),
        )
        return GroupOutcome(key=key, result=result)
    except Exception as e:
        return GroupOutcome(key=key, exception=e, traceback=traceback.format_exc())


def derive_group_seeds(config: BootstrapConfig, n_groups: int) -> list[Any]:
    """Seed for each group position according to the seed policy."""
    if config.seed_policy == "spawn":
        return list(np.random.SeedSequence(config.seed).spawn(n_groups))
    if config.seed_policy == "fixed":
        return [config.seed] * n_groups
    return [None] * n_groups


class GroupJobRunner:
    """Runs the per-group bootstrap with a chosen execution strategy."""

    def __init__(
        self,
        config: BootstrapConfig | None = None,
        strategy: ExecutionStrategy | None = None,
        pool: WorkerPool | None = None,
    ):
        self.config = (config or BootstrapConfig()).validate()
        self.pool = pool
        self.strategy = strategy if strategy is not None else self._build_strategy()
        if self.config.timeout is not None and not self.strategy.supports_timeout:
            raise InvalidConfigurationError(f"{type(self.strategy).__name__} does not support a timeout")

    def _build_strategy(self) -> ExecutionStrategy:
        config = self.config
        if config.strategy == "sequential":
            return get_strategy("sequential")
        if config.strategy == "pool":
            pool = self.pool or get_default_pool(config.n_workers, config.pool_kind)
            return get_strategy("pool", pool=pool)

        pool = self.pool
        if pool is None and config.dask_scheduler != "synchronous":
            pool = get_default_pool(config.n_workers, config.dask_scheduler)
        return get_strategy(
            "dask",
            pool=pool,
            scheduler=config.dask_scheduler,
            n_workers=config.n_workers,
            progress=config.progress,
        )

    def build_jobs(self, groups: list[Group]) -> list[GroupJob]:
        seeds = derive_group_seeds(self.config, len(groups))
        return [
            GroupJob(
                group=group,
                repetitions=self.config.repetitions,
                area_km2=self.config.area_km2,
                confidence=self.config.confidence,
                seed=seed,
            )
            for group, seed in zip(groups, seeds)
        ]

    def run(self, ds: xr.Dataset) -> xr.Dataset:
        """Compute the bootstrap biomass index for every group.

        Args:
            ds: Survey table

        Returns:
            Result table with one row per group along the ``group`` dimension

        Raises:
            EmptyDatasetError: If the table has no observations
            GroupComputationError: If a group fails under the raise policy
            RunTimeoutError: If the run exceeds the configured timeout
        """
        config = self.config
        validate_survey_dataset(ds)
        groups = partition(ds, config.key_fields)
        jobs = self.build_jobs(groups)

        logger.info(
            "Running %d groups x %d repetitions with %r",
            len(jobs),
            config.repetitions,
            self.strategy,
        )
        start = time.perf_counter()
        outcomes = self.strategy.map(run_group_job, jobs, timeout=config.timeout)
        logger.info("Finished %d groups in %.2fs", len(outcomes), time.perf_counter() - start)

        results = [self._resolve(group, outcome) for group, outcome in zip(groups, outcomes)]
        return build_result_table(groups, results, config, strategy=self.strategy.name)

    def _resolve(self, group: Group, outcome: GroupOutcome) -> GroupResult:
        if outcome.exception is None:
            logger.debug("Group (%s): est=%.6g", group.label, outcome.result.est)
            return outcome.result  # type: ignore[return-value]

        if self.config.error_policy == "raise":
            if outcome.traceback:
                logger.debug("Worker traceback for group (%s):\n%s", group.label, outcome.traceback)
            raise GroupComputationError(outcome.key, outcome.exception) from outcome.exception

        message = f"{type(outcome.exception).__name__}: {outcome.exception}"
        logger.warning("Recording failure for group (%s): %s", group.label, message)
        return GroupResult(
            key=outcome.key,
            est=np.nan,
            lwr=np.nan,
            upr=np.nan,
            cv=np.nan,
            n_obs=group.n_obs,
            n_strata=len(group.stratum_counts()),
            error=message,
        )


def run(
    ds: xr.Dataset,
    config: BootstrapConfig | None = None,
    strategy: ExecutionStrategy | str | None = None,
    pool: WorkerPool | None = None,
    **overrides: Any,
) -> xr.Dataset:
    """Run the bootstrap biomass index over all groups of a survey table.

    Args:
        ds: Survey table
        config: Run configuration (default: BootstrapConfig())
        strategy: ExecutionStrategy instance, or a strategy name overriding
            ``config.strategy``
        pool: Worker pool for concurrent strategies (default: process-wide pool)
        **overrides: BootstrapConfig fields to replace, e.g. ``repetitions=500``

    Returns:
        Result table with columns survey, year, est, lwr, upr, cv
    """
    config = config or BootstrapConfig()
    if isinstance(strategy, str):
        overrides["strategy"] = strategy
        strategy = None
    if overrides:
        config = config.with_overrides(**overrides)
    return GroupJobRunner(config, strategy=strategy, pool=pool).run(ds)


def _key_column_value(group: Group, column: str) -> Any:
    """Key value of a group, or a label of the distinct values it spans."""
    key = group.key_dict()
    if column in key:
        return key[column]
    distinct = sorted({str(v) for v in group.data[column].values.tolist()})
    return distinct[0] if len(distinct) == 1 else "/".join(distinct)


def build_result_table(
    groups: list[Group],
    results: list[GroupResult],
    config: BootstrapConfig,
    strategy: str = "",
) -> xr.Dataset:
    """Assemble per-group results into an Xarray result table.

    Args:
        groups: Groups in partition order
        results: One result per group, same order
        config: Configuration used for the run
        strategy: Name of the execution strategy, recorded as an attribute

    Returns:
        Dataset along dimension ``group``
    """
    key_columns = list(BASE_KEY_COLUMNS) + [f for f in config.key_fields if f not in BASE_KEY_COLUMNS]

    data_vars: dict[str, Any] = {}
    for column in key_columns:
        if column not in groups[0].data.data_vars:
            continue
        data_vars[column] = ((GROUP_DIM,), np.array([_key_column_value(g, column) for g in groups]))
    for var in RESULT_VARIABLES:
        data_vars[var] = ((GROUP_DIM,), np.array([getattr(r, var) for r in results], dtype=np.float64))
    data_vars["n_obs"] = ((GROUP_DIM,), np.array([r.n_obs for r in results], dtype=np.int64))
    data_vars["n_strata"] = ((GROUP_DIM,), np.array([r.n_strata for r in results], dtype=np.int64))
    data_vars["error"] = ((GROUP_DIM,), np.array([r.error or "" for r in results], dtype=str))

    table = xr.Dataset(data_vars, coords={GROUP_DIM: np.arange(len(groups))})

    table["est"].attrs["long_name"] = "Bootstrap mean biomass"
    table["lwr"].attrs["long_name"] = f"Lower {config.confidence * 100:g}% percentile bound"
    table["upr"].attrs["long_name"] = f"Upper {config.confidence * 100:g}% percentile bound"
    table["cv"].attrs["long_name"] = "Coefficient of variation of bootstrap values"

    table.attrs["key_fields"] = list(config.key_fields)
    table.attrs["repetitions"] = config.repetitions
    table.attrs["area_km2"] = config.area_km2
    table.attrs["confidence_level"] = config.confidence
    table.attrs["interval_method"] = "percentile (linear interpolation)"
    table.attrs["seed_policy"] = config.seed_policy
    table.attrs["strategy"] = strategy
    table.attrs["n_failed"] = sum(1 for r in results if not r.ok)

    return table
