"""Pytest configuration and fixtures."""

import numpy as np
import pytest
import xarray as xr

from biomass_index.ingest import build_survey_dataset
from biomass_index.processing import WorkerPool


def make_survey_dataset(
    surveys: list[str],
    years: list[int],
    strata: list[str],
    n_per_stratum: int,
    seed: int = 0,
) -> xr.Dataset:
    """Build a survey table with every survey x year x stratum combination."""
    rng = np.random.default_rng(seed)
    rows = [
        (survey, year, stratum)
        for survey in surveys
        for year in years
        for stratum in strata
        for _ in range(n_per_stratum)
    ]
    n = len(rows)
    return build_survey_dataset(
        survey=[r[0] for r in rows],
        year=[r[1] for r in rows],
        grouping_code=[r[2] for r in rows],
        density_kgpm2=rng.gamma(2.0, 0.05, size=n),
        latitude=rng.uniform(54.0, 62.0, size=n),
        longitude=rng.uniform(-170.0, -158.0, size=n),
    )


@pytest.fixture
def two_year_dataset() -> xr.Dataset:
    """One survey, 2 years x 2 strata, 5 observations each."""
    return make_survey_dataset(["EBS"], [2019, 2021], ["A", "B"], n_per_stratum=5, seed=1)


@pytest.fixture
def survey_dataset() -> xr.Dataset:
    """Two surveys over three years with three strata, rows shuffled."""
    ds = make_survey_dataset(["NBS", "EBS"], [2021, 2019, 2022], ["10", "20", "31"], n_per_stratum=4, seed=2)
    order = np.random.default_rng(3).permutation(ds.sizes["obs"])
    return ds.isel(obs=order)


@pytest.fixture
def constant_dataset() -> xr.Dataset:
    """One group whose densities are all equal, spread over three strata."""
    n = 9
    return build_survey_dataset(
        survey=["GOA"] * n,
        year=[2020] * n,
        grouping_code=["A", "A", "A", "A", "B", "B", "C", "C", "C"],
        density_kgpm2=[0.25] * n,
    )


@pytest.fixture
def empty_dataset() -> xr.Dataset:
    return build_survey_dataset(survey=[], year=[], grouping_code=[], density_kgpm2=[])


@pytest.fixture
def thread_pool():
    """A started two-worker thread pool, shut down after the test."""
    with WorkerPool(n_workers=2, kind="threads") as pool:
        yield pool
