"""Survey observation tables as Xarray datasets.

A survey table is an ``xr.Dataset`` with a single ``obs`` dimension and one
data variable per column. Loading from files is left to the caller; this
module builds, validates and summarizes tables already in memory.
"""

from collections.abc import Sequence
from typing import Any

import numpy as np
import xarray as xr

from ..errors import InvalidDatasetError

OBS_DIM = "obs"
DENSITY_VAR = "density_kgpm2"
STRATUM_VAR = "grouping_code"
REQUIRED_VARIABLES = ("survey", "year", STRATUM_VAR, DENSITY_VAR)
OPTIONAL_VARIABLES = ("latitude", "longitude")


def build_survey_dataset(
    survey: Sequence[str],
    year: Sequence[int],
    grouping_code: Sequence[Any],
    density_kgpm2: Sequence[float],
    latitude: Sequence[float] | None = None,
    longitude: Sequence[float] | None = None,
    attrs: dict[str, Any] | None = None,
) -> xr.Dataset:
    """Build a validated survey table from column sequences.

    Args:
        survey: Survey name per observation
        year: Survey year per observation
        grouping_code: Stratum identifier per observation
        density_kgpm2: Biomass density (kg per m^2) per observation
        latitude: Optional latitude per observation
        longitude: Optional longitude per observation
        attrs: Optional dataset attributes

    Returns:
        Xarray Dataset with an ``obs`` dimension
    """
    columns: dict[str, Any] = {
        "survey": np.asarray(survey, dtype=str),
        "year": np.asarray(year, dtype=np.int64),
        STRATUM_VAR: np.asarray(grouping_code),
        DENSITY_VAR: np.asarray(density_kgpm2, dtype=np.float64),
    }
    if latitude is not None:
        columns["latitude"] = np.asarray(latitude, dtype=np.float64)
    if longitude is not None:
        columns["longitude"] = np.asarray(longitude, dtype=np.float64)

    lengths = {name: len(values) for name, values in columns.items()}
    if len(set(lengths.values())) > 1:
        raise InvalidDatasetError(f"Columns have different lengths: {lengths}")

    n_obs = lengths["survey"]
    ds = xr.Dataset(
        {name: ((OBS_DIM,), values) for name, values in columns.items()},
        coords={OBS_DIM: np.arange(n_obs)},
        attrs=attrs or {},
    )
    ds[DENSITY_VAR].attrs = {"long_name": "Biomass density", "units": "kg m-2"}

    return validate_survey_dataset(ds)


def survey_dataset_from_dataframe(df: Any) -> xr.Dataset:
    """Convert a pandas DataFrame of observations into a survey table.

    The frame index is discarded; rows keep their order.

    Args:
        df: DataFrame with at least the required survey columns

    Returns:
        Validated Xarray Dataset with an ``obs`` dimension
    """
    missing = [c for c in REQUIRED_VARIABLES if c not in df.columns]
    if missing:
        raise InvalidDatasetError(
            f"Columns not found in table: {missing}. Available: {list(df.columns)}"
        )
    frame = df.reset_index(drop=True)
    frame.index.name = OBS_DIM
    ds = xr.Dataset.from_dataframe(frame)
    return validate_survey_dataset(ds)


def validate_survey_dataset(ds: xr.Dataset) -> xr.Dataset:
    """Check that a dataset is a usable survey table.

    Args:
        ds: Candidate survey table

    Returns:
        The same dataset, unchanged

    Raises:
        InvalidDatasetError: On missing columns, extra dimensions, or
            missing key values, or negative / missing densities
    """
    if OBS_DIM not in ds.dims:
        raise InvalidDatasetError(f"Dimension '{OBS_DIM}' not found in dataset")

    available = list(ds.data_vars)
    missing = [v for v in REQUIRED_VARIABLES if v not in available]
    if missing:
        raise InvalidDatasetError(f"Variables not found in dataset: {missing}. Available: {available}")

    for var in (*REQUIRED_VARIABLES, *OPTIONAL_VARIABLES):
        if var in ds.data_vars and ds[var].dims != (OBS_DIM,):
            raise InvalidDatasetError(
                f"Variable '{var}' must be one-dimensional along '{OBS_DIM}', got {ds[var].dims}"
            )

    for var in ("survey", "year", STRATUM_VAR):
        if bool(ds[var].isnull().any()):
            raise InvalidDatasetError(f"'{var}' contains missing values")

    density = ds[DENSITY_VAR].values
    if density.size:
        if not np.issubdtype(density.dtype, np.number):
            raise InvalidDatasetError(f"'{DENSITY_VAR}' must be numeric, got {density.dtype}")
        if np.isnan(density).any():
            raise InvalidDatasetError(f"'{DENSITY_VAR}' contains missing values")
        if (density < 0).any():
            raise InvalidDatasetError(f"'{DENSITY_VAR}' must be non-negative")

    return ds


def summarize_survey_dataset(ds: xr.Dataset) -> dict[str, Any]:
    """Extract summary information from a survey table.

    Args:
        ds: Survey table

    Returns:
        Dictionary with row count, years, surveys and strata per survey
    """
    surveys = ds["survey"].values
    info: dict[str, Any] = {
        "n_obs": int(ds.sizes[OBS_DIM]),
        "variables": list(ds.data_vars),
        "surveys": sorted({str(s) for s in surveys}),
        "years": sorted({int(y) for y in ds["year"].values}),
        "attributes": dict(ds.attrs),
    }

    strata = ds[STRATUM_VAR].values
    info["strata_per_survey"] = {
        name: len(np.unique(strata[surveys == name])) for name in info["surveys"]
    }

    if "latitude" in ds.data_vars and "longitude" in ds.data_vars and info["n_obs"]:
        info["spatial"] = {
            "lat_range": [float(ds["latitude"].min()), float(ds["latitude"].max())],
            "lon_range": [float(ds["longitude"].min()), float(ds["longitude"].max())],
        }

    return info
