"""Partitioning of survey tables into independent groups.

Groups are returned in ascending order of their key tuples, with key fields
compared in the order given. Results are assembled in this same order.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import xarray as xr

from ..errors import EmptyDatasetError, InvalidConfigurationError, InvalidDatasetError
from ..ingest.survey_table import DENSITY_VAR, OBS_DIM, STRATUM_VAR

DEFAULT_KEY_FIELDS = ("survey", "year")


@dataclass(frozen=True)
class Group:
    """Observations sharing one value of the partition key."""

    key_fields: tuple[str, ...]
    key: tuple[Any, ...]
    data: xr.Dataset

    @property
    def n_obs(self) -> int:
        return int(self.data.sizes[OBS_DIM])

    @property
    def densities(self) -> np.ndarray:
        return np.asarray(self.data[DENSITY_VAR].values, dtype=np.float64)

    @property
    def strata(self) -> np.ndarray:
        return np.asarray(self.data[STRATUM_VAR].values)

    @property
    def label(self) -> str:
        return ", ".join(f"{k}={v}" for k, v in zip(self.key_fields, self.key))

    def key_dict(self) -> dict[str, Any]:
        return dict(zip(self.key_fields, self.key))

    def stratum_counts(self) -> dict[Any, int]:
        """Number of observations in each stratum of the group."""
        labels, counts = np.unique(self.strata, return_counts=True)
        return {
            label.item() if hasattr(label, "item") else label: int(count)
            for label, count in zip(labels, counts)
        }


def partition(
    ds: xr.Dataset,
    key_fields: Sequence[str] | str = DEFAULT_KEY_FIELDS,
) -> list[Group]:
    """Split a survey table into disjoint groups by composite key.

    Args:
        ds: Survey table with an ``obs`` dimension
        key_fields: Field name(s) forming the partition key, e.g. ``("year",)``
            or ``("survey", "year")``

    Returns:
        Groups sorted by key tuple; together they cover every observation once

    Raises:
        EmptyDatasetError: If the table has no observations
        InvalidConfigurationError: If a key field is not a table variable
        InvalidDatasetError: If key values of different types cannot be ordered
    """
    if isinstance(key_fields, str):
        key_fields = (key_fields,)
    key_fields = tuple(key_fields)
    if not key_fields:
        raise InvalidConfigurationError("At least one grouping key field is required")

    n_obs = int(ds.sizes.get(OBS_DIM, 0))
    if n_obs == 0:
        raise EmptyDatasetError("Cannot partition a dataset with zero observations")

    missing = [f for f in key_fields if f not in ds.data_vars]
    if missing:
        raise InvalidConfigurationError(
            f"Key fields not found in dataset: {missing}. Available: {list(ds.data_vars)}"
        )

    columns = [ds[f].values.tolist() for f in key_fields]
    members: dict[tuple[Any, ...], list[int]] = {}
    for i, key in enumerate(zip(*columns)):
        members.setdefault(key, []).append(i)

    try:
        keys = sorted(members)
    except TypeError as e:
        raise InvalidDatasetError(f"Key field values of {key_fields} cannot be ordered: {e}") from e

    return [
        Group(key_fields=key_fields, key=key, data=ds.isel({OBS_DIM: members[key]}))
        for key in keys
    ]
