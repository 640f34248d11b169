"""Tests for survey_table module."""

import numpy as np
import pandas as pd
import pytest

from biomass_index.errors import InvalidDatasetError
from biomass_index.ingest.survey_table import (
    build_survey_dataset,
    summarize_survey_dataset,
    survey_dataset_from_dataframe,
    validate_survey_dataset,
)


class TestBuildSurveyDataset:
    """Tests for build_survey_dataset function."""

    def test_basic_build(self):
        """Test that columns become variables along obs."""
        ds = build_survey_dataset(
            survey=["EBS", "EBS"],
            year=[2019, 2019],
            grouping_code=["A", "B"],
            density_kgpm2=[0.1, 0.2],
        )

        assert ds.sizes["obs"] == 2
        assert set(ds.data_vars) == {"survey", "year", "grouping_code", "density_kgpm2"}
        assert ds["density_kgpm2"].attrs["units"] == "kg m-2"

    def test_optional_coordinates(self, two_year_dataset):
        """Test that latitude and longitude are kept when given."""
        assert "latitude" in two_year_dataset.data_vars
        assert "longitude" in two_year_dataset.data_vars

    def test_mismatched_lengths(self):
        """Test that columns of different lengths are rejected."""
        with pytest.raises(InvalidDatasetError, match="different lengths"):
            build_survey_dataset(
                survey=["EBS"],
                year=[2019, 2020],
                grouping_code=["A"],
                density_kgpm2=[0.1],
            )

    def test_negative_density(self):
        """Test that negative densities are rejected."""
        with pytest.raises(InvalidDatasetError, match="non-negative"):
            build_survey_dataset(
                survey=["EBS"],
                year=[2019],
                grouping_code=["A"],
                density_kgpm2=[-0.1],
            )

    def test_missing_density(self):
        """Test that NaN densities are rejected."""
        with pytest.raises(InvalidDatasetError, match="missing"):
            build_survey_dataset(
                survey=["EBS"],
                year=[2019],
                grouping_code=["A"],
                density_kgpm2=[np.nan],
            )

    def test_empty_table_is_valid(self, empty_dataset):
        """Test that an empty table can be built."""
        assert empty_dataset.sizes["obs"] == 0


class TestSurveyDatasetFromDataframe:
    """Tests for survey_dataset_from_dataframe function."""

    def test_from_dataframe(self):
        """Test conversion keeps row order and drops the frame index."""
        df = pd.DataFrame(
            {
                "survey": ["EBS", "NBS", "EBS"],
                "year": [2019, 2019, 2021],
                "grouping_code": [10, 20, 10],
                "density_kgpm2": [0.1, 0.0, 0.3],
            },
            index=[7, 3, 5],
        )
        ds = survey_dataset_from_dataframe(df)

        assert ds.sizes["obs"] == 3
        assert list(ds["survey"].values) == ["EBS", "NBS", "EBS"]
        np.testing.assert_allclose(ds["density_kgpm2"].values, [0.1, 0.0, 0.3])

    def test_missing_columns(self):
        """Test that missing required columns are reported."""
        df = pd.DataFrame({"survey": ["EBS"], "year": [2019]})

        with pytest.raises(InvalidDatasetError, match="grouping_code"):
            survey_dataset_from_dataframe(df)

    @pytest.mark.parametrize(
        "column, values",
        [
            ("survey", ["EBS", None, "EBS"]),
            ("year", [2019, np.nan, 2021]),
            ("grouping_code", ["A", None, "B"]),
        ],
    )
    def test_missing_key_values(self, column, values):
        """Test that missing survey, year or stratum values are rejected."""
        data = {
            "survey": ["EBS", "EBS", "EBS"],
            "year": [2019, 2019, 2021],
            "grouping_code": ["A", "A", "B"],
            "density_kgpm2": [0.1, 0.2, 0.3],
        }
        data[column] = values

        with pytest.raises(InvalidDatasetError, match=column):
            survey_dataset_from_dataframe(pd.DataFrame(data))


class TestValidateSurveyDataset:
    """Tests for validate_survey_dataset function."""

    def test_valid_dataset(self, survey_dataset):
        """Test that a valid dataset is returned unchanged."""
        assert validate_survey_dataset(survey_dataset) is survey_dataset

    def test_missing_variable(self, two_year_dataset):
        """Test that a missing required variable is reported."""
        ds = two_year_dataset.drop_vars("grouping_code")

        with pytest.raises(InvalidDatasetError, match="grouping_code"):
            validate_survey_dataset(ds)

    def test_missing_obs_dimension(self, two_year_dataset):
        """Test that a dataset without obs dimension is rejected."""
        ds = two_year_dataset.rename({"obs": "row"})

        with pytest.raises(InvalidDatasetError, match="obs"):
            validate_survey_dataset(ds)


class TestSummarizeSurveyDataset:
    """Tests for summarize_survey_dataset function."""

    def test_summary_structure(self, survey_dataset):
        """Test summary contents."""
        info = summarize_survey_dataset(survey_dataset)

        assert info["n_obs"] == 2 * 3 * 3 * 4
        assert info["surveys"] == ["EBS", "NBS"]
        assert info["years"] == [2019, 2021, 2022]
        assert info["strata_per_survey"] == {"EBS": 3, "NBS": 3}
        assert "spatial" in info
