"""Survey table construction and validation."""

from .survey_table import (
    build_survey_dataset,
    summarize_survey_dataset,
    survey_dataset_from_dataframe,
    validate_survey_dataset,
)

__all__ = [
    "build_survey_dataset",
    "survey_dataset_from_dataframe",
    "validate_survey_dataset",
    "summarize_survey_dataset",
]
