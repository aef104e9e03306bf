"""Data loading and validation."""

from evpi_ml.data.io import (
    coerce_binary_outcome,
    outcome_prevalence,
    read_dataset_file,
    select_complete_cases,
    validate_dataset,
)

__all__ = [
    "read_dataset_file",
    "coerce_binary_outcome",
    "validate_dataset",
    "select_complete_cases",
    "outcome_prevalence",
]
