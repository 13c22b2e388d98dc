"""Data loading, schema validation and design matrices."""

from bayes_crm.data.design import DesignMatrix, build_design_matrix, dummy_name
from bayes_crm.data.io import (
    ValidationResult,
    get_data_stats,
    load_dataset,
    read_dataset_csv,
    validate_dataset,
)

__all__ = [
    "ValidationResult",
    "read_dataset_csv",
    "validate_dataset",
    "load_dataset",
    "get_data_stats",
    "DesignMatrix",
    "build_design_matrix",
    "dummy_name",
]
