"""Evaluation: leave-one-out cross-validation and results writing."""

from bayes_crm.evaluation.loo import (
    CrossValidationResult,
    leave_one_out_predictions,
    loo_sampler_config,
)
from bayes_crm.evaluation.reports import OutputDirectories, ResultsWriter

__all__ = [
    "CrossValidationResult",
    "leave_one_out_predictions",
    "loo_sampler_config",
    "OutputDirectories",
    "ResultsWriter",
]
