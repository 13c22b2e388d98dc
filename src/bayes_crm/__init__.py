"""
bayes_crm: Bayesian Clinical Risk Model

Fits a Bayesian logistic regression risk model for a binary clinical outcome
and evaluates it from its posterior: convergence diagnostics, calibration,
discrimination, leave-one-out decision curves and goodness of fit.
"""

# Enable pandas Copy-on-Write for pandas 3.0 compatibility and better memory efficiency
# See: https://pandas.pydata.org/docs/user_guide/copy_on_write.html
import pandas as pd

pd.options.mode.copy_on_write = True

__version__ = "1.0.0"
__author__ = "Andres Chousal"
__license__ = "MIT"

from bayes_crm import (  # noqa: E402
    cli,
    config,
    data,
    evaluation,
    metrics,
    models,
    utils,
)

__all__ = [
    "__version__",
    "cli",
    "config",
    "data",
    "evaluation",
    "metrics",
    "models",
    "utils",
]
