"""
MCMC convergence diagnostics.

Per parameter: rank-normalised split-Rhat and bulk/tail effective sample
size (ArviZ), plus a three-way label:

    Rhat <= rhat_good   -> "Good"
    Rhat <= rhat_check  -> "Need check"
    otherwise (or NaN)  -> "Bad"

References:
    - Vehtari et al. (2021). Rank-normalization, folding, and localization:
      an improved R-hat for assessing convergence of MCMC. Bayesian Analysis.
"""

import logging

import arviz as az
import numpy as np
import pandas as pd

from bayes_crm.config.schema import DiagnosticsConfig
from bayes_crm.models.sampler import PosteriorSampleSet

logger = logging.getLogger(__name__)

LABEL_GOOD = "Good"
LABEL_CHECK = "Need check"
LABEL_BAD = "Bad"


def classify_rhat(rhat: float, good: float = 1.01, check: float = 1.05) -> str:
    """
    Convergence label for one Rhat value.

    Examples:
        >>> classify_rhat(1.005)
        'Good'
        >>> classify_rhat(1.03)
        'Need check'
        >>> classify_rhat(float("nan"))
        'Bad'
    """
    if rhat is None or not np.isfinite(rhat):
        return LABEL_BAD
    if rhat <= good:
        return LABEL_GOOD
    if rhat <= check:
        return LABEL_CHECK
    return LABEL_BAD


def compute_convergence_report(
    samples: PosteriorSampleSet,
    config: DiagnosticsConfig | None = None,
) -> pd.DataFrame:
    """
    Convergence table for every model parameter.

    Args:
        samples: Posterior draws (chain boundaries are taken from the set)
        config: Rhat cut-offs (default: 1.01 / 1.05)

    Returns:
        DataFrame with columns parameter, rhat, ess_bulk, ess_tail, label
    """
    config = config or DiagnosticsConfig()
    dataset = az.convert_to_dataset({"theta": samples.by_chain()})

    rhat = np.asarray(az.rhat(dataset, method="rank")["theta"].values, dtype=float)
    ess_bulk = np.asarray(az.ess(dataset, method="bulk")["theta"].values, dtype=float)
    ess_tail = np.asarray(az.ess(dataset, method="tail")["theta"].values, dtype=float)

    report = pd.DataFrame(
        {
            "parameter": list(samples.parameter_names),
            "rhat": rhat,
            "ess_bulk": ess_bulk,
            "ess_tail": ess_tail,
            "label": [classify_rhat(r, config.rhat_good, config.rhat_check) for r in rhat],
        }
    )

    counts = report["label"].value_counts()
    max_rhat = float(np.nanmax(rhat)) if np.isfinite(rhat).any() else float("nan")
    logger.info(
        f"Convergence: {counts.get(LABEL_GOOD, 0)} Good, {counts.get(LABEL_CHECK, 0)} Need check, "
        f"{counts.get(LABEL_BAD, 0)} Bad (max Rhat {max_rhat:.4f})"
    )
    if counts.get(LABEL_BAD, 0):
        bad = report.loc[report["label"] == LABEL_BAD, "parameter"].tolist()
        logger.warning(f"Parameters with Rhat > {config.rhat_check}: {bad}")

    return report


def all_converged(report: pd.DataFrame) -> bool:
    """True when no parameter is labelled Bad."""
    return bool((report["label"] != LABEL_BAD).all())
