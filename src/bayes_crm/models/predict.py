"""
Posterior predictive probabilities.

Each posterior draw d gives p[d, i] = expit(alpha_d + x_i . beta_d). The
resulting draws x subjects matrix is read-only and recomputed for every
design matrix (training, validation, or external data with the same layout).
"""

import numpy as np
from scipy.special import expit

from bayes_crm.data.design import DesignMatrix
from bayes_crm.models.sampler import PosteriorSampleSet


def predict_proba_matrix(
    samples: PosteriorSampleSet,
    X: np.ndarray | DesignMatrix,
    draw_indices: np.ndarray | None = None,
) -> np.ndarray:
    """
    Predicted probabilities for every (draw, subject) pair.

    Args:
        samples: Posterior draws
        X: Design matrix (array or DesignMatrix) with the training column layout
        draw_indices: Optional subset of draw rows to use

    Returns:
        Read-only array of shape (n_draws, n_subjects)

    Raises:
        ValueError: If the column layout does not match the posterior
    """
    if isinstance(X, DesignMatrix):
        if X.columns != samples.coefficient_names:
            raise ValueError(
                f"Design columns {list(X.columns)} do not match posterior "
                f"coefficients {list(samples.coefficient_names)}"
            )
        X = X.X
    X = np.asarray(X, dtype=float)
    if X.ndim != 2 or X.shape[1] != len(samples.coefficient_names):
        raise ValueError(
            f"X has shape {X.shape}; expected {len(samples.coefficient_names)} columns"
        )

    draws = samples.draws if draw_indices is None else samples.draws[draw_indices]
    eta = draws[:, :1] + draws[:, 1:] @ X.T
    p = expit(eta)
    p.setflags(write=False)
    return p


def posterior_median_proba(prob_matrix: np.ndarray) -> np.ndarray:
    """Per-subject posterior median probability."""
    return np.median(prob_matrix, axis=0)


def posterior_mean_proba(prob_matrix: np.ndarray) -> np.ndarray:
    """Per-subject posterior mean probability."""
    return np.mean(prob_matrix, axis=0)
