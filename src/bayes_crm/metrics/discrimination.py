"""
Discrimination metrics for posterior predictive probabilities.

This module computes:
- AUROC for a single probability vector
- The AUC posterior: one AUC per posterior draw, computed for all draws at
  once with the rank-sum (Mann-Whitney) formula, ties receiving average ranks
- The posterior AUC mode (peak of a Gaussian KDE over the AUC draws)

References:
    - Hanley & McNeil (1982). The meaning and use of the area under a ROC curve.
"""

import warnings

import numpy as np
from scipy.stats import gaussian_kde, rankdata
from sklearn.metrics import roc_auc_score

KDE_GRID_POINTS = 512


def _validate_binary_labels(y_true: np.ndarray, metric_name: str) -> bool:
    """
    Validate that y_true contains both positive and negative classes.

    Returns:
        True if both classes present, False otherwise

    Warns:
        UserWarning if only one class is present
    """
    unique_classes = np.unique(y_true)
    if len(unique_classes) < 2:
        warnings.warn(
            f"{metric_name} requires both classes (0 and 1) in y_true, "
            f"but only found {unique_classes.tolist()}. Returning NaN.",
            UserWarning,
            stacklevel=3,
        )
        return False
    return True


def auroc(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Compute Area Under the ROC Curve (AUROC).

    Args:
        y_true: True binary labels (0/1), shape (n_samples,)
        y_pred: Predicted probabilities for positive class, shape (n_samples,)

    Returns:
        AUROC score in [0.0, 1.0], or NaN if only one class present

    Examples:
        >>> y_true = np.array([0, 0, 1, 1])
        >>> y_pred = np.array([0.1, 0.4, 0.6, 0.9])
        >>> auroc(y_true, y_pred)
        1.0
    """
    y_true = np.asarray(y_true).astype(int)
    y_pred = np.asarray(y_pred).astype(float)

    if not _validate_binary_labels(y_true, "AUROC"):
        return np.nan

    return float(roc_auc_score(y_true, y_pred))


def auc_posterior(prob_matrix: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    AUC for every posterior draw.

    Uses AUC = (R1 - n1(n1+1)/2) / (n1 n0), where R1 is the rank sum of the
    positives within each draw's row of predictions.

    Args:
        prob_matrix: (n_draws, n_subjects) predicted probabilities
        y: (n_subjects,) observed 0/1 outcomes

    Returns:
        (n_draws,) array of AUC values (all NaN if only one class present)
    """
    P = np.asarray(prob_matrix, dtype=float)
    if P.ndim == 1:
        P = P[None, :]
    y = np.asarray(y).astype(int)
    if P.shape[1] != y.shape[0]:
        raise ValueError(f"prob_matrix has {P.shape[1]} subjects, y has {y.shape[0]}")

    if not _validate_binary_labels(y, "AUC posterior"):
        return np.full(P.shape[0], np.nan)

    pos = y == 1
    n1 = int(pos.sum())
    n0 = y.size - n1
    ranks = rankdata(P, method="average", axis=1)
    r1 = ranks[:, pos].sum(axis=1)
    return (r1 - n1 * (n1 + 1) / 2.0) / (n1 * n0)


def auc_posterior_mode(auc_draws: np.ndarray) -> float:
    """
    Peak of a Gaussian kernel density estimate over the AUC draws.

    Falls back to the common value when all draws are identical (KDE
    undefined) and to the median when fewer than two finite draws exist.
    """
    a = np.asarray(auc_draws, dtype=float)
    a = a[np.isfinite(a)]
    if a.size == 0:
        return np.nan
    if a.size < 2:
        return float(np.median(a))
    if np.ptp(a) == 0:
        return float(a[0])
    try:
        kde = gaussian_kde(a)
    except np.linalg.LinAlgError:
        return float(np.median(a))
    grid = np.linspace(a.min(), a.max(), KDE_GRID_POINTS)
    return float(grid[int(np.argmax(kde(grid)))])


def summarize_auc(auc_draws: np.ndarray) -> dict[str, float]:
    """Mode, median, mean and 95% credible interval of the AUC posterior."""
    a = np.asarray(auc_draws, dtype=float)
    finite = a[np.isfinite(a)]
    if finite.size == 0:
        return {k: np.nan for k in ("mode", "median", "mean", "lower", "upper")}
    lower, upper = np.percentile(finite, [2.5, 97.5])
    return {
        "mode": auc_posterior_mode(finite),
        "median": float(np.median(finite)),
        "mean": float(np.mean(finite)),
        "lower": float(lower),
        "upper": float(upper),
    }
