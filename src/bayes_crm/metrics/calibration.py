"""
Calibration metrics for posterior predictive probabilities.

This module provides:
- Posterior calibration curves (draw-wise binned observed vs predicted rates)
- Calibration intercept and slope (logistic recalibration)
- Brier score and expected calibration error (ECE)

The calibration curve is computed for a subsample of posterior draws at
once: each draw's probabilities are binned with shared edges (quantiles of
the pooled probability distribution), and per-bin medians and 2.5/97.5
percentiles over draws give the curve and its uncertainty band.
"""

import logging
from typing import Tuple

import numpy as np
import pandas as pd
from sklearn.linear_model import LogisticRegression
from sklearn.metrics import brier_score_loss

from bayes_crm.exceptions import warn_data_quality

logger = logging.getLogger(__name__)

CURVE_COLUMNS = [
    "bin",
    "bin_lower",
    "bin_upper",
    "predicted_mid",
    "observed_median",
    "observed_lower",
    "observed_upper",
    "n_draws",
    "mean_count",
]

# Padding applied to the observed probability range when quantile edges collapse
EDGE_PADDING = 0.01


def _padded_edges(pooled: np.ndarray, n_bins: int) -> np.ndarray:
    lo = max(0.0, float(pooled.min()) - EDGE_PADDING)
    hi = min(1.0, float(pooled.max()) + EDGE_PADDING)
    return np.linspace(lo, hi, n_bins + 1)


def calibration_bin_edges(
    pooled: np.ndarray,
    n_bins: int = 15,
    sd_floor: float = 1e-3,
) -> np.ndarray:
    """
    Shared bin edges for all posterior draws.

    Edges are quantiles of the pooled probabilities. When the pooled spread
    is below ``sd_floor`` equal-width edges over the observed range are used
    instead; when fewer than 3 distinct edges remain, equal-width edges over
    the range padded by 0.01 (clipped to [0, 1]) are used. Both fallbacks
    issue a DataQualityWarning.

    Args:
        pooled: Probabilities from every draw and subject (any shape)
        n_bins: Requested number of bins
        sd_floor: Minimum pooled standard deviation for quantile binning

    Returns:
        Strictly increasing edge array (length <= n_bins + 1, >= 3)
    """
    pooled = np.asarray(pooled, dtype=float).ravel()
    pooled = pooled[np.isfinite(pooled)]
    if pooled.size == 0:
        raise ValueError("No finite probabilities to bin")

    if np.std(pooled) < sd_floor:
        warn_data_quality(
            f"Degenerate probability spread (sd={np.std(pooled):.2e} < {sd_floor}); "
            "using equal-width calibration bins"
        )
        edges = np.unique(np.linspace(pooled.min(), pooled.max(), n_bins + 1))
    else:
        edges = np.unique(np.quantile(pooled, np.linspace(0.0, 1.0, n_bins + 1)))

    if edges.size < 3:
        warn_data_quality(
            f"Only {edges.size} distinct calibration bin edge(s); "
            "widening to equal-width bins over a padded range"
        )
        edges = _padded_edges(pooled, n_bins)

    return edges


def posterior_calibration_curve(
    prob_matrix: np.ndarray,
    y: np.ndarray,
    n_bins: int = 15,
    n_draws: int | None = None,
    seed: int | None = None,
    sd_floor: float = 1e-3,
) -> pd.DataFrame:
    """
    Binned calibration curve with posterior uncertainty.

    Args:
        prob_matrix: (n_draws, n_subjects) predicted probabilities
        y: (n_subjects,) observed 0/1 outcomes
        n_bins: Requested number of bins
        n_draws: Number of draws to subsample (default: all)
        seed: Seed for the draw subsample
        sd_floor: Minimum pooled sd for quantile binning

    Returns:
        DataFrame with one row per non-empty bin (see CURVE_COLUMNS):
        predicted_mid is the median over draws of the bin's mean prediction,
        observed_* the median and 2.5/97.5 percentiles of its observed rate.
        Bins that are empty in every sampled draw are dropped.
    """
    P = np.asarray(prob_matrix, dtype=float)
    y = np.asarray(y, dtype=float)
    if P.ndim != 2 or P.shape[1] != y.shape[0]:
        raise ValueError(f"prob_matrix shape {P.shape} does not match y length {y.shape[0]}")

    edges = calibration_bin_edges(P, n_bins=n_bins, sd_floor=sd_floor)
    nb = edges.size - 1

    total = P.shape[0]
    if n_draws is not None and n_draws < total:
        rng = np.random.default_rng(seed)
        P = P[np.sort(rng.choice(total, size=n_draws, replace=False))]
    m, n = P.shape

    # Bin index per (draw, subject); the top edge is inclusive
    bins = np.clip(np.searchsorted(edges, P, side="right") - 1, 0, nb - 1)
    flat = (bins + np.arange(m)[:, None] * nb).ravel()

    counts = np.bincount(flat, minlength=m * nb).reshape(m, nb)
    sum_p = np.bincount(flat, weights=P.ravel(), minlength=m * nb).reshape(m, nb)
    sum_y = np.bincount(flat, weights=np.broadcast_to(y, (m, n)).ravel(), minlength=m * nb)
    sum_y = sum_y.reshape(m, nb)

    with np.errstate(invalid="ignore", divide="ignore"):
        mean_p = np.where(counts > 0, sum_p / counts, np.nan)
        obs = np.where(counts > 0, sum_y / counts, np.nan)

    keep = np.flatnonzero(counts.sum(axis=0) > 0)
    if keep.size < nb:
        logger.debug(f"Dropping {nb - keep.size} calibration bin(s) empty in every draw")

    rows = []
    for b in keep:
        present = counts[:, b] > 0
        lower, upper = np.percentile(obs[present, b], [2.5, 97.5])
        rows.append(
            {
                "bin": int(b) + 1,
                "bin_lower": float(edges[b]),
                "bin_upper": float(edges[b + 1]),
                "predicted_mid": float(np.median(mean_p[present, b])),
                "observed_median": float(np.median(obs[present, b])),
                "observed_lower": float(lower),
                "observed_upper": float(upper),
                "n_draws": int(present.sum()),
                "mean_count": float(counts[present, b].mean()),
            }
        )

    return pd.DataFrame(rows, columns=CURVE_COLUMNS)


def calibration_intercept_slope(y_true: np.ndarray, p: np.ndarray) -> Tuple[float, float]:
    """
    Compute calibration intercept and slope using logistic regression on logit scale.

    - Intercept ~0 indicates probabilities match observed proportions
    - Slope ~1 indicates predictions are neither too extreme nor too moderate

    Reference:
        Van Calster et al. (2016). Calibration of risk prediction models.
        Medical Decision Making.

    Args:
        y_true: True binary labels (0/1)
        p: Predicted probabilities

    Returns:
        (intercept, slope) tuple, NaN when only one class is present
    """
    y = np.asarray(y_true).astype(float)
    p = np.asarray(p).astype(float)

    mask = np.isfinite(p) & np.isfinite(y)
    y = y[mask].astype(int)
    p = p[mask]

    if len(np.unique(y)) < 2:
        return np.nan, np.nan

    eps = 1e-7
    p_clipped = np.clip(p, eps, 1 - eps)
    log_odds = np.log(p_clipped / (1 - p_clipped))

    lr = LogisticRegression(penalty=None, solver="lbfgs", max_iter=1000)
    lr.fit(log_odds.reshape(-1, 1), y)
    return float(lr.intercept_[0]), float(lr.coef_[0][0])


def expected_calibration_error(y_true: np.ndarray, y_pred: np.ndarray, n_bins: int = 10) -> float:
    """
    Compute Expected Calibration Error (ECE) over equal-width bins.

    Returns:
        ECE value (lower is better calibrated), NaN for empty input
    """
    y = np.asarray(y_true).astype(float)
    p = np.asarray(y_pred).astype(float)

    mask = np.isfinite(p) & np.isfinite(y)
    y = y[mask]
    p = p[mask]

    if len(y) == 0:
        return np.nan

    bins = np.clip((p * n_bins).astype(int), 0, n_bins - 1)
    counts = np.bincount(bins, minlength=n_bins)
    sum_p = np.bincount(bins, weights=p, minlength=n_bins)
    sum_y = np.bincount(bins, weights=y, minlength=n_bins)
    filled = counts > 0
    gaps = np.abs(sum_p[filled] - sum_y[filled]) / counts[filled]
    return float(np.sum(gaps * counts[filled]) / len(y))


def compute_brier_score(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Brier score (mean squared error of predicted probabilities).

    Examples:
        >>> round(compute_brier_score(np.array([0, 0, 1, 1]), np.array([0.1, 0.1, 0.9, 0.9])), 4)
        0.01
    """
    y_true = np.asarray(y_true).astype(int)
    y_pred = np.asarray(y_pred).astype(float)
    return float(brier_score_loss(y_true, y_pred))


def summarize_calibration(y_true: np.ndarray, p: np.ndarray) -> dict[str, float]:
    """Point calibration metrics for one probability vector."""
    intercept, slope = calibration_intercept_slope(y_true, p)
    return {
        "calibration_intercept": intercept,
        "calibration_slope": slope,
        "brier": compute_brier_score(y_true, p),
        "ece": expected_calibration_error(y_true, p),
    }
