"""
Decision Curve Analysis (DCA) for clinical utility assessment.

Net benefit at threshold probability t weighs true positives against false
positives at the odds t / (1 - t):

    NB(t) = pi * sensitivity - (1 - pi) * (1 - specificity) * t / (1 - t)

where pi is the population prevalence. For a cohort sample pi is the
observed prevalence and NB reduces to TP/n - FP/n * odds. For a
case-control sample the case fraction is set by design, so pi must be the
externally supplied target prevalence.

Uncertainty is estimated with a nonparametric bootstrap: every threshold
gets its own independent resamples (generators spawned from one seed), and
the median and 2.5/97.5 percentiles of the bootstrap NB are reported.

Reference:
    Vickers AJ, Elkin EB (2006). Decision curve analysis: a novel method
    for evaluating prediction models. Med Decis Making, 26(6):565-574.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from bayes_crm.utils.random import spawn_generators

logger = logging.getLogger(__name__)

DCA_COLUMNS = [
    "threshold",
    "net_benefit",
    "nb_lower",
    "nb_upper",
    "net_benefit_point",
    "net_benefit_all",
    "net_benefit_none",
    "sensitivity",
    "specificity",
    "n_treat",
]


# =============================================================================
# Core DCA Computations
# =============================================================================


def net_benefit(
    y_true: np.ndarray,
    y_pred_prob: np.ndarray,
    threshold: float,
    prevalence: Optional[float] = None,
) -> float:
    """
    Compute net benefit at a single threshold.

    Args:
        y_true: Binary labels (0/1)
        y_pred_prob: Predicted probabilities
        threshold: Classification threshold (0 < t < 1)
        prevalence: Population prevalence for case-control weighting
            (default: observed prevalence, i.e. TP/n - FP/n * odds)

    Returns:
        Net benefit value (can be negative), NaN for invalid threshold/input
    """
    y = np.asarray(y_true).astype(int)
    p = np.asarray(y_pred_prob).astype(float)
    t = float(threshold)

    if t <= 0.0 or t >= 1.0 or len(y) == 0:
        return np.nan

    treat = p >= t
    tp = int((treat & (y == 1)).sum())
    fp = int((treat & (y == 0)).sum())
    n = len(y)
    odds = t / (1.0 - t)

    if prevalence is None:
        return (tp / n) - (fp / n) * odds

    n1 = int((y == 1).sum())
    n0 = n - n1
    if n1 == 0 or n0 == 0:
        return np.nan
    return prevalence * tp / n1 - (1.0 - prevalence) * (fp / n0) * odds


def net_benefit_treat_all(
    prevalence: float,
    threshold: float,
) -> float:
    """
    Compute net benefit of "treat all" strategy.

    NB_all = prevalence - (1 - prevalence) * (threshold / (1 - threshold))

    Zero exactly when the threshold equals the prevalence.

    Examples:
        >>> abs(net_benefit_treat_all(0.3, 0.3)) < 1e-12
        True
    """
    if threshold <= 0.0 or threshold >= 1.0:
        return np.nan

    odds = threshold / (1.0 - threshold)
    return prevalence - (1.0 - prevalence) * odds


def _bootstrap_net_benefit(
    y: np.ndarray,
    p: np.ndarray,
    threshold: float,
    n_boot: int,
    rng: np.random.Generator,
    prevalence: Optional[float],
) -> np.ndarray:
    """Net benefit for n_boot resamples of (y, p) at one threshold, vectorised."""
    n = y.size
    idx = rng.integers(0, n, size=(n_boot, n))
    yb = y[idx]
    treat = p[idx] >= threshold
    tp = (treat & (yb == 1)).sum(axis=1)
    fp = (treat & (yb == 0)).sum(axis=1)
    odds = threshold / (1.0 - threshold)

    if prevalence is None:
        return tp / n - fp / n * odds

    n1 = yb.sum(axis=1)
    n0 = n - n1
    with np.errstate(invalid="ignore", divide="ignore"):
        sens = np.where(n1 > 0, tp / np.maximum(n1, 1), np.nan)
        fpr = np.where(n0 > 0, fp / np.maximum(n0, 1), np.nan)
    return prevalence * sens - (1.0 - prevalence) * fpr * odds


def decision_curve_analysis(
    y_true: np.ndarray,
    y_pred_prob: np.ndarray,
    thresholds: Optional[np.ndarray] = None,
    n_boot: int = 1000,
    seed: Optional[int] = None,
    case_control: bool = False,
    target_prevalence: Optional[float] = None,
) -> pd.DataFrame:
    """
    Bootstrap decision curve over a threshold grid.

    Args:
        y_true: True binary labels (0/1)
        y_pred_prob: Predicted probabilities (cross-validated)
        thresholds: Threshold grid (default: 0.05 to 0.95 by 0.01)
        n_boot: Bootstrap resamples per threshold
        seed: Seed from which one generator per threshold is spawned
        case_control: Reweight to target_prevalence instead of the observed one
        target_prevalence: Population prevalence (required when case_control)

    Returns:
        DataFrame with columns DCA_COLUMNS, one row per threshold in (0, 1)

    Raises:
        ValueError: If case_control is set without a target prevalence
    """
    y = np.asarray(y_true).astype(int)
    p = np.asarray(y_pred_prob).astype(float)
    n = len(y)

    if n == 0:
        return pd.DataFrame(columns=DCA_COLUMNS)
    if p.shape != y.shape:
        raise ValueError(f"y_pred_prob shape {p.shape} does not match y_true shape {y.shape}")
    if case_control and target_prevalence is None:
        raise ValueError("target_prevalence is required for case-control decision curves")

    if thresholds is None:
        thresholds = generate_dca_thresholds()
    thresholds = np.asarray([t for t in thresholds if 0.0 < t < 1.0], dtype=float)

    weight_prev = float(target_prevalence) if case_control else None
    prevalence = weight_prev if case_control else float(np.mean(y))
    logger.info(
        f"DCA: {len(thresholds)} thresholds, {n_boot} bootstrap resamples each, "
        f"prevalence {prevalence:.4f} ({'target' if case_control else 'observed'})"
    )

    generators = spawn_generators(seed if seed is not None else 0, len(thresholds))
    n1 = int((y == 1).sum())
    n0 = n - n1

    rows = []
    for t, rng in zip(thresholds, generators):
        boot = _bootstrap_net_benefit(y, p, t, n_boot, rng, weight_prev)
        if np.isfinite(boot).any():
            med = float(np.nanmedian(boot))
            lower, upper = np.nanpercentile(boot, [2.5, 97.5])
        else:
            med, lower, upper = np.nan, np.nan, np.nan

        treat = p >= t
        tp = int((treat & (y == 1)).sum())
        fp = int((treat & (y == 0)).sum())
        rows.append(
            {
                "threshold": float(t),
                "net_benefit": med,
                "nb_lower": float(lower),
                "nb_upper": float(upper),
                "net_benefit_point": net_benefit(y, p, t, prevalence=weight_prev),
                "net_benefit_all": net_benefit_treat_all(prevalence, t),
                "net_benefit_none": 0.0,
                "sensitivity": tp / n1 if n1 > 0 else np.nan,
                "specificity": (n0 - fp) / n0 if n0 > 0 else np.nan,
                "n_treat": tp + fp,
            }
        )

    return pd.DataFrame(rows, columns=DCA_COLUMNS)


# =============================================================================
# DCA Summary and Reporting
# =============================================================================


def compute_dca_summary(
    dca_df: pd.DataFrame,
    report_points: Optional[List[float]] = None,
) -> Dict[str, Any]:
    """
    Compute summary statistics from DCA results.

    Identifies key clinical utility metrics:
    - Range where model beats treat-all/treat-none
    - Integrated net benefit (area under curve)
    - Net benefit at key clinical thresholds

    Args:
        dca_df: DataFrame from decision_curve_analysis()
        report_points: Key thresholds for reporting (default: [0.1, 0.2, 0.3])

    Returns:
        Dictionary with DCA summary metrics
    """
    if dca_df.empty:
        return {"dca_computed": False}

    summary = {
        "dca_computed": True,
        "n_thresholds": len(dca_df),
        "threshold_range": f"{dca_df['threshold'].min():.3f}-{dca_df['threshold'].max():.3f}",
    }

    model_beats_all = dca_df[dca_df["net_benefit"] > dca_df["net_benefit_all"]]
    if len(model_beats_all) > 0:
        summary["model_beats_all_from"] = float(model_beats_all["threshold"].min())
        summary["model_beats_all_to"] = float(model_beats_all["threshold"].max())
        summary["model_beats_all_range"] = (
            f"{summary['model_beats_all_from']:.3f}-{summary['model_beats_all_to']:.3f}"
        )
    else:
        summary["model_beats_all_from"] = np.nan
        summary["model_beats_all_to"] = np.nan
        summary["model_beats_all_range"] = "Never"

    model_beats_none = dca_df[dca_df["net_benefit"] > 0]
    if len(model_beats_none) > 0:
        summary["model_beats_none_from"] = float(model_beats_none["threshold"].min())
        summary["model_beats_none_to"] = float(model_beats_none["threshold"].max())
    else:
        summary["model_beats_none_from"] = np.nan
        summary["model_beats_none_to"] = np.nan

    thresholds = dca_df["threshold"].values
    nb_model = dca_df["net_benefit"].values
    nb_all = dca_df["net_benefit_all"].values

    if len(thresholds) > 1:
        summary["integrated_nb_model"] = float(np.trapezoid(nb_model, thresholds))
        summary["integrated_nb_all"] = float(np.trapezoid(nb_all, thresholds))
        summary["integrated_nb_improvement"] = float(
            np.trapezoid(nb_model - nb_all, thresholds)
        )

    report_points = report_points or [0.10, 0.20, 0.30]
    for key_t in report_points:
        row = dca_df[np.isclose(dca_df["threshold"], key_t, atol=1e-6)]
        if len(row) > 0:
            r = row.iloc[0]
            key_str = f"{key_t:.0%}"[:-1]
            summary[f"nb_model_at_{key_str}pct"] = float(r["net_benefit"])
            summary[f"nb_lower_at_{key_str}pct"] = float(r["nb_lower"])
            summary[f"nb_upper_at_{key_str}pct"] = float(r["nb_upper"])
            summary[f"nb_all_at_{key_str}pct"] = float(r["net_benefit_all"])

    return summary


# =============================================================================
# Threshold Grids
# =============================================================================


def generate_dca_thresholds(
    min_thr: float = 0.05,
    max_thr: float = 0.95,
    step: float = 0.01,
) -> np.ndarray:
    """
    Generate the threshold grid for DCA.

    A small tolerance on the point count absorbs float error, so grids like
    0.05..0.95 by 0.01 include both endpoints (91 points).

    Args:
        min_thr: Minimum threshold (clamped to 0.0001)
        max_thr: Maximum threshold (clamped to 0.999)
        step: Step size between thresholds (minimum 0.0001)

    Returns:
        Array of threshold values, rounded to 10 decimals
    """
    min_thr = max(1e-4, float(min_thr))
    max_thr = min(0.999, float(max_thr))
    step = max(1e-4, float(step))

    if min_thr >= max_thr:
        return np.array([min_thr, max_thr])

    n = int(np.floor((max_thr - min_thr) / step + 1e-9)) + 1
    return np.round(min_thr + step * np.arange(n), 10)
