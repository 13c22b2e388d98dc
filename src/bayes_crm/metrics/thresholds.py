"""Threshold selection and classification metrics at a cutoff.

The operating threshold is the Youden-optimal cutoff on the ROC curve
(maximising sensitivity + specificity - 1). At that cutoff the confusion
matrix and accuracy, precision, recall, specificity, F1 and Cohen's kappa
are reported.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict

import numpy as np
from sklearn.metrics import (
    accuracy_score,
    cohen_kappa_score,
    confusion_matrix,
    f1_score,
    precision_score,
    recall_score,
    roc_curve,
)


@dataclass(frozen=True)
class ClassificationReport:
    """Classification metrics at one threshold."""

    threshold: float
    tp: int
    fp: int
    tn: int
    fn: int
    accuracy: float
    precision: float
    recall: float
    specificity: float
    f1: float
    kappa: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def threshold_youden(y_true: np.ndarray, p: np.ndarray) -> float:
    """Find threshold that maximizes Youden's J statistic (TPR - FPR).

    Args:
        y_true: True binary labels (0/1)
        p: Predicted probabilities [0, 1]

    Returns:
        Optimal threshold (float in [0, 1])

    Notes:
        - Youden's J = sensitivity + specificity - 1 = TPR - FPR
        - Falls back to 0.5 if no valid threshold found
    """
    y_true = np.asarray(y_true).astype(int)
    p = np.asarray(p).astype(float)

    if len(y_true) == 0 or len(p) == 0 or len(np.unique(y_true)) < 2:
        return 0.5

    fpr, tpr, thr = roc_curve(y_true, p)
    J = tpr - fpr
    if thr.size == 0:
        return 0.5
    i = int(np.nanargmax(J))
    th = float(thr[i])
    if not np.isfinite(th):
        th = 0.5
    return min(th, 1.0)


def binary_metrics_at_threshold(y_true: np.ndarray, p: np.ndarray, thr: float) -> Dict[str, Any]:
    """Compute classification metrics at a specific threshold.

    Args:
        y_true: True binary labels (0/1)
        p: Predicted probabilities [0, 1]
        thr: Classification threshold (predictions >= thr -> positive)

    Returns:
        Dictionary with threshold, tp/fp/tn/fn, accuracy, precision, recall
        (sensitivity), specificity, f1 and kappa

    Notes:
        - Uses zero_division=0 for precision/recall when no positive predictions
        - Specificity = np.nan if no negative samples
        - Kappa is 0 when predictions or labels are constant
    """
    y_true = np.asarray(y_true).astype(int)
    p = np.asarray(p).astype(float)
    y_hat = (p >= thr).astype(int)
    tn, fp, fn, tp = confusion_matrix(y_true, y_hat, labels=[0, 1]).ravel()
    prec = precision_score(y_true, y_hat, zero_division=0)
    rec = recall_score(y_true, y_hat, zero_division=0)
    f1 = f1_score(y_true, y_hat, zero_division=0)
    spec = (tn / (tn + fp)) if (tn + fp) > 0 else np.nan
    if len(np.unique(y_true)) < 2 and len(np.unique(y_hat)) < 2:
        kappa = 0.0
    else:
        kappa = cohen_kappa_score(y_true, y_hat, labels=[0, 1])
    return {
        "threshold": float(thr),
        "tp": int(tp),
        "fp": int(fp),
        "tn": int(tn),
        "fn": int(fn),
        "accuracy": float(accuracy_score(y_true, y_hat)),
        "precision": float(prec),
        "recall": float(rec),
        "specificity": float(spec),
        "f1": float(f1),
        "kappa": float(kappa) if np.isfinite(kappa) else 0.0,
    }


def classification_report_at_youden(y_true: np.ndarray, p: np.ndarray) -> ClassificationReport:
    """Youden-optimal threshold and the metrics at that cutoff."""
    thr = threshold_youden(y_true, p)
    return ClassificationReport(**binary_metrics_at_threshold(y_true, p, thr))
