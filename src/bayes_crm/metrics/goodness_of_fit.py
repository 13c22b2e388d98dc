"""
Hosmer-Lemeshow goodness-of-fit test.

Subjects are sorted by predicted probability and split into g near-equal
groups, with g = floor(events / events_per_group) clamped to
[min_groups, max_groups]. The statistic

    H = sum_k (O_k - E_k)^2 / (E_k (1 - E_k / n_k))

is compared to a chi-square distribution with g - 2 degrees of freedom.

Reference:
    Hosmer DW, Lemeshow S (1980). Goodness of fit tests for the multiple
    logistic regression model. Communications in Statistics, 9(10):1043-1069.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from scipy.stats import chi2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HLTestResult:
    n_groups: int
    statistic: float
    p_value: float
    dof: int
    groups: pd.DataFrame = field(repr=False, compare=False)

    def to_dict(self) -> dict:
        return {
            "n_groups": self.n_groups,
            "statistic": self.statistic,
            "p_value": self.p_value,
            "dof": self.dof,
        }


def choose_n_groups(
    n_events: int,
    min_groups: int = 5,
    max_groups: int = 10,
    events_per_group: int = 5,
) -> int:
    """
    Number of HL groups for a given event count.

    Examples:
        >>> choose_n_groups(60)
        10
        >>> choose_n_groups(12)
        5
        >>> choose_n_groups(35)
        7
    """
    return int(min(max(n_events // events_per_group, min_groups), max_groups))


def hosmer_lemeshow_test(
    y_true: np.ndarray,
    y_pred_prob: np.ndarray,
    min_groups: int = 5,
    max_groups: int = 10,
    events_per_group: int = 5,
) -> HLTestResult:
    """
    Hosmer-Lemeshow test on one probability vector.

    Args:
        y_true: Observed 0/1 outcomes
        y_pred_prob: Predicted probabilities (e.g. posterior medians)
        min_groups: Lower bound on the number of groups
        max_groups: Upper bound on the number of groups
        events_per_group: Target number of events per group

    Returns:
        HLTestResult with the per-group table (group, n, observed, expected,
        mean_predicted, p_min, p_max)

    Raises:
        ValueError: If inputs differ in length or there are fewer subjects
            than groups
    """
    y = np.asarray(y_true).astype(float)
    p = np.asarray(y_pred_prob).astype(float)
    if y.shape != p.shape:
        raise ValueError(f"y_true shape {y.shape} does not match y_pred_prob shape {p.shape}")

    g = choose_n_groups(int(y.sum()), min_groups, max_groups, events_per_group)
    if y.size < g:
        raise ValueError(f"Need at least {g} subjects for {g} Hosmer-Lemeshow groups, got {y.size}")

    order = np.argsort(p, kind="mergesort")
    rows = []
    statistic = 0.0
    for k, idx in enumerate(np.array_split(order, g), start=1):
        n_k = idx.size
        observed = float(y[idx].sum())
        expected = float(p[idx].sum())
        denom = expected * (1.0 - expected / n_k)
        if denom > 0:
            statistic += (observed - expected) ** 2 / denom
        rows.append(
            {
                "group": k,
                "n": n_k,
                "observed": observed,
                "expected": expected,
                "mean_predicted": expected / n_k,
                "p_min": float(p[idx].min()),
                "p_max": float(p[idx].max()),
            }
        )

    dof = g - 2
    p_value = float(chi2.sf(statistic, dof))
    logger.info(f"Hosmer-Lemeshow: groups={g}, statistic={statistic:.3f}, p={p_value:.4f}")

    return HLTestResult(
        n_groups=g,
        statistic=float(statistic),
        p_value=p_value,
        dof=dof,
        groups=pd.DataFrame(rows),
    )
