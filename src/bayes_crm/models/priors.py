"""
Prior specification for the Bayesian logistic model.

Every coefficient gets a zero-centred Normal prior. Group-factor dummies use
the tighter group scale; the remaining coefficients use the default scale,
divided by the predictor's spread when autoscaling is on (sd, or range for
two-valued predictors). The intercept prior applies to the centred-predictor
intercept.
"""

from dataclasses import dataclass

import numpy as np

from bayes_crm.config.schema import PriorConfig
from bayes_crm.data.design import DesignMatrix


@dataclass(frozen=True)
class PriorEntry:
    location: float
    scale: float
    autoscale: bool = False

    def __post_init__(self):
        if not np.isfinite(self.scale) or self.scale <= 0:
            raise ValueError(f"Prior scale must be positive and finite, got {self.scale}")


@dataclass(frozen=True)
class PriorSpec:
    """One prior entry per design column plus the intercept prior.

    Attributes:
        intercept: Prior on the centred-predictor intercept
        coefficients: (column name, PriorEntry) pairs in design column order
    """

    intercept: PriorEntry
    coefficients: tuple[tuple[str, PriorEntry], ...]

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.coefficients)

    def entry(self, name: str) -> PriorEntry:
        for key, value in self.coefficients:
            if key == name:
                return value
        raise KeyError(name)

    def check_columns(self, columns: tuple[str, ...]) -> None:
        """Raise ValueError unless the spec covers exactly these columns, in order."""
        if self.names != tuple(columns):
            raise ValueError(
                f"Prior spec columns {list(self.names)} do not match design columns {list(columns)}"
            )

    def resolved(self, X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
        """
        Prior locations and effective scales for a design matrix.

        Autoscaled entries are divided by the column spread: the range for
        two-valued columns, the sample sd otherwise. Constant columns keep
        the unscaled value.

        Returns:
            (locations, scales), each of shape (n_coefficients,)
        """
        if X.shape[1] != len(self.coefficients):
            raise ValueError(
                f"X has {X.shape[1]} columns, prior spec has {len(self.coefficients)} entries"
            )
        locations = np.array([e.location for _, e in self.coefficients], dtype=float)
        scales = np.array([e.scale for _, e in self.coefficients], dtype=float)
        for j, (_, entry) in enumerate(self.coefficients):
            if not entry.autoscale:
                continue
            col = X[:, j]
            if np.unique(col).size == 2:
                spread = float(col.max() - col.min())
            else:
                spread = float(np.std(col, ddof=1)) if col.size > 1 else 0.0
            if spread > 0:
                scales[j] = entry.scale / spread
        return locations, scales


def build_prior_spec(design: DesignMatrix, config: PriorConfig) -> PriorSpec:
    """Structured prior for the full-data fit."""
    coefficients = []
    for name in design.columns:
        if name in design.group_columns:
            entry = PriorEntry(0.0, config.group_scale, autoscale=False)
        else:
            entry = PriorEntry(0.0, config.other_scale, autoscale=config.autoscale)
        coefficients.append((name, entry))
    return PriorSpec(
        intercept=PriorEntry(0.0, config.intercept_scale),
        coefficients=tuple(coefficients),
    )


def flat_prior_spec(design: DesignMatrix, scale: float, intercept_scale: float) -> PriorSpec:
    """Single-scale prior (no autoscaling, no group shrinkage) for leave-one-out refits."""
    return PriorSpec(
        intercept=PriorEntry(0.0, intercept_scale),
        coefficients=tuple((name, PriorEntry(0.0, scale)) for name in design.columns),
    )
