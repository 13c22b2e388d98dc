"""
Design matrix construction.

Dummy-codes the categorical factors (reference level dropped) and appends
the continuous predictors. A validation matrix reuses the training layout
and the training fill values so the two are column-compatible.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd

from bayes_crm.config.schema import DatasetSchemaConfig
from bayes_crm.exceptions import SchemaError, warn_data_quality

logger = logging.getLogger(__name__)


def dummy_name(factor: str, level: str) -> str:
    """Column name of a dummy indicator, e.g. ``grade[mild]``."""
    return f"{factor}[{level}]"


@dataclass(frozen=True)
class DesignMatrix:
    """Immutable model matrix.

    Attributes:
        X: (n_subjects, n_coefficients) float array, read-only, no intercept
        y: (n_subjects,) int array of 0/1 outcomes, read-only
        columns: Coefficient names in column order
        group_columns: Names of the group-factor dummy columns
        fill_values: Continuous column -> value used to fill missing entries
    """

    X: np.ndarray
    y: np.ndarray
    columns: tuple[str, ...]
    group_columns: tuple[str, ...]
    fill_values: dict[str, float]

    def __post_init__(self):
        if self.X.ndim != 2 or self.X.shape[1] != len(self.columns):
            raise ValueError(
                f"X has shape {self.X.shape} but {len(self.columns)} column names were given"
            )
        if self.y.shape != (self.X.shape[0],):
            raise ValueError(f"y has shape {self.y.shape}, expected ({self.X.shape[0]},)")
        self.X.setflags(write=False)
        self.y.setflags(write=False)

    @property
    def n_subjects(self) -> int:
        return self.X.shape[0]

    @property
    def n_coefficients(self) -> int:
        return self.X.shape[1]

    def drop_subject(self, index: int) -> "DesignMatrix":
        """Same layout with one subject removed."""
        keep = np.ones(self.n_subjects, dtype=bool)
        keep[index] = False
        return DesignMatrix(
            X=self.X[keep].copy(),
            y=self.y[keep].copy(),
            columns=self.columns,
            group_columns=self.group_columns,
            fill_values=self.fill_values,
        )

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.X, columns=list(self.columns))
        df.insert(0, "y", self.y)
        return df


def build_design_matrix(
    dataset: pd.DataFrame,
    schema: DatasetSchemaConfig,
    reference: DesignMatrix | None = None,
) -> DesignMatrix:
    """
    Build the model matrix for a validated dataset.

    Args:
        dataset: Output of validate_dataset (categoricals with fixed levels)
        schema: Dataset schema configuration
        reference: Training design matrix. When given, its column layout and
            continuous fill values are reused (validation / external data).

    Returns:
        DesignMatrix

    Raises:
        SchemaError: If the dataset is missing schema columns
    """
    missing = [c for c in schema.required_columns if c not in dataset.columns]
    if missing:
        raise SchemaError("Cannot build design matrix", [f"Missing columns: {missing}"])

    blocks: list[np.ndarray] = []
    columns: list[str] = []
    group_columns: list[str] = []

    for factor in schema.factors:
        values = pd.Categorical(dataset[factor.name], categories=list(factor.levels))
        codes = np.asarray(values.codes)
        if (codes < 0).any():
            raise SchemaError(
                "Cannot build design matrix",
                [f"Factor '{factor.name}' has values outside {list(factor.levels)}"],
            )
        for k, level in enumerate(factor.levels[1:], start=1):
            blocks.append((codes == k).astype(float))
            name = dummy_name(factor.name, level)
            columns.append(name)
            if factor.name == schema.group_factor.name:
                group_columns.append(name)

    if reference is None:
        fill_values = {
            col: float(np.nanmedian(dataset[col].to_numpy(dtype=float)))
            if dataset[col].notna().any()
            else 0.0
            for col in schema.continuous
        }
    else:
        fill_values = dict(reference.fill_values)

    for col in schema.continuous:
        values = dataset[col].to_numpy(dtype=float)
        n_na = int(np.isnan(values).sum())
        if n_na:
            logger.debug(f"Filling {n_na} missing value(s) in '{col}' with {fill_values[col]:.4g}")
            values = np.where(np.isnan(values), fill_values[col], values)
        blocks.append(values)
        columns.append(col)

    X = np.column_stack(blocks) if blocks else np.empty((len(dataset), 0))
    y = dataset[schema.outcome].to_numpy(dtype=int)

    if reference is not None and tuple(columns) != reference.columns:
        raise SchemaError(
            "Design matrix layout differs from the training layout",
            [f"expected {list(reference.columns)}, got {columns}"],
        )

    empty = [c for c, col in zip(columns, X.T) if np.all(col == col[0])] if len(X) else []
    if empty and reference is None:
        warn_data_quality(f"Constant design column(s) in training data: {empty}")

    return DesignMatrix(
        X=np.ascontiguousarray(X, dtype=float),
        y=np.ascontiguousarray(y),
        columns=tuple(columns),
        group_columns=tuple(group_columns),
        fill_values=fill_values,
    )
