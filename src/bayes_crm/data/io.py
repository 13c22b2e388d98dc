"""
Data I/O and schema validation for the risk-model pipeline.

Input tables are read from CSV and checked against the configured, versioned
dataset schema. Validation never infers the schema: unknown columns are
ignored, missing columns and unknown categorical levels are errors.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from bayes_crm.config.schema import DatasetSchemaConfig
from bayes_crm.exceptions import SchemaError, warn_data_quality

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Outcome of validating one input table.

    Attributes:
        dataset: Typed DataFrame (schema columns only, categoricals with fixed
            level order) or None when errors were found
        errors: Fatal schema problems
        warnings: Non-fatal data-quality notes (already issued as warnings)
    """

    dataset: pd.DataFrame | None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self, label: str = "dataset") -> pd.DataFrame:
        """Return the validated dataset or raise SchemaError listing every problem."""
        if self.errors:
            raise SchemaError(f"Schema validation failed for {label}", self.errors)
        return self.dataset


def read_dataset_csv(filepath: str | Path) -> pd.DataFrame:
    """
    Read an input table from CSV.

    Args:
        filepath: Path to CSV file

    Returns:
        Raw DataFrame (no type coercion)

    Raises:
        FileNotFoundError: If filepath does not exist
    """
    filepath = Path(filepath)
    if not filepath.exists():
        raise FileNotFoundError(f"File not found: {filepath}")

    logger.info(f"Reading CSV: {filepath}")
    df = pd.read_csv(filepath)
    logger.info(f"Loaded {len(df):,} rows × {len(df.columns):,} columns")
    return df


def validate_dataset(
    df: pd.DataFrame,
    schema: DatasetSchemaConfig,
    label: str = "dataset",
) -> ValidationResult:
    """
    Validate an input table against the dataset schema.

    Checks:
    - every schema column is present
    - outcome has no missing values and only 0/1
    - categorical values belong to the configured vocabulary (coerced to
      ordered categoricals, reference level first)
    - continuous columns are numeric

    Missing continuous values and sparsely populated categorical levels are
    reported as DataQualityWarning; continuous gaps are filled later with the
    training medians when the design matrix is built.

    Args:
        df: Raw input table
        schema: Dataset schema configuration
        label: Name used in messages (e.g. "training", "validation")

    Returns:
        ValidationResult with the typed dataset (or None) and issue lists
    """
    errors: list[str] = []
    notes: list[str] = []

    missing = [c for c in schema.required_columns if c not in df.columns]
    if missing:
        errors.append(f"Required columns missing: {missing}. Available: {list(df.columns)}")
        return ValidationResult(dataset=None, errors=errors)

    if len(df) == 0:
        errors.append("Table has no rows")
        return ValidationResult(dataset=None, errors=errors)

    out = df[schema.required_columns].copy()

    # Outcome
    y = pd.to_numeric(out[schema.outcome], errors="coerce")
    n_missing_y = int(out[schema.outcome].isna().sum())
    n_bad_y = int((y.isna() & out[schema.outcome].notna()).sum())
    if n_missing_y:
        errors.append(f"Outcome '{schema.outcome}' has {n_missing_y} missing value(s)")
    if n_bad_y:
        errors.append(f"Outcome '{schema.outcome}' has {n_bad_y} non-numeric value(s)")
    observed = set(np.unique(y.dropna().to_numpy()))
    if not observed <= {0, 1}:
        errors.append(
            f"Outcome '{schema.outcome}' must be binary 0/1, found values {sorted(observed)}"
        )
    if not errors:
        out[schema.outcome] = y.astype(int)

    # Categorical factors
    for factor in schema.factors:
        raw = out[factor.name]
        n_na = int(raw.isna().sum())
        if n_na:
            errors.append(f"Factor '{factor.name}' has {n_na} missing value(s)")
        values = raw.dropna().astype(str).str.strip()
        unknown = sorted(set(values) - set(factor.levels))
        if unknown:
            errors.append(
                f"Factor '{factor.name}' has unknown level(s) {unknown}; "
                f"allowed: {list(factor.levels)}"
            )
            continue
        out[factor.name] = pd.Categorical(
            raw.where(raw.isna(), raw.astype(str).str.strip()),
            categories=list(factor.levels),
        )
        counts = out[factor.name].value_counts()
        for level in factor.levels:
            if counts.get(level, 0) < schema.min_level_count:
                notes.append(
                    f"{label}: level '{level}' of factor '{factor.name}' has "
                    f"{int(counts.get(level, 0))} subject(s) (< {schema.min_level_count})"
                )

    # Continuous predictors
    for col in schema.continuous:
        coerced = pd.to_numeric(out[col], errors="coerce")
        n_bad = int((coerced.isna() & out[col].notna()).sum())
        if n_bad:
            errors.append(f"Continuous column '{col}' has {n_bad} non-numeric value(s)")
            continue
        out[col] = coerced.astype(float)
        n_na = int(coerced.isna().sum())
        if n_na:
            notes.append(
                f"{label}: continuous column '{col}' has {n_na} missing value(s); "
                "filled with the training median"
            )

    if errors:
        return ValidationResult(dataset=None, errors=errors, warnings=notes)

    for note in notes:
        warn_data_quality(note)

    logger.info(
        f"Validated {label}: {len(out):,} subjects, "
        f"{int(out[schema.outcome].sum()):,} events (prevalence {out[schema.outcome].mean():.3f})"
    )
    return ValidationResult(dataset=out.reset_index(drop=True), warnings=notes)


def load_dataset(
    filepath: str | Path,
    schema: DatasetSchemaConfig,
    label: str = "dataset",
) -> pd.DataFrame:
    """Read and validate a table; raises SchemaError on any schema violation."""
    return validate_dataset(read_dataset_csv(filepath), schema, label=label).raise_for_errors(
        label
    )


def get_data_stats(df: pd.DataFrame, schema: DatasetSchemaConfig) -> dict[str, Any]:
    """
    Summary statistics for a validated dataset.

    Returns:
        Dictionary with subject count, events, prevalence and level counts
    """
    y = df[schema.outcome]
    return {
        "n_subjects": int(len(df)),
        "n_events": int(y.sum()),
        "prevalence": float(y.mean()),
        "level_counts": {
            f.name: {str(k): int(v) for k, v in df[f.name].value_counts(sort=False).items()}
            for f in schema.factors
        },
        "n_missing_continuous": {c: int(df[c].isna().sum()) for c in schema.continuous},
    }
