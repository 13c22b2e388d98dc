"""
Configuration schema for the bayes_crm pipeline.

Defines frozen Pydantic models for every externally settable parameter. A
resolved PipelineConfig is the single immutable run configuration passed to
each pipeline stage.
"""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _default_max_cores() -> int:
    return min(4, os.cpu_count() or 1)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# ============================================================================
# Dataset Schema
# ============================================================================


class FactorSpec(_Frozen):
    """Categorical predictor with a fixed level vocabulary (reference level first)."""

    name: str
    levels: tuple[str, ...] = Field(min_length=2)

    @model_validator(mode="after")
    def validate_levels(self):
        if len(set(self.levels)) != len(self.levels):
            raise ValueError(f"Factor '{self.name}' has duplicate levels: {list(self.levels)}")
        return self

    @property
    def reference(self) -> str:
        return self.levels[0]


class DatasetSchemaConfig(_Frozen):
    """Versioned predictor schema; validated against input tables, never inferred."""

    version: str = "1"
    outcome: str = "y"
    group_factor: FactorSpec = Field(
        default_factory=lambda: FactorSpec(
            name="grade", levels=("none", "mild", "moderate", "severe")
        )
    )
    binary_factors: tuple[FactorSpec, ...] = Field(
        default_factory=lambda: (
            FactorSpec(name="sex", levels=("female", "male")),
            FactorSpec(name="diabetes", levels=("no", "yes")),
        )
    )
    continuous: tuple[str, ...] = ("age", "bmi", "sbp", "crp")
    min_level_count: int = Field(default=5, ge=0)

    @model_validator(mode="after")
    def validate_schema(self):
        if len(self.group_factor.levels) != 4:
            raise ValueError(
                f"group_factor must have exactly 4 levels, got {list(self.group_factor.levels)}"
            )
        for factor in self.binary_factors:
            if len(factor.levels) != 2:
                raise ValueError(
                    f"Binary factor '{factor.name}' must have 2 levels, got {list(factor.levels)}"
                )
        names = [self.outcome, self.group_factor.name]
        names += [f.name for f in self.binary_factors] + list(self.continuous)
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate column names in schema: {duplicates}")
        return self

    @property
    def factors(self) -> tuple[FactorSpec, ...]:
        """All categorical predictors, group factor first."""
        return (self.group_factor,) + tuple(self.binary_factors)

    @property
    def required_columns(self) -> list[str]:
        return [self.outcome] + [f.name for f in self.factors] + list(self.continuous)


# ============================================================================
# Model Fitting Configuration
# ============================================================================


class PriorConfig(_Frozen):
    """Normal prior scales.

    group_scale applies to the group-factor dummies (stronger shrinkage),
    other_scale to every other coefficient (divided by the predictor's spread
    when autoscale is on), intercept_scale to the centred intercept.
    """

    group_scale: float = Field(default=1.0, gt=0.0)
    other_scale: float = Field(default=2.5, gt=0.0)
    intercept_scale: float = Field(default=5.0, gt=0.0)
    autoscale: bool = True


class SamplerConfig(_Frozen):
    """NUTS settings for the full-data fit."""

    chains: int = Field(default=4, ge=1)
    warmup: int = Field(default=1000, ge=1)
    draws: int = Field(default=1000, ge=1)
    target_accept: float = Field(default=0.99, gt=0.0, lt=1.0)
    qr: bool = True


class DiagnosticsConfig(_Frozen):
    """Rhat cut-offs for the convergence labels."""

    rhat_good: float = Field(default=1.01, ge=1.0)
    rhat_check: float = Field(default=1.05, ge=1.0)

    @model_validator(mode="after")
    def validate_order(self):
        if self.rhat_good > self.rhat_check:
            raise ValueError(
                f"rhat_good ({self.rhat_good}) must not exceed rhat_check ({self.rhat_check})"
            )
        return self


# ============================================================================
# Evaluation Configuration
# ============================================================================


class CalibrationConfig(_Frozen):
    """Posterior calibration curve settings."""

    n_bins: int = Field(default=15, ge=2)
    train_draws: int = Field(default=2000, ge=1)
    validation_draws: int = Field(default=500, ge=1)
    sd_floor: float = Field(default=1e-3, ge=0.0)


class CrossValidationConfig(_Frozen):
    """Leave-one-out refit settings (reduced cost, single flat prior scale)."""

    enabled: bool = True
    chains: int = Field(default=2, ge=1)
    warmup: int = Field(default=500, ge=1)
    draws: int = Field(default=500, ge=1)
    target_accept: float = Field(default=0.95, gt=0.0, lt=1.0)
    prior_scale: float = Field(default=2.5, gt=0.0)


class DCAConfig(_Frozen):
    """Bootstrap decision curve settings.

    target_prevalence is required when case_control is True: the analysis
    sample's case fraction is then reweighted to the population prevalence.
    """

    threshold_min: float = Field(default=0.05, gt=0.0, lt=1.0)
    threshold_max: float = Field(default=0.95, gt=0.0, lt=1.0)
    threshold_step: float = Field(default=0.01, gt=0.0)
    n_boot: int = Field(default=1000, ge=1)
    case_control: bool = True
    target_prevalence: float | None = Field(default=None, gt=0.0, lt=1.0)
    report_points: tuple[float, ...] = (0.10, 0.20, 0.30)

    @model_validator(mode="after")
    def validate_dca(self):
        if self.threshold_min >= self.threshold_max:
            raise ValueError(
                f"threshold_min ({self.threshold_min}) >= threshold_max ({self.threshold_max})"
            )
        if self.case_control and self.target_prevalence is None:
            raise ValueError(
                "dca.target_prevalence is required when dca.case_control is true "
                "(set the population prevalence or set case_control: false)"
            )
        return self


class GoodnessOfFitConfig(_Frozen):
    """Hosmer-Lemeshow grouping bounds."""

    min_groups: int = Field(default=5, ge=3)
    max_groups: int = Field(default=10, ge=3)
    events_per_group: int = Field(default=5, ge=1)

    @model_validator(mode="after")
    def validate_bounds(self):
        if self.min_groups > self.max_groups:
            raise ValueError(
                f"min_groups ({self.min_groups}) > max_groups ({self.max_groups})"
            )
        return self


# ============================================================================
# Runtime Configuration
# ============================================================================


class ComputeConfig(_Frozen):
    """Parallelism caps."""

    max_cores: int = Field(default_factory=_default_max_cores, ge=1)
    n_jobs: int = Field(default=-1, description="joblib workers for LOO refits (-1 = all)")


class StrictnessConfig(_Frozen):
    """How cross-field configuration issues are reported."""

    level: Literal["off", "warn", "error"] = "warn"


class PipelineConfig(_Frozen):
    """Complete run configuration."""

    seed: int = Field(default=20240101, ge=0)
    run_id: str | None = None
    outdir: Path = Field(default=Path("results"))

    dataset: DatasetSchemaConfig = Field(default_factory=DatasetSchemaConfig)
    priors: PriorConfig = Field(default_factory=PriorConfig)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    cross_validation: CrossValidationConfig = Field(default_factory=CrossValidationConfig)
    dca: DCAConfig
    goodness_of_fit: GoodnessOfFitConfig = Field(default_factory=GoodnessOfFitConfig)
    compute: ComputeConfig = Field(default_factory=ComputeConfig)
    strictness: StrictnessConfig = Field(default_factory=StrictnessConfig)
