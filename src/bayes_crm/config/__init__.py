"""Configuration management for bayes_crm."""

from bayes_crm.config.loader import (
    apply_overrides,
    format_config_summary,
    load_pipeline_config,
    load_yaml,
    save_config,
)
from bayes_crm.config.schema import (
    CalibrationConfig,
    ComputeConfig,
    CrossValidationConfig,
    DatasetSchemaConfig,
    DCAConfig,
    DiagnosticsConfig,
    FactorSpec,
    GoodnessOfFitConfig,
    PipelineConfig,
    PriorConfig,
    SamplerConfig,
    StrictnessConfig,
)
from bayes_crm.config.validation import (
    ConfigValidationError,
    ConfigValidationWarning,
    validate_config,
    validate_pipeline_config,
)

__all__ = [
    "load_pipeline_config",
    "load_yaml",
    "apply_overrides",
    "save_config",
    "format_config_summary",
    "PipelineConfig",
    "DatasetSchemaConfig",
    "FactorSpec",
    "PriorConfig",
    "SamplerConfig",
    "DiagnosticsConfig",
    "CalibrationConfig",
    "CrossValidationConfig",
    "DCAConfig",
    "GoodnessOfFitConfig",
    "ComputeConfig",
    "StrictnessConfig",
    "ConfigValidationError",
    "ConfigValidationWarning",
    "validate_pipeline_config",
    "validate_config",
]
