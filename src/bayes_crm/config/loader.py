"""
Configuration loading and merging logic.

Supports:
1. Loading from YAML files (with ``_base`` inheritance)
2. CLI argument overrides (dot-notation: e.g., sampler.chains=2)
3. Validation into a frozen PipelineConfig
"""

import copy
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from bayes_crm.config.defaults import (
    DEFAULT_CALIBRATION_CONFIG,
    DEFAULT_CROSS_VALIDATION_CONFIG,
    DEFAULT_DATASET_CONFIG,
    DEFAULT_DCA_CONFIG,
    DEFAULT_DIAGNOSTICS_CONFIG,
    DEFAULT_GOODNESS_OF_FIT_CONFIG,
    DEFAULT_PRIOR_CONFIG,
    DEFAULT_SAMPLER_CONFIG,
    DEFAULT_SEED,
    DEFAULT_STRICTNESS_CONFIG,
)
from bayes_crm.config.schema import PipelineConfig


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge *overlay* into *base* (overlay wins on leaf conflicts).

    Returns a new dict; neither input is mutated.
    """
    merged = base.copy()
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_yaml(file_path: str | Path) -> dict[str, Any]:
    """Load configuration from YAML file.

    Supports a ``_base`` key: if present, the referenced YAML file is loaded
    first and the current file's values are deep-merged on top. The ``_base``
    path is resolved relative to the directory containing *file_path*.
    """
    file_path = Path(file_path).resolve()
    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    with open(file_path) as f:
        config_dict = yaml.safe_load(f) or {}

    base_ref = config_dict.pop("_base", None)
    if base_ref is not None:
        base_path = (file_path.parent / base_ref).resolve()
        base_dict = load_yaml(base_path)
        config_dict = _deep_merge(base_dict, config_dict)

    return config_dict


def apply_overrides(config_dict: dict[str, Any], overrides: list[str]) -> dict[str, Any]:
    """
    Apply CLI overrides to config dictionary.

    Supports dot-notation for nested keys:
        sampler.chains=2 -> config_dict['sampler']['chains'] = 2
        dca.target_prevalence=0.05 -> config_dict['dca']['target_prevalence'] = 0.05

    Args:
        config_dict: Base configuration dictionary
        overrides: List of "key=value" or "nested.key=value" strings

    Returns:
        Updated config dictionary
    """
    # Keys that should always be lists
    LIST_KEYS = {"continuous", "levels", "report_points"}

    # Keys that should always be strings (not parsed as int/float)
    STRING_KEYS = {"run_id", "version"}

    for override in overrides:
        if "=" not in override:
            raise ValueError(f"Invalid override format: {override}. Expected 'key=value'")

        key_path, value_str = override.split("=", 1)
        keys = key_path.split(".")

        target = config_dict
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]

        final_key = keys[-1]
        target[final_key] = _parse_value(
            value_str,
            force_list=final_key in LIST_KEYS,
            force_string=final_key in STRING_KEYS,
        )

    return config_dict


def _parse_value(value_str: str, force_list: bool = False, force_string: bool = False) -> Any:
    """
    Parse string value to appropriate Python type.

    Args:
        value_str: String to parse
        force_list: If True, always return a list (for comma-separated or single values)
        force_string: If True, always return a string (skip int/float parsing)
    """
    if force_string:
        return value_str

    if value_str.lower() in ("true", "yes"):
        return [True] if force_list else True
    if value_str.lower() in ("false", "no"):
        return [False] if force_list else False

    if value_str.lower() in ("none", "null"):
        return [None] if force_list else None

    if "," in value_str or force_list:
        return [_parse_scalar(v.strip()) for v in value_str.split(",") if v.strip()]

    return _parse_scalar(value_str)


def _parse_scalar(value_str: str) -> Any:
    try:
        return int(value_str)
    except ValueError:
        pass
    try:
        return float(value_str)
    except ValueError:
        pass
    return value_str


def default_config_dict() -> dict[str, Any]:
    """Fresh copy of the default configuration as a nested dict."""
    return copy.deepcopy(
        {
            "seed": DEFAULT_SEED,
            "dataset": DEFAULT_DATASET_CONFIG,
            "priors": DEFAULT_PRIOR_CONFIG,
            "sampler": DEFAULT_SAMPLER_CONFIG,
            "diagnostics": DEFAULT_DIAGNOSTICS_CONFIG,
            "calibration": DEFAULT_CALIBRATION_CONFIG,
            "cross_validation": DEFAULT_CROSS_VALIDATION_CONFIG,
            "dca": DEFAULT_DCA_CONFIG,
            "goodness_of_fit": DEFAULT_GOODNESS_OF_FIT_CONFIG,
            "strictness": DEFAULT_STRICTNESS_CONFIG,
        }
    )


def load_pipeline_config(
    config_file: str | Path | None = None,
    overrides: list[str] | None = None,
) -> PipelineConfig:
    """
    Load pipeline configuration from defaults, a YAML file and CLI overrides.

    Args:
        config_file: Path to YAML config file (optional)
        overrides: List of CLI overrides in "key=value" format (optional)

    Returns:
        Validated, frozen PipelineConfig instance

    Raises:
        ValueError: If the merged configuration is invalid
    """
    config_dict = default_config_dict()

    if config_file is not None:
        config_dict = _deep_merge(config_dict, load_yaml(config_file))

    if overrides:
        config_dict = apply_overrides(config_dict, overrides)

    try:
        return PipelineConfig(**config_dict)
    except ValidationError as e:
        raise ValueError(f"Invalid pipeline configuration:\n{e}") from e


def save_config(config: PipelineConfig, output_path: str | Path):
    """Save resolved configuration to YAML file."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = config.model_dump(mode="json")

    with open(output_path, "w") as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, sort_keys=False)


def format_config_summary(config: PipelineConfig) -> str:
    """Human-readable configuration summary."""
    lines = ["=" * 80, "Configuration Summary", "=" * 80]

    def format_dict(d, indent=0):
        result = []
        for key, value in d.items():
            if isinstance(value, dict):
                result.append(f"{'  ' * indent}{key}:")
                result.extend(format_dict(value, indent + 1))
            else:
                result.append(f"{'  ' * indent}{key}: {value}")
        return result

    lines.extend(format_dict(config.model_dump(mode="json")))
    lines.append("=" * 80)
    return "\n".join(lines)
