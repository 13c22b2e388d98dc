"""
Default configuration values.

Single source of truth for the defaults the loader starts from before a YAML
file and CLI overrides are merged on top. The DCA target prevalence has no
default: it must be supplied explicitly for case-control samples.
"""

from typing import Any

DEFAULT_SEED = 20240101

DEFAULT_DATASET_CONFIG: dict[str, Any] = {
    "version": "1",
    "outcome": "y",
    "group_factor": {"name": "grade", "levels": ["none", "mild", "moderate", "severe"]},
    "binary_factors": [
        {"name": "sex", "levels": ["female", "male"]},
        {"name": "diabetes", "levels": ["no", "yes"]},
    ],
    "continuous": ["age", "bmi", "sbp", "crp"],
    "min_level_count": 5,
}

DEFAULT_PRIOR_CONFIG: dict[str, Any] = {
    "group_scale": 1.0,
    "other_scale": 2.5,
    "intercept_scale": 5.0,
    "autoscale": True,
}

DEFAULT_SAMPLER_CONFIG: dict[str, Any] = {
    "chains": 4,
    "warmup": 1000,
    "draws": 1000,
    "target_accept": 0.99,
    "qr": True,
}

DEFAULT_DIAGNOSTICS_CONFIG: dict[str, Any] = {
    "rhat_good": 1.01,
    "rhat_check": 1.05,
}

DEFAULT_CALIBRATION_CONFIG: dict[str, Any] = {
    "n_bins": 15,
    "train_draws": 2000,
    "validation_draws": 500,
    "sd_floor": 1e-3,
}

DEFAULT_CROSS_VALIDATION_CONFIG: dict[str, Any] = {
    "enabled": True,
    "chains": 2,
    "warmup": 500,
    "draws": 500,
    "target_accept": 0.95,
    "prior_scale": 2.5,
}

DEFAULT_DCA_CONFIG: dict[str, Any] = {
    "threshold_min": 0.05,
    "threshold_max": 0.95,
    "threshold_step": 0.01,
    "n_boot": 1000,
    "case_control": True,
    "target_prevalence": None,
    "report_points": [0.10, 0.20, 0.30],
}

DEFAULT_GOODNESS_OF_FIT_CONFIG: dict[str, Any] = {
    "min_groups": 5,
    "max_groups": 10,
    "events_per_group": 5,
}

DEFAULT_STRICTNESS_CONFIG: dict[str, Any] = {
    "level": "warn",
}
