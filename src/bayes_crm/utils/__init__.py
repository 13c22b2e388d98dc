"""Utility functions for bayes_crm."""

from bayes_crm.utils.logging import auto_log_path, log_section, setup_logger
from bayes_crm.utils.random import (
    apply_seed_global,
    derive_seed,
    set_random_seed,
    spawn_generators,
)
from bayes_crm.utils.serialization import load_joblib, load_json, save_joblib, save_json

__all__ = [
    "setup_logger",
    "auto_log_path",
    "log_section",
    "set_random_seed",
    "apply_seed_global",
    "derive_seed",
    "spawn_generators",
    "save_joblib",
    "load_joblib",
    "save_json",
    "load_json",
]
