"""
Serialization utilities for posterior samples and results.
"""

import json
import logging
import math
import warnings
from pathlib import Path
from typing import Any

import joblib
import numpy as np

logger = logging.getLogger(__name__)


def _to_builtin(obj: Any) -> Any:
    """Convert numpy values to JSON types; non-finite floats become None."""
    if isinstance(obj, dict):
        return {str(k): _to_builtin(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_builtin(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return _to_builtin(obj.tolist())
    if isinstance(obj, (bool, np.bool_)):
        return bool(obj)
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        return float(obj) if math.isfinite(obj) else None
    return obj


def save_joblib(obj: Any, path: str | Path, compress: int = 3):
    """Save object using joblib."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    joblib.dump(obj, path, compress=compress)


def load_joblib(path: str | Path, check_versions: bool = True) -> Any:
    """
    Load object using joblib with optional version checking.

    Args:
        path: Path to joblib file
        check_versions: If True and object is a bundle with a "versions" entry,
            warn if pymc/numpy versions differ from the current environment

    Returns:
        Loaded object
    """
    obj = joblib.load(path)

    if check_versions and isinstance(obj, dict) and "versions" in obj:
        import pymc

        current_versions = {"pymc": pymc.__version__, "numpy": np.__version__}
        mismatches = [
            f"{lib}: saved={saved}, current={current_versions[lib]}"
            for lib, saved in obj["versions"].items()
            if lib in current_versions and saved != current_versions[lib]
        ]
        if mismatches:
            warnings.warn(
                f"Bundle version mismatch in {Path(path).name}:\n"
                + "\n".join(f"  - {m}" for m in mismatches),
                UserWarning,
                stacklevel=2,
            )

    return obj


def save_json(obj: Any, path: str | Path, indent: int = 2):
    """Save object as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        json.dump(_to_builtin(obj), f, indent=indent, default=str)


def load_json(path: str | Path) -> Any:
    """Load JSON file."""
    with open(path) as f:
        return json.load(f)
