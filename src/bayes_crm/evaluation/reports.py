"""
ResultsWriter: Structured output directory management and results serialization.

Provides:
- OutputDirectories: Directory structure creation and path management
- ResultsWriter: High-level API for saving posterior summaries, diagnostics,
  predictions and evaluation tables

Every artifact is registered under a short name when written, so a finished
run can be checked for completeness with verify_artifacts().
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import numpy as np
import pandas as pd
import pymc

from bayes_crm.config.loader import save_config
from bayes_crm.config.schema import PipelineConfig
from bayes_crm.exceptions import ArtifactIntegrityError
from bayes_crm.models.sampler import PosteriorSampleSet
from bayes_crm.utils.serialization import load_joblib, save_joblib, save_json

logger = logging.getLogger(__name__)


@dataclass
class OutputDirectories:
    """
    Structured output directory paths.

    Attributes:
        root: Base output directory
        core: Resolved config, posterior summary and samples
        preds: Leave-one-out predictions
        diag_convergence: Rhat / ESS report
        diag_calibration: Calibration curves and summary
        diag_discrimination: AUC posterior draws and summary
        diag_dca: Decision curve and summary
        diag_fit: Hosmer-Lemeshow and classification metrics
    """

    root: str
    core: str
    preds: str
    diag_convergence: str
    diag_calibration: str
    diag_discrimination: str
    diag_dca: str
    diag_fit: str

    @classmethod
    def create(cls, root: str | Path, exist_ok: bool = True) -> "OutputDirectories":
        """
        Create output directory structure.

        Args:
            root: Base output directory path
            exist_ok: If True, do not raise if directories exist

        Returns:
            OutputDirectories instance with all paths created
        """
        root_path = Path(root)

        structure = {
            "core": "core",
            "preds": "preds",
            "diag_convergence": "diagnostics/convergence",
            "diag_calibration": "diagnostics/calibration",
            "diag_discrimination": "diagnostics/discrimination",
            "diag_dca": "diagnostics/dca",
            "diag_fit": "diagnostics/fit",
        }

        paths = {"root": str(root_path)}
        for key, rel_path in structure.items():
            abs_path = root_path / rel_path
            abs_path.mkdir(parents=True, exist_ok=exist_ok)
            paths[key] = str(abs_path)

        logger.debug(f"Created output structure at: {root}")
        return cls(**paths)

    def get_path(self, category: str, filename: str) -> str:
        """
        Construct full path for a file in a specific category.

        Raises:
            ValueError: If category is invalid
        """
        if category not in self.__dataclass_fields__ or category == "root":
            raise ValueError(f"Unknown output category: {category}")
        return os.path.join(getattr(self, category), filename)


class ResultsWriter:
    """
    High-level API for writing pipeline results.

    Usage:
        writer = ResultsWriter(OutputDirectories.create(outdir))
        writer.save_table("convergence", report_df)
        writer.save_posterior(samples)
        writer.verify_artifacts(["convergence", "posterior_samples"])
    """

    # artifact name -> (category, filename)
    ARTIFACTS = {
        "config": ("core", "run_config.yaml"),
        "run_summary": ("core", "run_summary.json"),
        "posterior_summary": ("core", "posterior_summary.csv"),
        "posterior_samples": ("core", "posterior_samples.joblib"),
        "convergence": ("diag_convergence", "convergence_report.csv"),
        "calibration_train": ("diag_calibration", "calibration_train.csv"),
        "calibration_validation": ("diag_calibration", "calibration_validation.csv"),
        "calibration_summary": ("diag_calibration", "calibration_summary.json"),
        "auc_train": ("diag_discrimination", "auc_posterior_train.csv"),
        "auc_validation": ("diag_discrimination", "auc_posterior_validation.csv"),
        "auc_summary": ("diag_discrimination", "auc_summary.json"),
        "loo_predictions": ("preds", "loo_predictions.csv"),
        "decision_curve": ("diag_dca", "decision_curve.csv"),
        "dca_summary": ("diag_dca", "dca_summary.json"),
        "classification": ("diag_fit", "classification_metrics.json"),
        "hosmer_lemeshow": ("diag_fit", "hosmer_lemeshow.json"),
        "hosmer_lemeshow_groups": ("diag_fit", "hosmer_lemeshow_groups.csv"),
    }

    def __init__(self, output_dirs: OutputDirectories):
        self.dirs = output_dirs
        self.written: Dict[str, str] = {}

    def path_for(self, name: str) -> str:
        if name not in self.ARTIFACTS:
            raise ValueError(f"Unknown artifact: {name}. Valid: {sorted(self.ARTIFACTS)}")
        category, filename = self.ARTIFACTS[name]
        return self.dirs.get_path(category, filename)

    def _register(self, name: str, path: str) -> str:
        self.written[name] = path
        logger.debug(f"Saved {name}: {path}")
        return path

    # ========== Settings and Configuration ==========

    def save_config(self, config: PipelineConfig) -> str:
        """Save the resolved run configuration as YAML."""
        path = self.path_for("config")
        save_config(config, path)
        logger.info(f"Saved run config: {path}")
        return self._register("config", path)

    # ========== Tables and Records ==========

    def save_table(self, name: str, df: pd.DataFrame) -> str:
        """Save a DataFrame artifact as CSV."""
        path = self.path_for(name)
        df.to_csv(path, index=False)
        return self._register(name, path)

    def save_record(self, name: str, record: Dict[str, Any]) -> str:
        """Save a dict artifact as JSON."""
        path = self.path_for(name)
        save_json(record, path)
        return self._register(name, path)

    def save_auc_draws(self, name: str, auc_draws: np.ndarray) -> str:
        df = pd.DataFrame({"draw": np.arange(len(auc_draws)), "auc": auc_draws})
        return self.save_table(name, df)

    # ========== Posterior Artifacts ==========

    def save_posterior(self, samples: PosteriorSampleSet) -> str:
        """
        Save posterior draws to core/posterior_samples.joblib.

        The bundle records the pymc and numpy versions so a mismatch can be
        flagged when it is loaded elsewhere.
        """
        bundle = {
            "draws": np.asarray(samples.draws),
            "parameter_names": list(samples.parameter_names),
            "n_chains": samples.n_chains,
            "n_draws_per_chain": samples.n_draws_per_chain,
            "versions": {"pymc": pymc.__version__, "numpy": np.__version__},
        }
        path = self.path_for("posterior_samples")
        try:
            save_joblib(bundle, path)
        except OSError as e:
            logger.error(f"Failed to save posterior samples: {e}")
            raise
        logger.info(f"Saved posterior samples: {path}")
        return self._register("posterior_samples", path)

    def load_posterior(self) -> PosteriorSampleSet:
        """Load posterior draws saved by save_posterior()."""
        path = self.path_for("posterior_samples")
        if not os.path.exists(path):
            raise FileNotFoundError(f"Posterior samples not found: {path}")
        bundle = load_joblib(path)
        return PosteriorSampleSet(
            draws=np.array(bundle["draws"]),
            parameter_names=tuple(bundle["parameter_names"]),
            n_chains=int(bundle["n_chains"]),
            n_draws_per_chain=int(bundle["n_draws_per_chain"]),
        )

    # ========== Utility Methods ==========

    def verify_artifacts(self, expected: Iterable[str]) -> List[str]:
        """
        Check that every expected artifact was written and exists on disk.

        Returns:
            Sorted list of verified artifact names

        Raises:
            ArtifactIntegrityError: If any expected artifact is missing
        """
        expected = list(expected)
        missing = [
            name
            for name in expected
            if name not in self.written or not os.path.exists(self.written[name])
        ]
        if missing:
            raise ArtifactIntegrityError(missing)
        return sorted(expected)

    def summarize_outputs(self) -> List[str]:
        """Relative paths (from root) of the artifacts written so far."""
        return sorted(
            os.path.relpath(path, self.dirs.root)
            for path in self.written.values()
            if os.path.exists(path)
        )
