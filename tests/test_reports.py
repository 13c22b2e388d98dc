"""
Tests for ResultsWriter and OutputDirectories.
"""

import os

import numpy as np
import pandas as pd
import pytest
import yaml

from bayes_crm.evaluation.reports import OutputDirectories, ResultsWriter
from bayes_crm.exceptions import ArtifactIntegrityError
from bayes_crm.utils.serialization import load_json


@pytest.fixture
def writer(tmp_path):
    return ResultsWriter(OutputDirectories.create(tmp_path / "run_test"))


class TestOutputDirectories:
    def test_structure(self, tmp_path):
        dirs = OutputDirectories.create(tmp_path / "out")
        for sub in (
            "core",
            "preds",
            "diagnostics/convergence",
            "diagnostics/calibration",
            "diagnostics/discrimination",
            "diagnostics/dca",
            "diagnostics/fit",
        ):
            assert (tmp_path / "out" / sub).is_dir()
        assert dirs.get_path("core", "x.csv") == os.path.join(dirs.core, "x.csv")

    def test_unknown_category(self, tmp_path):
        dirs = OutputDirectories.create(tmp_path / "out")
        with pytest.raises(ValueError):
            dirs.get_path("root", "x.csv")
        with pytest.raises(ValueError):
            dirs.get_path("plots", "x.csv")


class TestResultsWriter:
    def test_save_table_and_record(self, writer):
        path = writer.save_table("convergence", pd.DataFrame({"parameter": ["a"], "rhat": [1.0]}))
        assert path.endswith(os.path.join("diagnostics", "convergence", "convergence_report.csv"))
        assert pd.read_csv(path)["rhat"].tolist() == [1.0]

        path = writer.save_record("auc_summary", {"train": {"mode": np.float64(0.8)}})
        assert load_json(path) == {"train": {"mode": 0.8}}
        assert set(writer.written) == {"convergence", "auc_summary"}

    def test_nan_written_as_null(self, writer):
        path = writer.save_record("dca_summary", {"model_beats_all_from": np.float64("nan")})
        assert load_json(path) == {"model_beats_all_from": None}

    def test_unknown_artifact(self, writer):
        with pytest.raises(ValueError, match="Unknown artifact"):
            writer.save_table("plots", pd.DataFrame())

    def test_save_config(self, writer, small_config):
        path = writer.save_config(small_config)
        with open(path) as f:
            assert yaml.safe_load(f)["seed"] == small_config.seed

    def test_posterior_roundtrip(self, writer, sample_set):
        writer.save_posterior(sample_set)
        loaded = writer.load_posterior()
        np.testing.assert_array_equal(loaded.draws, sample_set.draws)
        assert loaded.parameter_names == sample_set.parameter_names
        assert loaded.n_chains == sample_set.n_chains

    def test_load_posterior_missing(self, writer):
        with pytest.raises(FileNotFoundError):
            writer.load_posterior()

    def test_auc_draws(self, writer):
        path = writer.save_auc_draws("auc_train", np.array([0.7, 0.8]))
        df = pd.read_csv(path)
        assert list(df.columns) == ["draw", "auc"]


class TestVerifyArtifacts:
    def test_all_present(self, writer):
        writer.save_record("run_summary", {"ok": True})
        assert writer.verify_artifacts(["run_summary"]) == ["run_summary"]

    def test_never_written(self, writer):
        writer.save_record("run_summary", {"ok": True})
        with pytest.raises(ArtifactIntegrityError) as excinfo:
            writer.verify_artifacts(["run_summary", "decision_curve"])
        assert excinfo.value.missing == ["decision_curve"]

    def test_deleted_after_write(self, writer):
        path = writer.save_record("hosmer_lemeshow", {"p_value": 0.4})
        os.remove(path)
        with pytest.raises(ArtifactIntegrityError, match="hosmer_lemeshow"):
            writer.verify_artifacts(["hosmer_lemeshow"])

    def test_summarize_outputs(self, writer):
        writer.save_record("run_summary", {})
        assert writer.summarize_outputs() == [os.path.join("core", "run_summary.json")]
