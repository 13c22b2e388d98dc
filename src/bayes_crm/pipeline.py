"""
End-to-end fitting and evaluation pipeline.

Stages (each a pure function of its inputs and the frozen run config):

1. Validate the training (and optional validation) table, build design matrices
2. Fit the posterior (NUTS) and summarise it
3. Convergence diagnostics
4. Posterior predictive probabilities, calibration and AUC (training and validation)
5. Hosmer-Lemeshow test and Youden classification metrics
6. Leave-one-out refits and bootstrap decision curve analysis

run_pipeline() adds reading inputs, writing artifacts and the final artifact
integrity check.
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from bayes_crm.config.schema import PipelineConfig
from bayes_crm.config.validation import validate_pipeline_config
from bayes_crm.data.design import DesignMatrix, build_design_matrix
from bayes_crm.data.io import get_data_stats, read_dataset_csv, validate_dataset
from bayes_crm.evaluation.loo import CrossValidationResult, leave_one_out_predictions
from bayes_crm.evaluation.reports import OutputDirectories, ResultsWriter
from bayes_crm.metrics.calibration import posterior_calibration_curve, summarize_calibration
from bayes_crm.metrics.convergence import all_converged, compute_convergence_report
from bayes_crm.metrics.dca import (
    compute_dca_summary,
    decision_curve_analysis,
    generate_dca_thresholds,
)
from bayes_crm.metrics.discrimination import auc_posterior, summarize_auc
from bayes_crm.metrics.goodness_of_fit import HLTestResult, hosmer_lemeshow_test
from bayes_crm.metrics.thresholds import ClassificationReport, classification_report_at_youden
from bayes_crm.models.predict import posterior_median_proba, predict_proba_matrix
from bayes_crm.models.priors import build_prior_spec
from bayes_crm.models.sampler import PosteriorSampleSet, fit_posterior, summarize_posterior
from bayes_crm.utils.logging import log_section
from bayes_crm.utils.random import derive_seed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """All entities produced by one run."""

    config: PipelineConfig
    design: DesignMatrix
    posterior: PosteriorSampleSet
    posterior_summary: pd.DataFrame
    convergence: pd.DataFrame
    calibration_train: pd.DataFrame
    calibration_summary: dict[str, Any]
    auc_train: np.ndarray
    auc_summary: dict[str, Any]
    classification: ClassificationReport
    hosmer_lemeshow: HLTestResult
    validation_design: DesignMatrix | None = None
    calibration_validation: pd.DataFrame | None = None
    auc_validation: np.ndarray | None = None
    cross_validation: CrossValidationResult | None = None
    decision_curve: pd.DataFrame | None = None
    dca_summary: dict[str, Any] | None = None
    classification_loo: ClassificationReport | None = None
    artifacts: dict[str, str] = field(default_factory=dict)

    @property
    def converged(self) -> bool:
        return all_converged(self.convergence)

    def run_summary(self) -> dict[str, Any]:
        summary = {
            "seed": self.config.seed,
            "run_id": self.config.run_id,
            "n_subjects": self.design.n_subjects,
            "n_events": int(self.design.y.sum()),
            "n_coefficients": self.design.n_coefficients,
            "n_draws": self.posterior.n_draws,
            "n_chains": self.posterior.n_chains,
            "converged": self.converged,
            "max_rhat": float(self.convergence["rhat"].max()),
            "auc": self.auc_summary,
            "calibration": self.calibration_summary,
            "hosmer_lemeshow": self.hosmer_lemeshow.to_dict(),
            "classification": self.classification.to_dict(),
        }
        if self.validation_design is not None:
            summary["n_validation_subjects"] = self.validation_design.n_subjects
        if self.cross_validation is not None:
            summary["loo_failures"] = self.cross_validation.n_failed
        if self.classification_loo is not None:
            summary["classification_loo"] = self.classification_loo.to_dict()
        if self.dca_summary is not None:
            summary["dca"] = self.dca_summary
        return summary


def fit_and_evaluate(
    train_df: pd.DataFrame,
    config: PipelineConfig,
    validation_df: pd.DataFrame | None = None,
) -> PipelineResult:
    """
    Run every modelling and evaluation stage in memory.

    Args:
        train_df: Raw training table
        config: Resolved run configuration
        validation_df: Optional raw external validation table

    Returns:
        PipelineResult

    Raises:
        SchemaError: If a table violates the dataset schema
        ConvergenceFailure: If the full-data fit fails
        LOOFailure: If any leave-one-out refit fails
    """
    schema = config.dataset
    validate_pipeline_config(config)

    # ------------------------------------------------------------------
    log_section(logger, "Step 1: Validate data and build design matrices")
    train = validate_dataset(train_df, schema, label="training").raise_for_errors("training")
    stats = get_data_stats(train, schema)
    logger.info(f"Level counts: {stats['level_counts']}")
    design = build_design_matrix(train, schema)
    logger.info(f"Design matrix: {design.n_subjects} subjects × {design.n_coefficients} columns")

    validation_design = None
    if validation_df is not None:
        validation = validate_dataset(validation_df, schema, label="validation").raise_for_errors(
            "validation"
        )
        validation_design = build_design_matrix(validation, schema, reference=design)

    # ------------------------------------------------------------------
    log_section(logger, "Step 2: Fit posterior")
    prior_spec = build_prior_spec(design, config.priors)
    posterior = fit_posterior(
        design,
        prior_spec,
        config.sampler,
        seed=derive_seed(config.seed, "sampler"),
        cores=config.compute.max_cores,
    )
    posterior_summary = summarize_posterior(posterior)
    logger.info(f"Posterior: {posterior.n_chains} chains × {posterior.n_draws_per_chain} draws")

    # ------------------------------------------------------------------
    log_section(logger, "Step 3: Convergence diagnostics")
    convergence = compute_convergence_report(posterior, config.diagnostics)

    # ------------------------------------------------------------------
    log_section(logger, "Step 4: Calibration and discrimination")
    prob_train = predict_proba_matrix(posterior, design)
    p_median = posterior_median_proba(prob_train)
    cal = config.calibration
    calibration_train = posterior_calibration_curve(
        prob_train,
        design.y,
        n_bins=cal.n_bins,
        n_draws=cal.train_draws,
        seed=derive_seed(config.seed, "calibration_train"),
        sd_floor=cal.sd_floor,
    )
    calibration_summary = {"train": summarize_calibration(design.y, p_median)}
    auc_train = auc_posterior(prob_train, design.y)
    auc_summary = {"train": summarize_auc(auc_train)}
    logger.info(
        f"Training AUC: mode={auc_summary['train']['mode']:.3f} "
        f"[{auc_summary['train']['lower']:.3f}, {auc_summary['train']['upper']:.3f}]"
    )

    calibration_validation = None
    auc_validation = None
    if validation_design is not None:
        prob_val = predict_proba_matrix(posterior, validation_design)
        calibration_validation = posterior_calibration_curve(
            prob_val,
            validation_design.y,
            n_bins=cal.n_bins,
            n_draws=cal.validation_draws,
            seed=derive_seed(config.seed, "calibration_validation"),
            sd_floor=cal.sd_floor,
        )
        calibration_summary["validation"] = summarize_calibration(
            validation_design.y, posterior_median_proba(prob_val)
        )
        auc_validation = auc_posterior(prob_val, validation_design.y)
        auc_summary["validation"] = summarize_auc(auc_validation)
        logger.info(f"Validation AUC: mode={auc_summary['validation']['mode']:.3f}")

    # ------------------------------------------------------------------
    log_section(logger, "Step 5: Goodness of fit and classification")
    gof = config.goodness_of_fit
    hl = hosmer_lemeshow_test(
        design.y,
        p_median,
        min_groups=gof.min_groups,
        max_groups=gof.max_groups,
        events_per_group=gof.events_per_group,
    )
    classification = classification_report_at_youden(design.y, p_median)
    logger.info(
        f"Youden threshold {classification.threshold:.3f}: accuracy={classification.accuracy:.3f}, "
        f"kappa={classification.kappa:.3f}"
    )

    # ------------------------------------------------------------------
    cross_validation = None
    decision_curve = None
    dca_summary = None
    classification_loo = None
    if config.cross_validation.enabled:
        log_section(logger, "Step 6: Leave-one-out cross-validation and decision curves")
        cross_validation = leave_one_out_predictions(design, config).raise_for_failures()
        p_loo = cross_validation.probabilities
        classification_loo = classification_report_at_youden(design.y, p_loo)

        dca = config.dca
        decision_curve = decision_curve_analysis(
            design.y,
            p_loo,
            thresholds=generate_dca_thresholds(
                dca.threshold_min, dca.threshold_max, dca.threshold_step
            ),
            n_boot=dca.n_boot,
            seed=derive_seed(config.seed, "dca"),
            case_control=dca.case_control,
            target_prevalence=dca.target_prevalence,
        )
        dca_summary = compute_dca_summary(decision_curve, list(dca.report_points))
    else:
        logger.info("Leave-one-out cross-validation disabled; skipping decision curves")

    return PipelineResult(
        config=config,
        design=design,
        posterior=posterior,
        posterior_summary=posterior_summary,
        convergence=convergence,
        calibration_train=calibration_train,
        calibration_summary=calibration_summary,
        auc_train=auc_train,
        auc_summary=auc_summary,
        classification=classification,
        hosmer_lemeshow=hl,
        validation_design=validation_design,
        calibration_validation=calibration_validation,
        auc_validation=auc_validation,
        cross_validation=cross_validation,
        decision_curve=decision_curve,
        dca_summary=dca_summary,
        classification_loo=classification_loo,
    )


def expected_artifacts(result: PipelineResult) -> list[str]:
    """Names of the artifacts a complete run must leave behind."""
    names = [
        "config",
        "run_summary",
        "posterior_summary",
        "posterior_samples",
        "convergence",
        "calibration_train",
        "calibration_summary",
        "auc_train",
        "auc_summary",
        "classification",
        "hosmer_lemeshow",
        "hosmer_lemeshow_groups",
    ]
    if result.validation_design is not None:
        names += ["calibration_validation", "auc_validation"]
    if result.cross_validation is not None:
        names += ["loo_predictions", "decision_curve", "dca_summary"]
    return names


def write_results(result: PipelineResult, writer: ResultsWriter) -> dict[str, str]:
    """Write every artifact of a run; returns artifact name -> path."""
    writer.save_config(result.config)
    writer.save_table("posterior_summary", result.posterior_summary)
    writer.save_posterior(result.posterior)
    writer.save_table("convergence", result.convergence)
    writer.save_table("calibration_train", result.calibration_train)
    writer.save_record("calibration_summary", result.calibration_summary)
    writer.save_auc_draws("auc_train", result.auc_train)
    writer.save_record("auc_summary", result.auc_summary)

    classification = {"train_posterior_median": result.classification.to_dict()}
    if result.classification_loo is not None:
        classification["leave_one_out"] = result.classification_loo.to_dict()
    writer.save_record("classification", classification)
    writer.save_record("hosmer_lemeshow", result.hosmer_lemeshow.to_dict())
    writer.save_table("hosmer_lemeshow_groups", result.hosmer_lemeshow.groups)

    if result.calibration_validation is not None:
        writer.save_table("calibration_validation", result.calibration_validation)
    if result.auc_validation is not None:
        writer.save_auc_draws("auc_validation", result.auc_validation)
    if result.cross_validation is not None:
        writer.save_table("loo_predictions", result.cross_validation.to_frame())
    if result.decision_curve is not None:
        writer.save_table("decision_curve", result.decision_curve)
        writer.save_record("dca_summary", result.dca_summary)

    writer.save_record("run_summary", result.run_summary())
    return dict(writer.written)


def run_pipeline(
    config: PipelineConfig,
    train_path: str | Path,
    validation_path: str | Path | None = None,
) -> PipelineResult:
    """
    Read inputs, run all stages, write artifacts and verify them.

    Args:
        config: Resolved run configuration (outdir taken from config.outdir)
        train_path: Training CSV
        validation_path: Optional external validation CSV

    Returns:
        PipelineResult with ``artifacts`` filled in

    Raises:
        ArtifactIntegrityError: If an expected artifact is missing at the end
    """
    train_df = read_dataset_csv(train_path)
    validation_df = read_dataset_csv(validation_path) if validation_path is not None else None

    result = fit_and_evaluate(train_df, config, validation_df=validation_df)

    log_section(logger, "Writing results")
    outdir = Path(config.outdir)
    if config.run_id:
        outdir = outdir / f"run_{config.run_id}"
    writer = ResultsWriter(OutputDirectories.create(outdir))
    artifacts = write_results(result, writer)
    writer.verify_artifacts(expected_artifacts(result))
    result = replace(result, artifacts=dict(artifacts))

    logger.info(f"Wrote {len(artifacts)} artifact(s) to {outdir}")
    for rel in writer.summarize_outputs():
        logger.debug(f"  {rel}")
    return result
