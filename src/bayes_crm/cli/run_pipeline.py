"""
CLI glue for the full pipeline: config resolution, logging and run.

This module turns command-line arguments into a frozen PipelineConfig, sets
up file logging next to the results, and hands over to bayes_crm.pipeline.
"""

import logging
from datetime import datetime
from pathlib import Path

from bayes_crm.config.loader import format_config_summary, load_pipeline_config
from bayes_crm.pipeline import PipelineResult, run_pipeline
from bayes_crm.utils.logging import auto_log_path, setup_logger


def _generate_run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def build_overrides(
    overrides: list[str] | None,
    outdir: Path | None = None,
    run_id: str | None = None,
    seed: int | None = None,
) -> list[str]:
    """Merge explicit CLI options into the dot-notation override list.

    Explicit options are appended last so they win over --override values.
    """
    merged = list(overrides or [])
    if outdir is not None:
        merged.append(f"outdir={outdir}")
    if run_id is not None:
        merged.append(f"run_id={run_id}")
    if seed is not None:
        merged.append(f"seed={seed}")
    return merged


def run_from_cli(
    config_file: Path | None,
    train: Path,
    validation: Path | None,
    outdir: Path | None,
    run_id: str | None,
    seed: int | None,
    overrides: list[str],
    log_level: int,
    log_file: Path | None = None,
) -> PipelineResult:
    """
    Resolve configuration and run the pipeline.

    Args:
        config_file: Optional YAML config
        train: Training CSV
        validation: Optional external validation CSV
        outdir: Results directory (overrides config)
        run_id: Run identifier (auto-generated from the clock if None)
        seed: Run seed (overrides config)
        overrides: Dot-notation config overrides
        log_level: Logging level constant
        log_file: Log file path (default: logs/pipeline/run_{id}.log next to outdir)
    """
    run_id = run_id or _generate_run_id()
    config = load_pipeline_config(
        config_file,
        build_overrides(overrides, outdir=outdir, run_id=run_id, seed=seed),
    )

    if log_file is None:
        log_file = auto_log_path(config.outdir, run_id=config.run_id)
    logger = setup_logger("bayes_crm", level=log_level, log_file=log_file)
    logger.info(f"Logging to file: {log_file}")

    logger.info("=" * 70)
    logger.info("Bayesian Risk Model Pipeline")
    logger.info("=" * 70)
    logger.info(f"Run ID: {config.run_id}")
    logger.info(f"Training data: {train}")
    logger.info(f"Validation data: {validation or 'none'}")
    logger.info(f"Seed: {config.seed}")
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("\n" + format_config_summary(config))

    result = run_pipeline(config, train, validation)

    logger.info("=" * 70)
    logger.info("Pipeline Complete")
    logger.info("=" * 70)
    logger.info(f"Converged: {result.converged}")
    logger.info(f"Artifacts: {len(result.artifacts)}")
    return result
