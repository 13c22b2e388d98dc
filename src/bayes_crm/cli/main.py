"""
Main CLI entry point for the bayes_crm pipeline.

Provides subcommands:
  - bcrm run: Fit the model and run every evaluation stage
  - bcrm show-config: Print the resolved configuration
"""

import sys

import click

from bayes_crm import __version__


@click.group()
@click.version_option(version=__version__, prog_name="bcrm")
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (-v for debug output)",
)
@click.pass_context
def cli(ctx, verbose):
    """
    bayes_crm: Bayesian logistic risk model with posterior-based evaluation

    Fits the model with NUTS and reports convergence, calibration,
    discrimination, leave-one-out decision curves and goodness of fit.
    """
    from bayes_crm.utils.random import apply_seed_global

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    # Apply SEED_GLOBAL if set (for single-threaded reproducibility debugging)
    seed_applied = apply_seed_global()
    if seed_applied is not None:
        ctx.obj["seed_global"] = seed_applied


@cli.command("run")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML configuration file",
)
@click.option(
    "--train",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Training CSV (outcome, group factor, binary factors, continuous predictors)",
)
@click.option(
    "--validation",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Optional external validation CSV with the same schema",
)
@click.option(
    "--outdir",
    type=click.Path(file_okay=False),
    default=None,
    help="Results directory (default from config: results/)",
)
@click.option(
    "--run-id",
    type=str,
    default=None,
    help="Run identifier (default: timestamp YYYYMMDD_HHMMSS)",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Run seed (overrides config)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Log file (default: logs/pipeline/run_{ID}.log next to the results directory)",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config value (e.g., --override sampler.chains=2)",
)
@click.pass_context
def run(ctx, config, train, validation, outdir, run_id, seed, log_file, override):
    """Fit the model and run every evaluation stage."""
    from pathlib import Path

    from bayes_crm.cli.run_pipeline import run_from_cli
    from bayes_crm.exceptions import (
        ArtifactIntegrityError,
        ConvergenceFailure,
        SchemaError,
    )
    from bayes_crm.utils.logging import level_from_verbosity

    try:
        run_from_cli(
            config_file=Path(config) if config else None,
            train=Path(train),
            validation=Path(validation) if validation else None,
            outdir=Path(outdir) if outdir else None,
            run_id=run_id,
            seed=seed,
            overrides=list(override),
            log_level=level_from_verbosity(ctx.obj.get("verbose", 0)),
            log_file=Path(log_file) if log_file else None,
        )
    except (SchemaError, ConvergenceFailure, ArtifactIntegrityError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command("show-config")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to YAML configuration file",
)
@click.option(
    "--override",
    multiple=True,
    help="Override config value (e.g., --override dca.n_boot=200)",
)
@click.option(
    "--check/--no-check",
    default=True,
    help="Also report cross-field configuration issues",
)
def show_config(config, override, check):
    """Print the resolved configuration."""
    from bayes_crm.config.loader import format_config_summary, load_pipeline_config
    from bayes_crm.config.validation import validate_config

    try:
        resolved = load_pipeline_config(config, list(override))
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(format_config_summary(resolved))

    if check:
        errors, warnings_list = validate_config(resolved)
        for message in errors + warnings_list:
            click.echo(message)
        if errors:
            sys.exit(1)


if __name__ == "__main__":
    cli()
