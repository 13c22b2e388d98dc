"""
Configuration validation and safety checks.

Cross-field checks that single-model validators cannot express. Issues are
reported according to the configured strictness level.
"""

import warnings

from bayes_crm.config.schema import PipelineConfig

MAX_DCA_GRID_POINTS = 10_000


class ConfigValidationError(Exception):
    """Raised when configuration validation fails in strict mode."""

    pass


class ConfigValidationWarning(UserWarning):
    """Warning for potential configuration issues."""

    pass


def validate_pipeline_config(config: PipelineConfig):
    """
    Validate a resolved pipeline configuration for inconsistent settings.

    Args:
        config: PipelineConfig instance
    """
    issues = []

    # Prior structure: group dummies are meant to be shrunk harder
    if config.priors.group_scale > config.priors.other_scale:
        issues.append(
            f"priors.group_scale ({config.priors.group_scale}) > priors.other_scale "
            f"({config.priors.other_scale}). Group-factor coefficients will be shrunk less "
            "than the other predictors."
        )

    # DCA grid
    dca = config.dca
    n_points = int(round((dca.threshold_max - dca.threshold_min) / dca.threshold_step)) + 1
    if n_points > MAX_DCA_GRID_POINTS:
        issues.append(
            f"DCA threshold grid has {n_points} points (> {MAX_DCA_GRID_POINTS}). "
            "Increase dca.threshold_step."
        )
    outside = [t for t in dca.report_points if not dca.threshold_min <= t <= dca.threshold_max]
    if outside:
        issues.append(
            f"dca.report_points {outside} lie outside the threshold grid "
            f"[{dca.threshold_min}, {dca.threshold_max}] and will not be reported."
        )
    if not dca.case_control and dca.target_prevalence is not None:
        issues.append(
            "dca.target_prevalence is set but dca.case_control is false; "
            "the observed prevalence will be used instead."
        )

    # Calibration subsample vs available draws
    total_draws = config.sampler.chains * config.sampler.draws
    if config.calibration.train_draws > total_draws:
        issues.append(
            f"calibration.train_draws ({config.calibration.train_draws}) exceeds the "
            f"posterior size ({total_draws}); all draws will be used."
        )

    # LOO refits should not cost more than the full fit
    cv = config.cross_validation
    if cv.enabled and cv.chains * (cv.warmup + cv.draws) > config.sampler.chains * (
        config.sampler.warmup + config.sampler.draws
    ):
        issues.append(
            "cross_validation sampler settings are heavier than the full-data fit; "
            "each leave-one-out refit will be slower than the main model."
        )

    if config.sampler.chains < 2:
        issues.append("sampler.chains < 2: split-Rhat cannot compare independent chains.")

    _handle_issues(issues, config.strictness.level, "Pipeline configuration")


def validate_config(config: PipelineConfig):
    """
    Validate configuration and return lists of errors and warnings.

    Returns:
        Tuple of (errors, warnings) as lists of strings
    """
    errors = []
    warnings_list = []

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", ConfigValidationWarning)
        try:
            validate_pipeline_config(config)
        except ConfigValidationError as e:
            errors.append(str(e))
    warnings_list.extend(
        str(w.message) for w in caught if issubclass(w.category, ConfigValidationWarning)
    )

    return errors, warnings_list


def _handle_issues(issues: list[str], strictness: str, context: str):
    """Handle validation issues based on strictness level."""
    if not issues:
        return

    message = f"{context} issues:\n" + "\n".join(f"  - {issue}" for issue in issues)

    if strictness == "error":
        raise ConfigValidationError(message)
    elif strictness == "warn":
        warnings.warn(message, ConfigValidationWarning, stacklevel=3)
    # strictness == "off": do nothing
