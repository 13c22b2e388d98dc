"""
Shared pytest fixtures for bayes_crm tests.
"""

import logging

import numpy as np
import pandas as pd
import pytest
from scipy.special import expit

from bayes_crm.config.loader import load_pipeline_config
from bayes_crm.config.schema import DatasetSchemaConfig
from bayes_crm.data.design import build_design_matrix
from bayes_crm.data.io import validate_dataset
from bayes_crm.models.sampler import INTERCEPT_NAME, PosteriorSampleSet

GROUP_COUNTS = {"none": 140, "mild": 30, "moderate": 20, "severe": 10}
GROUP_EFFECTS = {"none": 0.0, "mild": 0.5, "moderate": 1.0, "severe": 1.5}


def make_risk_table(n_per_group=None, seed=0, base_logit=-1.3):
    """
    Synthetic cohort matching the default dataset schema.

    Args:
        n_per_group: Subjects per grade level (default: 140/30/20/10)
        seed: Random seed
        base_logit: Intercept of the generating model (about 30% prevalence)

    Returns:
        Raw DataFrame with columns y, grade, sex, diabetes, age, bmi, sbp, crp
    """
    rng = np.random.default_rng(seed)
    counts = n_per_group or GROUP_COUNTS
    grade = np.concatenate([[level] * n for level, n in counts.items()])
    n = grade.size
    sex = rng.choice(["female", "male"], size=n)
    diabetes = rng.choice(["no", "yes"], size=n, p=[0.8, 0.2])
    age = rng.normal(55, 10, size=n)
    bmi = rng.normal(27, 4, size=n)
    sbp = rng.normal(130, 15, size=n)
    crp = rng.lognormal(0.5, 0.6, size=n)

    eta = (
        base_logit
        + np.array([GROUP_EFFECTS[g] for g in grade])
        + 0.3 * (sex == "male")
        + 0.6 * (diabetes == "yes")
        + 0.04 * (age - 55)
    )
    y = rng.binomial(1, expit(eta))

    df = pd.DataFrame(
        {
            "y": y,
            "grade": grade,
            "sex": sex,
            "diabetes": diabetes,
            "age": age,
            "bmi": bmi,
            "sbp": sbp,
            "crp": crp,
        }
    )
    return df.sample(frac=1.0, random_state=seed).reset_index(drop=True)


@pytest.fixture
def schema():
    return DatasetSchemaConfig()


@pytest.fixture
def table_factory():
    return make_risk_table


@pytest.fixture
def risk_table():
    return make_risk_table()


@pytest.fixture
def validated_table(risk_table, schema):
    return validate_dataset(risk_table, schema, label="training").raise_for_errors()


@pytest.fixture
def design(validated_table, schema):
    return build_design_matrix(validated_table, schema)


@pytest.fixture
def small_config(tmp_path):
    """Run config with cheap sampler settings and a case-control DCA."""
    return load_pipeline_config(
        overrides=[
            f"outdir={tmp_path / 'results'}",
            "sampler.chains=2",
            "sampler.warmup=200",
            "sampler.draws=200",
            "calibration.train_draws=200",
            "calibration.validation_draws=100",
            "cross_validation.chains=1",
            "cross_validation.warmup=100",
            "cross_validation.draws=100",
            "dca.n_boot=50",
            "dca.target_prevalence=0.1",
            "compute.n_jobs=1",
            "strictness.level=off",
        ]
    )


def make_sample_set(design, n_chains=2, n_draws_per_chain=200, seed=0, spread=0.1):
    """Posterior-like draws scattered around a plausible coefficient vector."""
    rng = np.random.default_rng(seed)
    centre = np.zeros(design.n_coefficients + 1)
    centre[0] = -1.6
    for j, name in enumerate(design.columns, start=1):
        if name.startswith("grade["):
            centre[j] = 0.5 * j
        elif name == "age":
            centre[j] = 0.04
            centre[0] -= 0.04 * 55
    draws = centre + spread * rng.standard_normal((n_chains * n_draws_per_chain, centre.size))
    return PosteriorSampleSet(
        draws=draws,
        parameter_names=(INTERCEPT_NAME,) + design.columns,
        n_chains=n_chains,
        n_draws_per_chain=n_draws_per_chain,
    )


@pytest.fixture
def sample_set(design):
    return make_sample_set(design)


@pytest.fixture
def sample_set_factory():
    return make_sample_set


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Drop handlers attached by CLI runs so later tests do not log to closed streams."""
    yield
    logger = logging.getLogger("bayes_crm")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = True
