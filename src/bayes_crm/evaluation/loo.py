"""
Leave-one-out cross-validated predictions.

For every subject the model is refit on all other subjects (same design
columns, single flat prior scale, reduced sampler settings) and the held-out
subject is predicted as the median of its posterior probability draws.
Refits are independent and run in parallel with joblib; each uses a seed
derived from the run seed and the subject position, so results do not depend
on the number of workers.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from joblib import Parallel, delayed

from bayes_crm.config.schema import PipelineConfig, SamplerConfig
from bayes_crm.data.design import DesignMatrix
from bayes_crm.exceptions import ConvergenceFailure, LOOFailure
from bayes_crm.models.predict import predict_proba_matrix
from bayes_crm.models.priors import flat_prior_spec
from bayes_crm.models.sampler import fit_posterior
from bayes_crm.utils.random import derive_seed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CrossValidationResult:
    """Out-of-sample probability per subject (NaN where the refit failed)."""

    probabilities: np.ndarray
    y: np.ndarray
    failures: dict[int, str] = field(default_factory=dict)

    def __post_init__(self):
        self.probabilities.setflags(write=False)

    @property
    def n_failed(self) -> int:
        return len(self.failures)

    def raise_for_failures(self) -> "CrossValidationResult":
        if self.failures:
            raise LOOFailure(self.failures)
        return self

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "subject": np.arange(self.probabilities.size),
                "y": self.y,
                "p_loo": self.probabilities,
                "failed": [i in self.failures for i in range(self.probabilities.size)],
            }
        )


@contextmanager
def _quiet_pymc():
    pymc_logger = logging.getLogger("pymc")
    previous = pymc_logger.level
    pymc_logger.setLevel(logging.ERROR)
    try:
        yield
    finally:
        pymc_logger.setLevel(previous)


def loo_sampler_config(config: PipelineConfig) -> SamplerConfig:
    """Reduced-cost sampler settings for the refits."""
    cv = config.cross_validation
    return SamplerConfig(
        chains=cv.chains,
        warmup=cv.warmup,
        draws=cv.draws,
        target_accept=cv.target_accept,
        qr=config.sampler.qr,
    )


def _fit_held_out(
    design: DesignMatrix,
    index: int,
    sampler_config: SamplerConfig,
    prior_scale: float,
    intercept_scale: float,
    seed: int,
) -> tuple[int, float, str | None]:
    """Refit without subject ``index`` and predict it."""
    train = design.drop_subject(index)
    prior = flat_prior_spec(train, scale=prior_scale, intercept_scale=intercept_scale)
    with _quiet_pymc():
        try:
            samples = fit_posterior(train, prior, sampler_config, seed=seed, cores=1)
        except ConvergenceFailure as e:
            return index, np.nan, str(e)
        except Exception as e:
            # pytensor/linalg errors from a degenerate held-out design
            return index, np.nan, f"{type(e).__name__}: {e}"
    p = predict_proba_matrix(samples, design.X[index : index + 1])
    return index, float(np.median(p[:, 0])), None


def leave_one_out_predictions(
    design: DesignMatrix,
    config: PipelineConfig,
    n_jobs: int | None = None,
) -> CrossValidationResult:
    """
    Leave-one-out predictions for every subject of a design matrix.

    Args:
        design: Training design matrix
        config: Run configuration (cross_validation settings and seed)
        n_jobs: joblib workers (default: config.compute.n_jobs)

    Returns:
        CrossValidationResult; failed refits are recorded, not raised
        (call raise_for_failures() to make them fatal)
    """
    n = design.n_subjects
    n_jobs = config.compute.n_jobs if n_jobs is None else n_jobs
    sampler_config = loo_sampler_config(config)

    logger.info(
        f"Leave-one-out: {n} refits (chains={sampler_config.chains}, "
        f"warmup={sampler_config.warmup}, draws={sampler_config.draws}, n_jobs={n_jobs})"
    )

    results = Parallel(n_jobs=n_jobs)(
        delayed(_fit_held_out)(
            design,
            i,
            sampler_config,
            config.cross_validation.prior_scale,
            config.priors.intercept_scale,
            derive_seed(config.seed, "loo", i),
        )
        for i in range(n)
    )

    probabilities = np.full(n, np.nan)
    failures: dict[int, str] = {}
    for index, prob, error in results:
        if error is None:
            probabilities[index] = prob
        else:
            failures[index] = error

    if failures:
        logger.warning(f"Leave-one-out refit failed for {len(failures)} of {n} subject(s)")
    else:
        logger.info("Leave-one-out refits complete")

    return CrossValidationResult(
        probabilities=probabilities,
        y=np.asarray(design.y).copy(),
        failures=failures,
    )
