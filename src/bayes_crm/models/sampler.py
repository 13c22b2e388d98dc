"""
Posterior sampling for the Bayesian logistic risk model.

The model is

    y_i ~ Bernoulli(expit(alpha + x_i . beta))
    beta_j ~ Normal(location_j, scale_j)
    alpha_c ~ Normal(0, intercept_scale)   (intercept of the centred predictors)

and is sampled with PyMC's NUTS. For better geometry the centred predictors
are QR-decomposed (Q* = Q sqrt(n-1), R* = R / sqrt(n-1)) and the sampler
explores theta = R* beta. The Normal prior is still placed on beta through a
Potential; the map is linear so its Jacobian is a constant. Draws are
reported in the original basis with the uncentred intercept
alpha = alpha_c - mean(x) . beta.
"""

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
import pymc as pm
import pytensor.tensor as pt
from pymc.exceptions import SamplingError
from pymc.sampling.parallel import ParallelSamplingError

from bayes_crm.config.schema import SamplerConfig
from bayes_crm.data.design import DesignMatrix
from bayes_crm.exceptions import ConvergenceFailure, warn_data_quality
from bayes_crm.models.priors import PriorSpec

logger = logging.getLogger(__name__)

INTERCEPT_NAME = "(Intercept)"

# |diag(R*)| below this means the centred design is rank deficient
QR_SINGULAR_TOL = 1e-10


# ============================================================================
# Posterior container
# ============================================================================


@dataclass(frozen=True)
class PosteriorSampleSet:
    """Pooled post-warmup draws, chain-major.

    Attributes:
        draws: (n_chains * n_draws_per_chain, n_parameters) read-only array;
            column 0 is the intercept
        parameter_names: Intercept name followed by the design column names
        n_chains: Number of chains
        n_draws_per_chain: Retained draws per chain
    """

    draws: np.ndarray
    parameter_names: tuple[str, ...]
    n_chains: int
    n_draws_per_chain: int

    def __post_init__(self):
        expected = (self.n_chains * self.n_draws_per_chain, len(self.parameter_names))
        if self.draws.shape != expected:
            raise ValueError(f"draws has shape {self.draws.shape}, expected {expected}")
        self.draws.setflags(write=False)

    @property
    def n_draws(self) -> int:
        return self.draws.shape[0]

    @property
    def intercept(self) -> np.ndarray:
        return self.draws[:, 0]

    @property
    def coefficients(self) -> np.ndarray:
        return self.draws[:, 1:]

    @property
    def coefficient_names(self) -> tuple[str, ...]:
        return self.parameter_names[1:]

    @property
    def chain_boundaries(self) -> list[tuple[int, int]]:
        """(start, stop) row ranges of each chain within ``draws``."""
        n = self.n_draws_per_chain
        return [(c * n, (c + 1) * n) for c in range(self.n_chains)]

    def by_chain(self) -> np.ndarray:
        """Draws reshaped to (n_chains, n_draws_per_chain, n_parameters)."""
        return self.draws.reshape(self.n_chains, self.n_draws_per_chain, -1)

    def column(self, name: str) -> np.ndarray:
        return self.draws[:, self.parameter_names.index(name)]

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame(self.draws, columns=list(self.parameter_names))
        df.insert(0, "chain", np.repeat(np.arange(self.n_chains), self.n_draws_per_chain))
        df.insert(1, "draw", np.tile(np.arange(self.n_draws_per_chain), self.n_chains))
        return df


# ============================================================================
# Model construction
# ============================================================================


def _qr_factors(Xc: np.ndarray) -> tuple[np.ndarray, np.ndarray] | None:
    """Scaled thin QR factors of the centred design, or None if rank deficient."""
    n = Xc.shape[0]
    Q, R = np.linalg.qr(Xc, mode="reduced")
    scale = np.sqrt(n - 1)
    Q_star = Q * scale
    R_star = R / scale
    if np.any(np.abs(np.diag(R_star)) < QR_SINGULAR_TOL):
        return None
    return Q_star, np.linalg.inv(R_star)


def build_model(
    design: DesignMatrix,
    prior_spec: PriorSpec,
    qr: bool = True,
) -> tuple[pm.Model, np.ndarray]:
    """
    Build the PyMC model for a design matrix.

    Args:
        design: Training design matrix
        prior_spec: Priors matching the design columns
        qr: Use the QR reparameterisation when the design has full rank

    Returns:
        (model, column means used for centring)
    """
    prior_spec.check_columns(design.columns)
    X = np.asarray(design.X, dtype=float)
    y = np.asarray(design.y, dtype=int)
    n, k = X.shape
    if n < 2:
        raise ValueError(f"Need at least 2 subjects to fit, got {n}")

    x_mean = X.mean(axis=0)
    Xc = X - x_mean
    locations, scales = prior_spec.resolved(X)

    factors = None
    if qr and k > 0:
        factors = _qr_factors(Xc)
        if factors is None:
            warn_data_quality(
                "Centred design matrix is rank deficient; sampling in the original basis "
                "instead of the QR basis"
            )

    with pm.Model() as model:
        alpha_c = pm.Normal(
            "alpha_c", mu=prior_spec.intercept.location, sigma=prior_spec.intercept.scale
        )
        if k == 0:
            eta = alpha_c + pt.zeros(n)
            pm.Deterministic("beta", pt.zeros(0))
        elif factors is not None:
            Q_star, R_star_inv = factors
            theta = pm.Flat("theta", shape=k)
            beta = pm.Deterministic("beta", pt.dot(R_star_inv, theta))
            pm.Potential(
                "beta_prior",
                pm.logp(pm.Normal.dist(mu=locations, sigma=scales), beta).sum(),
            )
            eta = alpha_c + pt.dot(Q_star, theta)
        else:
            beta = pm.Normal("beta", mu=locations, sigma=scales, shape=k)
            eta = alpha_c + pt.dot(Xc, beta)
        pm.Bernoulli("y", logit_p=eta, observed=y)

    return model, x_mean


# ============================================================================
# Sampling
# ============================================================================


def fit_posterior(
    design: DesignMatrix,
    prior_spec: PriorSpec,
    config: SamplerConfig,
    seed: int,
    cores: int | None = None,
) -> PosteriorSampleSet:
    """
    Sample the posterior with NUTS.

    Args:
        design: Training design matrix
        prior_spec: Priors matching the design columns
        config: Chains, warmup, draws, target_accept and QR switch
        seed: Random seed for the sampler
        cores: Maximum worker processes (default: one per chain)

    Returns:
        PosteriorSampleSet in the original predictor basis

    Raises:
        ConvergenceFailure: If sampling errors, returns fewer chains than
            requested, or produces non-finite draws
    """
    model, x_mean = build_model(design, prior_spec, qr=config.qr)
    n_cores = max(1, min(config.chains, cores or config.chains))

    logger.debug(
        f"NUTS: chains={config.chains}, warmup={config.warmup}, draws={config.draws}, "
        f"target_accept={config.target_accept}, cores={n_cores}, seed={seed}"
    )
    try:
        with model:
            idata = pm.sample(
                draws=config.draws,
                tune=config.warmup,
                chains=config.chains,
                cores=n_cores,
                target_accept=config.target_accept,
                random_seed=int(seed),
                progressbar=False,
                compute_convergence_checks=False,
            )
    except (SamplingError, ParallelSamplingError, RuntimeError, FloatingPointError) as e:
        raise ConvergenceFailure(f"Posterior sampling failed: {e}") from e

    posterior = idata.posterior
    n_chains = int(posterior.sizes["chain"])
    if n_chains < config.chains:
        raise ConvergenceFailure(f"Only {n_chains} of {config.chains} chains returned draws")

    alpha_c = posterior["alpha_c"].values.reshape(-1)
    beta = posterior["beta"].values.reshape(n_chains * config.draws, design.n_coefficients)
    alpha = alpha_c - beta @ x_mean

    draws = np.column_stack([alpha, beta])
    if not np.all(np.isfinite(draws)):
        n_bad = int((~np.isfinite(draws)).any(axis=1).sum())
        raise ConvergenceFailure(f"{n_bad} posterior draw(s) contain non-finite values")

    divergent = idata.sample_stats.get("diverging")
    if divergent is not None and int(divergent.values.sum()):
        logger.warning(f"{int(divergent.values.sum())} divergent transition(s) after warmup")

    return PosteriorSampleSet(
        draws=np.ascontiguousarray(draws),
        parameter_names=(INTERCEPT_NAME,) + tuple(design.columns),
        n_chains=n_chains,
        n_draws_per_chain=config.draws,
    )


def summarize_posterior(samples: PosteriorSampleSet) -> pd.DataFrame:
    """
    Posterior summary with odds ratios and 95% credible intervals.

    Returns:
        DataFrame with columns parameter, mean, sd, median, q2.5, q97.5,
        odds_ratio, or_lower, or_upper (odds ratios are exp of the median and
        interval bounds)
    """
    d = samples.draws
    median = np.median(d, axis=0)
    lower, upper = np.percentile(d, [2.5, 97.5], axis=0)
    return pd.DataFrame(
        {
            "parameter": list(samples.parameter_names),
            "mean": d.mean(axis=0),
            "sd": d.std(axis=0, ddof=1),
            "median": median,
            "q2.5": lower,
            "q97.5": upper,
            "odds_ratio": np.exp(median),
            "or_lower": np.exp(lower),
            "or_upper": np.exp(upper),
        }
    )
