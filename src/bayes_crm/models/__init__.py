"""Bayesian logistic model: priors, posterior sampling and prediction."""

from bayes_crm.models.predict import (
    posterior_mean_proba,
    posterior_median_proba,
    predict_proba_matrix,
)
from bayes_crm.models.priors import PriorEntry, PriorSpec, build_prior_spec, flat_prior_spec
from bayes_crm.models.sampler import (
    INTERCEPT_NAME,
    PosteriorSampleSet,
    build_model,
    fit_posterior,
    summarize_posterior,
)

__all__ = [
    "PriorEntry",
    "PriorSpec",
    "build_prior_spec",
    "flat_prior_spec",
    "INTERCEPT_NAME",
    "PosteriorSampleSet",
    "build_model",
    "fit_posterior",
    "summarize_posterior",
    "predict_proba_matrix",
    "posterior_median_proba",
    "posterior_mean_proba",
]
