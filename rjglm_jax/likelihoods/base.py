# rjglm_jax/likelihoods/base.py
"""
Likelihood families.

The set of families is closed: each is a frozen (hashable) dataclass so a
model instance can be passed to jitted functions as a static argument. All
families share the `log_likelihood(state, data, priors)` signature; the
conjugate families return a log marginal likelihood instead.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import jax.numpy as jnp

# Smallest probability allowed before taking a logarithm.
PROBABILITY_FLOOR = 1e-300
LOG_PROBABILITY_FLOOR = math.log(PROBABILITY_FLOOR)
# Value substituted for a total log-likelihood that is not finite.
LOG_LIKELIHOOD_FLOOR = -1e300
# Largest argument passed to exp() inside a likelihood.
MAX_EXPONENT = 700.0


class LikelihoodFamily(str, Enum):
    LOGISTIC = "logistic"
    WEIBULL = "weibull"
    GAUSSIAN = "gaussian"
    GAUSSIAN_MARGINAL = "gaussian_marginal"
    GAUSSIAN_CONJ = "gaussian_conj"
    GAUSSIAN_MARGINAL_CONJ = "gaussian_marginal_conj"


_LIKELIHOOD_REGISTRY = {}


def register(name, likelihood):
    """
    Register a likelihood model under a string key.
    """
    name = LikelihoodFamily(name).value
    if name in _LIKELIHOOD_REGISTRY:
        raise KeyError(f"Likelihood '{name}' already registered.")
    _LIKELIHOOD_REGISTRY[name] = likelihood


def get(name):
    """
    Retrieve a likelihood model by name.
    """
    key = name.value if isinstance(name, LikelihoodFamily) else str(name).lower()
    try:
        return _LIKELIHOOD_REGISTRY[key]
    except KeyError:
        raise KeyError(
            f"Unknown likelihood '{name}'. "
            f"Available: {list(_LIKELIHOOD_REGISTRY.keys())}"
        )


def available():
    return list(_LIKELIHOOD_REGISTRY.keys())


@dataclass(frozen=True)
class LikelihoodModel:
    """
    Base class for the likelihood families.

    Attributes:
        family: registry key
        label: name written to the results header
        has_dispersion: whether log_dispersion is a sampled parameter
        dispersion_label: results column name for log_dispersion
        is_conjugate: coefficients and residual variance are integrated out
        supports_clusters: random intercepts can be added to the linear predictor
        uses_sufficient_statistics: evaluated from cached cross products
    """

    family: str = ""
    label: str = ""
    has_dispersion: bool = False
    dispersion_label: Optional[str] = None
    is_conjugate: bool = False
    supports_clusters: bool = False
    uses_sufficient_statistics: bool = False

    def log_likelihood(self, state, data, priors=None) -> jnp.ndarray:
        raise NotImplementedError

    def initial_alpha(self, data) -> float:
        return 0.0

    def initial_log_dispersion(self, data) -> float:
        return 0.0


def linear_predictor(state, data) -> jnp.ndarray:
    """alpha + X beta (+ cluster intercept) for individual-level families."""
    beta = jnp.where(state.inclusion == 1, state.beta, 0.0)
    eta = state.alpha + data.X @ beta
    if data.n_clusters > 0:
        eta = eta + state.cluster_intercepts[data.cluster_index]
    return eta


def finite_or_floor(log_likelihood: jnp.ndarray) -> jnp.ndarray:
    """Replace NaN/Inf totals by LOG_LIKELIHOOD_FLOOR."""
    return jnp.where(jnp.isfinite(log_likelihood), log_likelihood, LOG_LIKELIHOOD_FLOOR)
