# rjglm_jax/likelihoods/weibull.py
from __future__ import annotations

import math
from dataclasses import dataclass

import jax.numpy as jnp
import numpy as np

from .base import (
    LikelihoodFamily,
    LikelihoodModel,
    MAX_EXPONENT,
    finite_or_floor,
    linear_predictor,
)


@dataclass(frozen=True)
class Weibull(LikelihoodModel):
    """
    Right-censored Weibull survival likelihood, proportional hazards form:
      h(t) = k t^(k-1) exp(eta),   S(t) = exp(-t^k exp(eta))

    with shape k = exp(log_dispersion) and y the event indicator. Each
    observation contributes d (log k + (k-1) log t + eta) - t^k exp(eta).
    """

    family: str = LikelihoodFamily.WEIBULL.value
    label: str = "Weibull"
    has_dispersion: bool = True
    dispersion_label: str = "LogWeibullScale"
    supports_clusters: bool = True

    def log_likelihood(self, state, data, priors=None) -> jnp.ndarray:
        eta = linear_predictor(state, data)
        log_k = state.log_dispersion
        k = jnp.exp(log_k)
        log_t = jnp.log(data.times)
        log_cum_hazard = jnp.minimum(k * log_t + eta, MAX_EXPONENT)
        ll = data.y * (log_k + (k - 1.0) * log_t + eta) - jnp.exp(log_cum_hazard)
        return finite_or_floor(jnp.sum(ll))

    def initial_alpha(self, data) -> float:
        # Exponential-model rate at k = 1.
        events = float(np.sum(np.asarray(data.y)))
        exposure = float(np.sum(np.asarray(data.times)))
        if events <= 0.0:
            return 0.0
        return math.log(events / exposure)


weibull = Weibull()
