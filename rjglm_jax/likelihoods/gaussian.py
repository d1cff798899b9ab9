# rjglm_jax/likelihoods/gaussian.py
from __future__ import annotations

import math
from dataclasses import dataclass

import jax.numpy as jnp
import numpy as np

from .base import (
    LikelihoodFamily,
    LikelihoodModel,
    finite_or_floor,
    linear_predictor,
)

LOG_2PI = math.log(2.0 * math.pi)


@dataclass(frozen=True)
class Gaussian(LikelihoodModel):
    """
    Gaussian linear model:
        y ~ N(eta, sigma^2),   sigma^2 = exp(log_dispersion)
    """

    family: str = LikelihoodFamily.GAUSSIAN.value
    label: str = "Gaussian"
    has_dispersion: bool = True
    dispersion_label: str = "LogGaussianResidual"
    supports_clusters: bool = True

    def log_likelihood(self, state, data, priors=None) -> jnp.ndarray:
        eta = linear_predictor(state, data)
        sigma2 = jnp.exp(state.log_dispersion)
        rss = jnp.sum((data.y - eta) ** 2)
        n = data.y.shape[0]
        return finite_or_floor(-0.5 * n * (LOG_2PI + state.log_dispersion) - 0.5 * rss / sigma2)

    def initial_alpha(self, data) -> float:
        return float(np.mean(np.asarray(data.y)))

    def initial_log_dispersion(self, data) -> float:
        return math.log(max(float(np.var(np.asarray(data.y))), 1e-8))


@dataclass(frozen=True)
class GaussianMarginal(Gaussian):
    """
    Gaussian linear model evaluated from cached sufficient statistics.

    The residual sum of squares is expanded in the uncentred cross products,
      RSS = y'y - 2 a 1'y - 2 b'X'y + n a^2 + 2 a b'X'1 + b'X'X b,
    so no pass over individual-level data is needed (and none has to exist).
    """

    family: str = LikelihoodFamily.GAUSSIAN_MARGINAL.value
    label: str = "GaussianMarg"
    supports_clusters: bool = False
    uses_sufficient_statistics: bool = True

    def log_likelihood(self, state, data, priors=None) -> jnp.ndarray:
        s = data.stats
        a = state.alpha
        b = jnp.where(state.inclusion == 1, state.beta, 0.0)
        rss = (
            s.yty
            - 2.0 * a * s.y_sum
            - 2.0 * jnp.dot(b, s.xty)
            + s.n * a * a
            + 2.0 * a * jnp.dot(b, s.x_sum)
            + b @ s.xtx @ b
        )
        rss = jnp.maximum(rss, 0.0)
        sigma2 = jnp.exp(state.log_dispersion)
        return finite_or_floor(-0.5 * s.n * (LOG_2PI + state.log_dispersion) - 0.5 * rss / sigma2)

    def initial_alpha(self, data) -> float:
        return float(data.stats.y_sum) / data.stats.n

    def initial_log_dispersion(self, data) -> float:
        s = data.stats
        mean = float(s.y_sum) / s.n
        var = float(s.yty) / s.n - mean * mean
        return math.log(max(var, 1e-8))


gaussian = Gaussian()
gaussian_marginal = GaussianMarginal()
