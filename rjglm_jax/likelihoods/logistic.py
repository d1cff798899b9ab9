# rjglm_jax/likelihoods/logistic.py
from __future__ import annotations

import math
from dataclasses import dataclass

import jax
import jax.numpy as jnp
import numpy as np

from .base import (
    LikelihoodFamily,
    LikelihoodModel,
    LOG_PROBABILITY_FLOOR,
    finite_or_floor,
    linear_predictor,
)


@dataclass(frozen=True)
class Logistic(LikelihoodModel):
    """
    Bernoulli likelihood with logistic link:
      p(y=1 | eta) = sigmoid(eta)

    Log-probabilities come from log_sigmoid, which never forms the
    probability itself, and are floored at LOG_PROBABILITY_FLOOR.
    """

    family: str = LikelihoodFamily.LOGISTIC.value
    label: str = "Logistic"
    supports_clusters: bool = True

    def log_likelihood(self, state, data, priors=None) -> jnp.ndarray:
        eta = linear_predictor(state, data)
        log_p1 = jnp.maximum(jax.nn.log_sigmoid(eta), LOG_PROBABILITY_FLOOR)
        log_p0 = jnp.maximum(jax.nn.log_sigmoid(-eta), LOG_PROBABILITY_FLOOR)
        return finite_or_floor(jnp.sum(data.y * log_p1 + (1.0 - data.y) * log_p0))

    def initial_alpha(self, data) -> float:
        rate = float(np.clip(np.mean(np.asarray(data.y)), 1e-3, 1.0 - 1e-3))
        return math.log(rate / (1.0 - rate))


logistic = Logistic()
