# rjglm_jax/likelihoods/__init__.py

from .base import (
    register,
    get,
    available,
    LikelihoodFamily,
    LikelihoodModel,
    PROBABILITY_FLOOR,
    LOG_PROBABILITY_FLOOR,
    LOG_LIKELIHOOD_FLOOR,
)

from .logistic import Logistic, logistic
from .weibull import Weibull, weibull
from .gaussian import Gaussian, GaussianMarginal, gaussian, gaussian_marginal
from .conjugate import ConjugateGaussian, gaussian_conj, gaussian_marginal_conj

register("logistic", logistic)
register("weibull", weibull)
register("gaussian", gaussian)
register("gaussian_marginal", gaussian_marginal)
register("gaussian_conj", gaussian_conj)
register("gaussian_marginal_conj", gaussian_marginal_conj)

__all__ = [
    "get",
    "available",
    "LikelihoodFamily",
    "LikelihoodModel",
    "PROBABILITY_FLOOR",
    "LOG_PROBABILITY_FLOOR",
    "LOG_LIKELIHOOD_FLOOR",
    "Logistic",
    "Weibull",
    "Gaussian",
    "GaussianMarginal",
    "ConjugateGaussian",
    "logistic",
    "weibull",
    "gaussian",
    "gaussian_marginal",
    "gaussian_conj",
    "gaussian_marginal_conj",
]
