import numpy as np
import pytest

import rjglm_jax  # noqa: F401  (enables float64)
from rjglm_jax.core import CovariateData

FAMILIES = (
    "logistic",
    "weibull",
    "gaussian",
    "gaussian_marginal",
    "gaussian_conj",
    "gaussian_marginal_conj",
)


def make_data(likelihood, n=40, V=4, n_fixed=0, clusters=False, seed=0, bounds=None):
    """Synthetic data where the first two covariates carry the signal."""
    rng = np.random.default_rng(seed)
    X = rng.normal(size=(n, V))
    eta = 0.8 * X[:, 0] - 0.5 * X[:, 1]
    times = None
    if likelihood == "logistic":
        y = (rng.uniform(size=n) < 1.0 / (1.0 + np.exp(-eta))).astype(float)
    elif likelihood == "weibull":
        times = rng.exponential(1.0 / np.exp(eta)) + 1e-3
        y = (rng.uniform(size=n) < 0.8).astype(float)
    else:
        y = 1.0 + eta + 0.5 * rng.normal(size=n)
    return CovariateData.from_arrays(
        X,
        y,
        likelihood=likelihood,
        times=times,
        cluster_index=(np.arange(n) % 3) if clusters else None,
        n_fixed=n_fixed,
        model_space_partition_bounds=bounds,
    )


@pytest.fixture
def gaussian_data():
    return make_data("gaussian")


@pytest.fixture
def logistic_data():
    return make_data("logistic")
