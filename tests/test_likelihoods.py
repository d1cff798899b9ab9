import math

import jax.numpy as jnp
import numpy as np
import pytest
from jax import random as jrand

from rjglm_jax.core import CovariateData, SufficientStatistics, empty_state
from rjglm_jax.inference.rj import RJMHCFG, initial_state
from rjglm_jax.likelihoods import LOG_PROBABILITY_FLOOR, get as get_likelihood
from rjglm_jax.priors import PriorModel

from conftest import FAMILIES, make_data


def _resolved(data, **kwargs):
    model = get_likelihood(data.likelihood)
    return model, PriorModel(**kwargs).resolved(data, model)


@pytest.mark.parametrize("family", FAMILIES)
def test_null_model_log_likelihood_is_finite(family):
    data = make_data(family, n_fixed=1)
    model, priors = _resolved(data)
    state = initial_state(jrand.PRNGKey(0), data, model, priors, RJMHCFG())
    assert int(state.model_dimension) == 0
    assert np.isfinite(float(state.log_likelihood))
    assert np.isfinite(float(state.log_prior))


@pytest.mark.parametrize("family", ("logistic", "weibull", "gaussian", "gaussian_marginal"))
@pytest.mark.parametrize("scale", (0.1, 10.0, 1e3, 1e6))
def test_fuzzed_coefficients_never_give_nan(family, scale):
    data = make_data(family)
    model, priors = _resolved(data)
    rng = np.random.default_rng(1)
    state = empty_state(data, priors.n_beta_prior_partitions)
    state = state.with_inclusion(jnp.ones(data.n_covariates, dtype=jnp.int32), data)
    state = state.replace(
        alpha=jnp.asarray(scale * rng.normal()),
        beta=jnp.asarray(scale * rng.normal(size=data.n_covariates)),
        log_dispersion=jnp.asarray(np.log(scale) * rng.choice([-1.0, 1.0])),
    )
    ll = float(model.log_likelihood(state, data, priors))
    assert np.isfinite(ll)


def test_logistic_probability_floor():
    data = make_data("logistic")
    model, priors = _resolved(data)
    state = empty_state(data, priors.n_beta_prior_partitions)
    state = state.with_inclusion(jnp.ones(data.n_covariates, dtype=jnp.int32), data)
    state = state.replace(beta=jnp.full((data.n_covariates,), 1e8))
    ll = float(model.log_likelihood(state, data, priors))
    assert ll >= data.n_observations * LOG_PROBABILITY_FLOOR
    assert ll <= 0.0


def test_gaussian_marginal_matches_gaussian():
    data = make_data("gaussian_marginal")
    model, priors = _resolved(data)
    gaussian = get_likelihood("gaussian")
    state = empty_state(data, priors.n_beta_prior_partitions)
    state = state.with_inclusion(jnp.array([1, 0, 1, 1], dtype=jnp.int32), data)
    state = state.replace(
        alpha=jnp.asarray(0.7),
        beta=jnp.array([0.5, 0.0, -1.2, 0.3]),
        log_dispersion=jnp.asarray(-0.4),
    )
    np.testing.assert_allclose(
        float(model.log_likelihood(state, data, priors)),
        float(gaussian.log_likelihood(state, data, priors)),
        rtol=1e-9,
    )


def _multivariate_t_log_marginal(X, y, columns, tau, a0, b0):
    """
    log p(y) for y = a 1 + X_g b + e, a flat, b ~ N(0, s2 tau I),
    s2 ~ IG(a0, b0), computed on the (n-1)-dimensional complement of 1.
    """
    n = len(y)
    basis, _ = np.linalg.qr(np.column_stack([np.ones(n), np.eye(n)[:, : n - 1]]))
    Q = basis[:, 1:]
    z = Q.T @ y
    Z = Q.T @ X[:, columns]
    m = n - 1
    Sigma = np.eye(m) + tau * Z @ Z.T
    _, logdet = np.linalg.slogdet(Sigma)
    quad = z @ np.linalg.solve(Sigma, z)
    log_pz = (
        math.lgamma(a0 + 0.5 * m) - math.lgamma(a0) + a0 * math.log(b0)
        - 0.5 * m * math.log(2.0 * math.pi) - 0.5 * logdet
        - (a0 + 0.5 * m) * math.log(b0 + 0.5 * quad)
    )
    return log_pz - 0.5 * math.log(n)


@pytest.mark.parametrize("columns", ([], [0], [0, 2], [0, 1, 2, 3]))
def test_conjugate_matches_closed_form(columns):
    data = make_data("gaussian_conj", n=25)
    model, priors = _resolved(data, tau=2.0, conjugate_a=1.5, conjugate_b=0.7)
    inclusion = np.zeros(data.n_covariates, dtype=np.int32)
    inclusion[columns] = 1
    state = empty_state(data, 0).with_inclusion(jnp.asarray(inclusion), data)
    state = state.replace(log_tau=jnp.asarray(math.log(2.0)))

    expected = _multivariate_t_log_marginal(
        np.asarray(data.X), np.asarray(data.y), columns, 2.0, 1.5, 0.7
    )
    np.testing.assert_allclose(float(model.log_likelihood(state, data, priors)), expected, rtol=1e-8)


@pytest.mark.parametrize("columns", ([], [1], [0, 3], [0, 1, 2]))
def test_conjugate_masked_and_subset_paths_agree(columns):
    data = make_data("gaussian_conj")
    model, priors = _resolved(data)
    log_tau = math.log(priors.tau)
    inclusion = np.zeros(data.n_covariates, dtype=np.int32)
    inclusion[columns] = 1
    state = empty_state(data, 0).with_inclusion(jnp.asarray(inclusion), data)
    state = state.replace(log_tau=jnp.asarray(log_tau))

    masked = float(model.log_likelihood(state, data, priors))
    subset = model.log_likelihood_subset(columns, log_tau, data, priors)
    np.testing.assert_allclose(masked, subset, rtol=1e-9)


def test_summary_statistics_give_same_marginal_likelihood():
    individual = make_data("gaussian_marginal_conj")
    summary = CovariateData.from_summary_statistics(
        SufficientStatistics.from_arrays(individual.X, individual.y),
        likelihood="gaussian_marginal_conj",
        covariate_names=individual.covariate_names,
    )
    model, priors = _resolved(individual)
    log_tau = math.log(priors.tau)
    a = model.log_likelihood_subset([0, 1], log_tau, individual, priors)
    b = model.log_likelihood_subset([0, 1], log_tau, summary, priors)
    np.testing.assert_allclose(a, b, rtol=1e-9)


def test_conjugate_posterior_mean_recovers_signal():
    data = make_data("gaussian_conj", n=400)
    model, priors = _resolved(data)
    state = empty_state(data, 0).with_inclusion(jnp.array([1, 1, 0, 0], dtype=jnp.int32), data)
    state = state.replace(log_tau=jnp.asarray(math.log(priors.tau)))
    alpha, beta = model.posterior_mean(state, data, priors)
    np.testing.assert_allclose(np.asarray(beta), [0.8, -0.5, 0.0, 0.0], atol=0.1)
    np.testing.assert_allclose(float(alpha), 1.0, atol=0.1)
