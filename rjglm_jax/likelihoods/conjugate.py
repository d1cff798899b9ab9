# rjglm_jax/likelihoods/conjugate.py
"""
Conjugate Gaussian linear model with the parameters integrated out.

Model (for the included columns X_g of the centred design):
    y | a, b, s2  ~ N(a 1 + X_g b, s2 I)
    a             ~ flat
    b | s2        ~ N(0, s2 tau I)
    s2            ~ InverseGamma(a0, b0)

Integrating a (which centres the data, leaving n - 1 effective
observations), b and s2 gives

    log p(y | g, tau) = -(n-1)/2 log(2 pi) - 1/2 log n
                        - 1/2 (k log tau + log|X_g'X_g + I/tau|)
                        + a0 log b0 - lgamma(a0) + lgamma(a_n) - a_n log b_n

    a_n = a0 + (n-1)/2
    b_n = b0 + 1/2 (y'y - y'X_g (X_g'X_g + I/tau)^-1 X_g'y)

with all cross products centred. The sampler uses the cached centred cross
products and a masked V x V system whose excluded block is the identity, so
array shapes never depend on the model dimension. Brute-force scoring uses
`log_likelihood_subset`, which rebuilds the k x k system for one subset.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import jax.numpy as jnp
import jax.scipy as jsp
import numpy as np

from .base import LikelihoodFamily, LikelihoodModel, finite_or_floor

LOG_2PI = math.log(2.0 * math.pi)


def masked_ridge_system(mask, xtx_c, xty_c, log_tau) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray]:
    """
    Solve (X_g'X_g + I/tau) b = X_g'y on the included columns.

    Returns:
        (solution (V,), log determinant, quadratic form y'X_g b)
        with the solution zero on excluded columns.
    """
    m = mask.astype(xtx_c.dtype)
    inv_tau = jnp.exp(-log_tau)
    A = jnp.outer(m, m) * xtx_c + jnp.diag(m * inv_tau + (1.0 - m))
    rhs = m * xty_c
    L = jsp.linalg.cholesky(A, lower=True)
    sol = jsp.linalg.cho_solve((L, True), rhs)
    logdet = 2.0 * jnp.sum(jnp.log(jnp.diag(L)))
    return sol, logdet, jnp.dot(rhs, sol)


def conjugate_log_marginal(n, k, logdet, quad, yty_c, log_tau, a0, b0):
    """Closed-form log marginal likelihood given the ridge-system summaries."""
    n_eff = n - 1.0
    a_n = a0 + 0.5 * n_eff
    b_n = b0 + 0.5 * jnp.maximum(yty_c - quad, 0.0)
    return (
        -0.5 * n_eff * LOG_2PI
        - 0.5 * jnp.log(n)
        - 0.5 * (k * log_tau + logdet)
        + a0 * jnp.log(b0)
        - jsp.special.gammaln(a0)
        + jsp.special.gammaln(a_n)
        - a_n * jnp.log(b_n)
    )


@dataclass(frozen=True)
class ConjugateGaussian(LikelihoodModel):
    """
    Conjugate Gaussian family. The same model serves individual-level data
    (GaussianConj, statistics cached at construction) and summary-level data
    (GaussianMargConj, statistics supplied directly).
    """

    family: str = LikelihoodFamily.GAUSSIAN_CONJ.value
    label: str = "GaussianConj"
    is_conjugate: bool = True
    uses_sufficient_statistics: bool = True

    def log_likelihood(self, state, data, priors) -> jnp.ndarray:
        xtx_c, xty_c, yty_c, _, _ = data.stats.centred()
        _, logdet, quad = masked_ridge_system(state.inclusion, xtx_c, xty_c, state.log_tau)
        k = jnp.sum(state.inclusion).astype(xtx_c.dtype)
        ll = conjugate_log_marginal(
            float(data.stats.n), k, logdet, quad, yty_c, state.log_tau,
            priors.conjugate_a, priors.conjugate_b,
        )
        return finite_or_floor(ll)

    def posterior_mean(self, state, data, priors) -> Tuple[jnp.ndarray, jnp.ndarray]:
        """Posterior mean (alpha, beta) given the inclusion pattern and tau."""
        xtx_c, xty_c, _, x_mean, y_mean = data.stats.centred()
        sol, _, _ = masked_ridge_system(state.inclusion, xtx_c, xty_c, state.log_tau)
        return y_mean - jnp.dot(x_mean, sol), sol

    def log_likelihood_subset(self, columns: Sequence[int], log_tau: float, data, priors) -> float:
        """
        Log marginal likelihood of one covariate subset, recomputed from the
        data rather than read from the cached cross products.
        """
        columns = np.asarray(columns, dtype=np.int64)
        k = len(columns)
        if data.X is not None:
            Xs = np.asarray(data.X)[:, columns]
            y = np.asarray(data.y)
            n = float(y.shape[0])
            Xc = Xs - Xs.mean(axis=0)
            yc = y - y.mean()
            xtx = Xc.T @ Xc
            xty = Xc.T @ yc
            yty = float(yc @ yc)
        else:
            xtx_c, xty_c, yty_c, _, _ = data.stats.centred()
            n = float(data.stats.n)
            xtx = np.asarray(xtx_c)[np.ix_(columns, columns)]
            xty = np.asarray(xty_c)[columns]
            yty = float(yty_c)

        if k == 0:
            logdet, quad = 0.0, 0.0
        else:
            A = jnp.asarray(xtx) + jnp.eye(k) * math.exp(-log_tau)
            L = jsp.linalg.cholesky(A, lower=True)
            sol = jsp.linalg.cho_solve((L, True), jnp.asarray(xty))
            logdet = 2.0 * jnp.sum(jnp.log(jnp.diag(L)))
            quad = jnp.dot(jnp.asarray(xty), sol)

        ll = conjugate_log_marginal(
            n, float(k), logdet, quad, yty, log_tau, priors.conjugate_a, priors.conjugate_b
        )
        return float(finite_or_floor(ll))


gaussian_conj = ConjugateGaussian()
gaussian_marginal_conj = ConjugateGaussian(
    family=LikelihoodFamily.GAUSSIAN_MARGINAL_CONJ.value,
    label="GaussianMargConj",
)
