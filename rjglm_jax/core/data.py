# rjglm_jax/core/data.py
"""
Covariate data container.

CovariateData is read-only for the duration of a run. Arrays are pytree
children so they can be passed straight into jitted iteration functions;
counts, names, the likelihood tag and the model-space partition bounds are
static auxiliary data (they fix array shapes inside the sampler).

Sufficient statistics (uncentred cross products) are computed once, at
construction, for the families that evaluate their likelihood from them.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import jax
import jax.numpy as jnp
import numpy as np

from .errors import ConfigurationError


@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class SufficientStatistics:
    """
    Uncentred cross products of a design matrix X (n, V) and outcome y (n,).

    Attributes:
        n: number of observations (static)
        xtx: X'X (V, V)
        xty: X'y (V,)
        yty: y'y ()
        x_sum: column sums of X (V,)
        y_sum: sum of y ()
    """

    n: int
    xtx: jnp.ndarray
    xty: jnp.ndarray
    yty: jnp.ndarray
    x_sum: jnp.ndarray
    y_sum: jnp.ndarray

    def tree_flatten(self):
        return (self.xtx, self.xty, self.yty, self.x_sum, self.y_sum), self.n

    @classmethod
    def tree_unflatten(cls, aux, children):
        return cls(aux, *children)

    @classmethod
    def from_arrays(cls, X, y) -> SufficientStatistics:
        """Single data pass over individual-level data."""
        X = jnp.asarray(X, dtype=jnp.float64)
        y = jnp.asarray(y, dtype=jnp.float64)
        return cls(
            n=int(X.shape[0]),
            xtx=X.T @ X,
            xty=X.T @ y,
            yty=jnp.dot(y, y),
            x_sum=jnp.sum(X, axis=0),
            y_sum=jnp.sum(y),
        )

    def centred(self) -> Tuple[jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray, jnp.ndarray]:
        """
        Cross products of the mean-centred data.

        Returns:
            (xtx_c, xty_c, yty_c, x_mean, y_mean)
        """
        n = float(self.n)
        x_mean = self.x_sum / n
        y_mean = self.y_sum / n
        xtx_c = self.xtx - n * jnp.outer(x_mean, x_mean)
        xty_c = self.xty - n * x_mean * y_mean
        yty_c = self.yty - n * y_mean * y_mean
        return xtx_c, xty_c, yty_c, x_mean, y_mean


@jax.tree_util.register_pytree_node_class
@dataclass(frozen=True)
class CovariateData:
    """
    Immutable design matrix, outcome and model-space layout.

    Attributes:
        X: covariates (n, V); None for summary-statistics data
        y: outcome (n,) - binary for logistic, event indicator for Weibull,
           continuous for Gaussian; None for summary-statistics data
        times: survival times (n,), Weibull only
        cluster_index: cluster membership (n,) int32, random intercepts only
        stats: cached sufficient statistics, marginal/conjugate families only

        covariate_names: one name per covariate (static)
        likelihood: likelihood family tag value (static)
        n_fixed: leading covariates that are always in the model (static)
        n_clusters: number of random-intercept clusters (static)
        model_space_partition_bounds: (P+1,) boundaries over covariate
            indices, starting at n_fixed and ending at V (static)
    """

    X: Optional[jnp.ndarray]
    y: Optional[jnp.ndarray]
    times: Optional[jnp.ndarray]
    cluster_index: Optional[jnp.ndarray]
    stats: Optional[SufficientStatistics]

    covariate_names: Tuple[str, ...] = ()
    likelihood: str = "logistic"
    n_fixed: int = 0
    n_clusters: int = 0
    model_space_partition_bounds: Tuple[int, ...] = ()

    def tree_flatten(self):
        children = (self.X, self.y, self.times, self.cluster_index, self.stats)
        aux = (
            self.covariate_names,
            self.likelihood,
            self.n_fixed,
            self.n_clusters,
            self.model_space_partition_bounds,
        )
        return children, aux

    @classmethod
    def tree_unflatten(cls, aux, children):
        return cls(*children, *aux)

    # ------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------

    @classmethod
    def from_arrays(
        cls,
        X,
        y,
        *,
        likelihood: str,
        times=None,
        cluster_index=None,
        covariate_names: Optional[Sequence[str]] = None,
        n_fixed: int = 0,
        model_space_partition_bounds: Optional[Sequence[int]] = None,
    ) -> CovariateData:
        """
        Build from individual-level data, validating shapes and caching the
        sufficient statistics the selected family needs.
        """
        from ..likelihoods import get as get_likelihood

        model = get_likelihood(likelihood)

        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        if X.ndim != 2:
            raise ConfigurationError(f"X must be 2-dimensional, got shape {X.shape}")
        n, V = X.shape
        if y.shape != (n,):
            raise ConfigurationError(f"y must have shape ({n},), got {y.shape}")
        if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
            raise ConfigurationError("X and y must be finite")

        names = _covariate_names(covariate_names, V)
        bounds = _partition_bounds(model_space_partition_bounds, n_fixed, V)

        if model.family == "logistic" and not np.all((y == 0.0) | (y == 1.0)):
            raise ConfigurationError("Logistic outcome must be coded 0/1")

        times_arr = None
        if model.family == "weibull":
            if times is None:
                raise ConfigurationError("Weibull likelihood needs survival times")
            times_arr = np.asarray(times, dtype=np.float64)
            if times_arr.shape != (n,):
                raise ConfigurationError(f"times must have shape ({n},), got {times_arr.shape}")
            if np.any(times_arr <= 0.0) or not np.all(np.isfinite(times_arr)):
                raise ConfigurationError("Weibull survival times must be positive and finite")
            if not np.all((y == 0.0) | (y == 1.0)):
                raise ConfigurationError("Weibull event indicator must be coded 0/1")
        elif times is not None:
            raise ConfigurationError(f"times are only used by the Weibull likelihood, not {model.family!r}")

        cluster_arr = None
        n_clusters = 0
        if cluster_index is not None:
            if not model.supports_clusters:
                raise ConfigurationError(f"{model.label} likelihood does not support random intercepts")
            cluster_arr = np.asarray(cluster_index)
            if cluster_arr.shape != (n,):
                raise ConfigurationError(f"cluster_index must have shape ({n},), got {cluster_arr.shape}")
            if cluster_arr.min() < 0 or not np.issubdtype(cluster_arr.dtype, np.integer):
                raise ConfigurationError("cluster_index must hold non-negative integers")
            n_clusters = int(cluster_arr.max()) + 1
            cluster_arr = jnp.asarray(cluster_arr, dtype=jnp.int32)

        stats = SufficientStatistics.from_arrays(X, y) if model.uses_sufficient_statistics else None

        return cls(
            X=jnp.asarray(X),
            y=jnp.asarray(y),
            times=None if times_arr is None else jnp.asarray(times_arr),
            cluster_index=cluster_arr,
            stats=stats,
            covariate_names=names,
            likelihood=model.family,
            n_fixed=int(n_fixed),
            n_clusters=n_clusters,
            model_space_partition_bounds=bounds,
        )

    @classmethod
    def from_summary_statistics(
        cls,
        stats: SufficientStatistics,
        *,
        likelihood: str,
        covariate_names: Optional[Sequence[str]] = None,
        n_fixed: int = 0,
        model_space_partition_bounds: Optional[Sequence[int]] = None,
    ) -> CovariateData:
        """Build from cross products alone (marginal families only)."""
        from ..likelihoods import get as get_likelihood

        model = get_likelihood(likelihood)
        if not model.uses_sufficient_statistics:
            raise ConfigurationError(
                f"{model.label} likelihood needs individual-level data, not summary statistics"
            )
        V = int(stats.xty.shape[0])
        if stats.xtx.shape != (V, V) or stats.x_sum.shape != (V,):
            raise ConfigurationError("Inconsistent summary statistic shapes")
        if stats.n < 2:
            raise ConfigurationError("Summary statistics need at least two observations")
        return cls(
            X=None,
            y=None,
            times=None,
            cluster_index=None,
            stats=stats,
            covariate_names=_covariate_names(covariate_names, V),
            likelihood=model.family,
            n_fixed=int(n_fixed),
            n_clusters=0,
            model_space_partition_bounds=_partition_bounds(model_space_partition_bounds, n_fixed, V),
        )

    # ------------------------------------------------------------
    # Derived counts
    # ------------------------------------------------------------

    @property
    def n_covariates(self) -> int:
        return len(self.covariate_names)

    @property
    def n_observations(self) -> int:
        if self.X is not None:
            return int(self.X.shape[0])
        return int(self.stats.n)

    @property
    def n_free(self) -> int:
        """Covariates that can enter or leave the model."""
        return self.n_covariates - self.n_fixed

    @property
    def n_partitions(self) -> int:
        return len(self.model_space_partition_bounds) - 1

    @property
    def partition_sizes(self) -> np.ndarray:
        return np.diff(np.asarray(self.model_space_partition_bounds, dtype=np.int64))

    @property
    def partition_ids(self) -> np.ndarray:
        """Model-space partition of each covariate; fixed covariates map to n_partitions."""
        ids = np.full(self.n_covariates, self.n_partitions, dtype=np.int32)
        bounds = self.model_space_partition_bounds
        for c in range(self.n_partitions):
            ids[bounds[c]:bounds[c + 1]] = c
        return ids

    def __len__(self) -> int:
        return self.n_observations


def _covariate_names(names: Optional[Sequence[str]], V: int) -> Tuple[str, ...]:
    if names is None:
        return tuple(f"x{v + 1}" for v in range(V))
    names = tuple(str(name) for name in names)
    if len(names) != V:
        raise ConfigurationError(f"Got {len(names)} covariate names for {V} covariates")
    if len(set(names)) != V:
        raise ConfigurationError("Covariate names must be unique")
    return names


def _partition_bounds(bounds: Optional[Sequence[int]], n_fixed: int, V: int) -> Tuple[int, ...]:
    if n_fixed < 0 or n_fixed > V:
        raise ConfigurationError(f"n_fixed must be in [0, {V}], got {n_fixed}")
    if bounds is None:
        return (int(n_fixed), int(V))
    bounds = tuple(int(b) for b in bounds)
    if len(bounds) < 2:
        raise ConfigurationError("Model-space partition bounds need at least two entries")
    if bounds[0] != n_fixed or bounds[-1] != V:
        raise ConfigurationError(
            f"Model-space partition bounds must run from n_fixed={n_fixed} to V={V}, got {bounds}"
        )
    if any(b1 < b0 for b0, b1 in zip(bounds[:-1], bounds[1:])):
        raise ConfigurationError(f"Model-space partition bounds must be non-decreasing, got {bounds}")
    return bounds
