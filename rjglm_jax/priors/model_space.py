# rjglm_jax/priors/model_space.py
"""
Model-space priors.

Each model-space partition of the free covariates has its own prior on the
number of included covariates k out of the partition's n:

    Poisson(lambda):      k log(lambda) - lambda - log k!
    BetaBinomial(a, b):   log B(k + a, n - k + b) - log B(a, b)

Both are finite for k = 0, so the null model is a valid state.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

import jax.numpy as jnp
import jax.scipy as jsp

from ..core.errors import ConfigurationError


def log_beta_function(a, b):
    return jsp.special.gammaln(a) + jsp.special.gammaln(b) - jsp.special.gammaln(a + b)


@dataclass(frozen=True)
class PoissonModelSpacePrior:
    means: Tuple[float, ...] = (1.0,)

    name = "Poisson"

    def __post_init__(self):
        if len(self.means) == 0 or any(m <= 0.0 for m in self.means):
            raise ConfigurationError(f"Poisson model-space prior means must be positive, got {self.means}")

    @property
    def n_partitions(self) -> int:
        return len(self.means)

    def log_prior(self, partition_dimensions, partition_sizes) -> jnp.ndarray:
        k = partition_dimensions.astype(jnp.float64)
        lam = jnp.asarray(self.means, dtype=jnp.float64)
        return jnp.sum(k * jnp.log(lam) - lam - jsp.special.gammaln(k + 1.0))

    def header_values(self) -> List[str]:
        return [repr(float(m)) for m in self.means]


@dataclass(frozen=True)
class BetaBinomialModelSpacePrior:
    a: Tuple[float, ...] = (1.0,)
    b: Tuple[float, ...] = (1.0,)

    name = "BetaBinomial"

    def __post_init__(self):
        if len(self.a) == 0 or len(self.a) != len(self.b):
            raise ConfigurationError(
                f"Beta-binomial hyperparameters need one (a, b) pair per partition, got {self.a}, {self.b}"
            )
        if any(v <= 0.0 for v in self.a + self.b):
            raise ConfigurationError("Beta-binomial hyperparameters must be positive")

    @property
    def n_partitions(self) -> int:
        return len(self.a)

    def log_prior(self, partition_dimensions, partition_sizes) -> jnp.ndarray:
        k = partition_dimensions.astype(jnp.float64)
        n = jnp.asarray(partition_sizes, dtype=jnp.float64)
        a = jnp.asarray(self.a, dtype=jnp.float64)
        b = jnp.asarray(self.b, dtype=jnp.float64)
        return jnp.sum(log_beta_function(k + a, n - k + b) - log_beta_function(a, b))

    def header_values(self) -> List[str]:
        return [f"{float(a)!r} {float(b)!r}" for a, b in zip(self.a, self.b)]


def get_model_space_prior(name: str, *hyperparameters):
    """Build a model-space prior from its name ("poisson" / "beta_binomial")."""
    key = name.lower().replace("-", "_")
    if key == "poisson":
        (means,) = hyperparameters
        return PoissonModelSpacePrior(means=tuple(float(m) for m in means))
    if key in ("beta_binomial", "betabinomial"):
        a, b = hyperparameters
        return BetaBinomialModelSpacePrior(a=tuple(float(v) for v in a), b=tuple(float(v) for v in b))
    raise KeyError(f"Unknown model-space prior '{name}'. Available: ['poisson', 'beta_binomial']")
