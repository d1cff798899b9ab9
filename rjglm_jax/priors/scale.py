# rjglm_jax/priors/scale.py
"""
Priors on positive scale parameters, expressed as densities over the log of
the parameter (the scale on which the sampler moves). Every density below
includes the Jacobian of x -> log x.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import jax.numpy as jnp
import jax.scipy as jsp

from ..core.errors import ConfigurationError

_KINDS = ("log_uniform", "normal", "gamma", "inverse_gamma")


@dataclass(frozen=True)
class ScalePrior:
    """
    kind:
        "log_uniform"   - log x ~ Uniform(a, b)         (a, b are log-scale bounds)
        "normal"        - log x ~ N(a, b^2)
        "gamma"         - x ~ Gamma(shape=a, rate=b)
        "inverse_gamma" - x ~ InverseGamma(shape=a, scale=b)
    """

    kind: str = "log_uniform"
    a: float = 0.0
    b: float = 1.0

    def __post_init__(self):
        if self.kind not in _KINDS:
            raise ConfigurationError(f"Unknown scale prior {self.kind!r}. Available: {list(_KINDS)}")
        if self.kind == "log_uniform" and not self.a < self.b:
            raise ConfigurationError(f"log_uniform prior needs a < b, got ({self.a}, {self.b})")
        if self.kind != "log_uniform" and self.b <= 0.0:
            raise ConfigurationError(f"{self.kind} prior needs b > 0, got {self.b}")
        if self.kind in ("gamma", "inverse_gamma") and self.a <= 0.0:
            raise ConfigurationError(f"{self.kind} prior needs a > 0, got {self.a}")

    def log_density(self, log_x: jnp.ndarray) -> jnp.ndarray:
        """log p(log x); -inf outside the support."""
        a, b = self.a, self.b
        if self.kind == "log_uniform":
            inside = (log_x >= a) & (log_x <= b)
            return jnp.where(inside, -math.log(b - a), -jnp.inf)
        if self.kind == "normal":
            return -0.5 * ((log_x - a) / b) ** 2 - math.log(b) - 0.5 * math.log(2.0 * math.pi)
        if self.kind == "gamma":
            return a * math.log(b) - jsp.special.gammaln(a) + a * log_x - b * jnp.exp(log_x)
        return a * math.log(b) - jsp.special.gammaln(a) - a * log_x - b * jnp.exp(-log_x)

    def log_density_of_log_sd(self, log_sd: jnp.ndarray) -> jnp.ndarray:
        """
        Density over log SD. An inverse-gamma prior applies to the variance,
        every other kind to the SD itself.
        """
        if self.kind == "inverse_gamma":
            return self.log_density(2.0 * log_sd) + math.log(2.0)
        return self.log_density(log_sd)

    def initial_log_value(self) -> float:
        """A central point of the prior on the log scale."""
        if self.kind == "log_uniform":
            return 0.5 * (self.a + self.b)
        if self.kind == "normal":
            return self.a
        if self.kind == "gamma":
            return math.log(self.a / self.b)
        return math.log(self.b / (self.a + 1.0))

    def initial_log_sd(self) -> float:
        if self.kind == "inverse_gamma":
            return 0.5 * self.initial_log_value()
        return self.initial_log_value()

    def clip_log_value(self, log_x: float) -> float:
        """Pull a log value back inside a bounded support."""
        if self.kind == "log_uniform":
            return min(max(log_x, self.a), self.b)
        return log_x

    def header_values(self):
        return [self.kind, repr(float(self.a)), repr(float(self.b))]
