# rjglm_jax/priors/prior_model.py
"""
Prior model for reversible-jump GLM sampling.

Collects every prior of the joint model:
  - model-space prior on the inclusion pattern (per partition)
  - Normal(0, sd^2) priors on coefficients, with sd either fixed
    (informative) or shared within a hierarchical partition and sampled
  - priors on the nuisance scales (dispersion, cluster SD, conjugate tau)

PriorModel is hashable so it can be a static argument of jitted functions.
Data-dependent defaults are filled in by `resolved`, which also performs all
consistency checks; the sampler only ever sees resolved priors.
"""
from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import jax.numpy as jnp
import jax.scipy as jsp
import numpy as np

from ..core.errors import ConfigurationError
from .model_space import BetaBinomialModelSpacePrior, PoissonModelSpacePrior
from .scale import ScalePrior

ModelSpacePrior = Union[PoissonModelSpacePrior, BetaBinomialModelSpacePrior]

DEFAULT_DISPERSION_PRIORS = {
    "weibull": ScalePrior("normal", 0.0, 2.0),
    "gaussian": ScalePrior("inverse_gamma", 0.01, 0.01),
    "gaussian_marginal": ScalePrior("inverse_gamma", 0.01, 0.01),
}


@dataclass(frozen=True)
class PriorModel:
    """
    Attributes:
        model_space: Poisson or beta-binomial prior, one entry per partition
        alpha_prior_sd: SD of the Normal prior on the intercept
        informative_sds: fixed prior SDs of the first len(informative_sds) covariates
        beta_prior_partition_bounds: (H+1,) bounds of the hierarchical
            coefficient-prior partitions over the remaining covariates;
            None gives a single partition
        beta_prior_sd_prior: prior on each hierarchical log prior SD
        dispersion_prior: prior on log_dispersion; None picks the family default
        cluster_sd_prior: prior on the log between-cluster SD
        conjugate_a, conjugate_b: InverseGamma(a, b) prior on the residual
            variance of the conjugate families
        tau: coefficient prior scale of the conjugate families (None -> n)
        model_tau: sample log tau instead of fixing it
        tau_prior: prior on log tau when it is sampled
    """

    model_space: ModelSpacePrior = PoissonModelSpacePrior()
    alpha_prior_sd: float = 1000.0
    informative_sds: Tuple[float, ...] = ()
    beta_prior_partition_bounds: Optional[Tuple[int, ...]] = None
    beta_prior_sd_prior: ScalePrior = ScalePrior("log_uniform", math.log(0.01), math.log(2.0))
    dispersion_prior: Optional[ScalePrior] = None
    cluster_sd_prior: ScalePrior = ScalePrior("log_uniform", math.log(0.01), math.log(10.0))
    conjugate_a: float = 0.01
    conjugate_b: float = 0.01
    tau: Optional[float] = None
    model_tau: bool = False
    tau_prior: ScalePrior = ScalePrior("log_uniform", 0.0, math.log(1e6))

    @property
    def n_informative(self) -> int:
        return len(self.informative_sds)

    @property
    def n_beta_prior_partitions(self) -> int:
        if not self.beta_prior_partition_bounds:
            return 0
        return len(self.beta_prior_partition_bounds) - 1

    def resolved(self, data, model) -> PriorModel:
        """Fill data-dependent defaults and check consistency with the data."""
        V = data.n_covariates
        if self.model_space.n_partitions != data.n_partitions:
            raise ConfigurationError(
                f"Model-space prior has {self.model_space.n_partitions} partition(s) "
                f"but the data declare {data.n_partitions}"
            )
        if self.alpha_prior_sd <= 0.0:
            raise ConfigurationError("alpha_prior_sd must be positive")
        if self.conjugate_a <= 0.0 or self.conjugate_b <= 0.0:
            raise ConfigurationError("Conjugate inverse-gamma hyperparameters must be positive")
        if self.model_tau and not model.is_conjugate:
            raise ConfigurationError(f"tau is only sampled for conjugate families, not {model.label}")

        if model.is_conjugate:
            if self.informative_sds:
                raise ConfigurationError(f"{model.label} likelihood integrates the coefficients out; "
                                         "informative coefficient priors are not used")
            tau = float(data.n_observations) if self.tau is None else float(self.tau)
            if tau <= 0.0:
                raise ConfigurationError(f"tau must be positive, got {tau}")
            return dataclasses.replace(self, tau=tau, beta_prior_partition_bounds=())

        n_inf = self.n_informative
        if n_inf > V:
            raise ConfigurationError(f"{n_inf} informative prior SDs given for {V} covariates")
        if any(sd <= 0.0 for sd in self.informative_sds):
            raise ConfigurationError("Informative prior SDs must be positive")

        bounds = self.beta_prior_partition_bounds
        if bounds is None:
            bounds = (n_inf, V) if n_inf < V else ()
        bounds = tuple(int(b) for b in bounds)
        if n_inf < V:
            if len(bounds) < 2 or bounds[0] != n_inf or bounds[-1] != V:
                raise ConfigurationError(
                    f"Coefficient-prior partition bounds must run from {n_inf} to {V}, got {bounds}"
                )
            if any(b1 <= b0 for b0, b1 in zip(bounds[:-1], bounds[1:])):
                raise ConfigurationError(f"Coefficient-prior partitions must be non-empty, got {bounds}")
        elif bounds:
            raise ConfigurationError("Every covariate has an informative prior; no hierarchical partitions allowed")

        dispersion_prior = self.dispersion_prior
        if model.has_dispersion and dispersion_prior is None:
            dispersion_prior = DEFAULT_DISPERSION_PRIORS[model.family]
        return dataclasses.replace(self, beta_prior_partition_bounds=bounds, dispersion_prior=dispersion_prior)

    # ------------------------------------------------------------
    # Densities (jittable; self is static)
    # ------------------------------------------------------------

    def covariate_prior_sds(self, state) -> jnp.ndarray:
        """Prior SD of every covariate's coefficient, (V,)."""
        V = state.beta.shape[0]
        informative = jnp.asarray(self.informative_sds, dtype=state.beta.dtype).reshape(-1)
        if self.n_informative == V:
            return informative
        ids = np.repeat(
            np.arange(self.n_beta_prior_partitions),
            np.diff(np.asarray(self.beta_prior_partition_bounds)),
        )
        hierarchical = jnp.exp(state.log_beta_prior_sds)[ids]
        return jnp.concatenate([informative, hierarchical])

    def log_prior(self, state, data, model) -> jnp.ndarray:
        """Full log prior density of a state."""
        lp = self.model_space.log_prior(state.partition_dimensions, data.partition_sizes)

        if model.is_conjugate:
            if self.model_tau:
                lp = lp + self.tau_prior.log_density(state.log_tau)
            return lp

        lp = lp + jsp.stats.norm.logpdf(state.alpha, 0.0, self.alpha_prior_sd)
        sds = self.covariate_prior_sds(state)
        beta_lp = jsp.stats.norm.logpdf(state.beta, 0.0, sds)
        lp = lp + jnp.sum(jnp.where(state.inclusion == 1, beta_lp, 0.0))
        if self.n_beta_prior_partitions > 0:
            lp = lp + jnp.sum(self.beta_prior_sd_prior.log_density_of_log_sd(state.log_beta_prior_sds))
        if model.has_dispersion:
            lp = lp + self.dispersion_prior.log_density(state.log_dispersion)
        if data.n_clusters > 0:
            cluster_sd = jnp.exp(state.log_cluster_sd)
            lp = lp + jnp.sum(jsp.stats.norm.logpdf(state.cluster_intercepts, 0.0, cluster_sd))
            lp = lp + self.cluster_sd_prior.log_density_of_log_sd(state.log_cluster_sd)
        return lp
