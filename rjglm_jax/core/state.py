# rjglm_jax/core/state.py
"""
Model state for reversible-jump sampling over covariate inclusion.

A ModelState is one point in the joint space of (inclusion pattern,
coefficients, nuisance parameters). The sampler keeps two of them, the
current state and the proposal, and overwrites one with the other after
every accept/reject decision.

Inclusion is a fixed-length {0,1} vector so every state has the same array
shapes regardless of model dimension; coefficients of excluded covariates
are held at zero.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Dict

import jax
import jax.numpy as jnp
import numpy as np

MOVE_INITIAL = -1
MOVE_ADD = 0
MOVE_REMOVE = 1
MOVE_SWAP = 2
MOVE_NULL = 3
MOVE_LABELS = ("Add", "Remove", "Swap", "Null")


@jax.tree_util.register_pytree_node_class
@dataclass
class ModelState:
    """
    Attributes:
        inclusion: (V,) int32, 1 if the covariate is in the model
        model_dimension: () int32, included covariates excluding fixed ones
        partition_dimensions: (P,) int32, included covariates per model-space partition

        alpha: () intercept
        beta: (V,) coefficients, zero where excluded
        log_dispersion: () log Weibull shape / log Gaussian residual variance
        log_beta_prior_sds: (H,) log prior SD per hierarchical coefficient-prior partition
        log_tau: () log coefficient prior scale of the conjugate families
        cluster_intercepts: (R,) random intercepts
        log_cluster_sd: () log between-cluster SD

        log_likelihood: () log-likelihood (log marginal likelihood for conjugate families)
        log_prior: () log prior density of the state
        acceptance_probability: () acceptance probability of the last proposal
        proposal_accepted: () int32
        move_type: () int32, see MOVE_LABELS
        component: () int32, continuous component perturbed by a Null move, else -1
    """

    inclusion: jnp.ndarray
    model_dimension: jnp.ndarray
    partition_dimensions: jnp.ndarray

    alpha: jnp.ndarray
    beta: jnp.ndarray
    log_dispersion: jnp.ndarray
    log_beta_prior_sds: jnp.ndarray
    log_tau: jnp.ndarray
    cluster_intercepts: jnp.ndarray
    log_cluster_sd: jnp.ndarray

    log_likelihood: jnp.ndarray
    log_prior: jnp.ndarray
    acceptance_probability: jnp.ndarray
    proposal_accepted: jnp.ndarray
    move_type: jnp.ndarray
    component: jnp.ndarray

    def tree_flatten(self):
        children = tuple(getattr(self, f.name) for f in dataclasses.fields(self))
        return children, None

    @classmethod
    def tree_unflatten(cls, aux, children):
        return cls(*children)

    def replace(self, **changes) -> ModelState:
        return dataclasses.replace(self, **changes)

    @property
    def log_target(self) -> jnp.ndarray:
        return self.log_likelihood + self.log_prior

    def with_inclusion(self, inclusion: jnp.ndarray, data) -> ModelState:
        """
        Set the inclusion vector and recompute the dimension counts from it.

        Fixed covariates are forced back in; dimensions are never updated
        independently of inclusion.
        """
        fixed = jnp.arange(data.n_covariates) < data.n_fixed
        inclusion = jnp.where(fixed, 1, inclusion).astype(jnp.int32)
        return self.replace(
            inclusion=inclusion,
            model_dimension=count_model_dimension(inclusion, data),
            partition_dimensions=count_partition_dimensions(inclusion, data),
        )

    @staticmethod
    def select(accept: jnp.ndarray, prop: ModelState, curr: ModelState) -> ModelState:
        """Full-value copy of prop (if accepted) or curr (if rejected)."""
        return jax.tree_util.tree_map(lambda p, c: jnp.where(accept, p, c), prop, curr)

    def get_summary(self) -> Dict[str, Any]:
        """Host-side summary for logging/debugging."""
        return {
            "model_dimension": int(self.model_dimension),
            "included": np.flatnonzero(np.asarray(self.inclusion)).tolist(),
            "alpha": float(self.alpha),
            "log_likelihood": float(self.log_likelihood),
            "log_prior": float(self.log_prior),
            "move": MOVE_LABELS[int(self.move_type)] if int(self.move_type) >= 0 else "Initial",
        }


def count_model_dimension(inclusion: jnp.ndarray, data) -> jnp.ndarray:
    """Number of included covariates, not counting fixed ones."""
    free = jnp.arange(data.n_covariates) >= data.n_fixed
    return jnp.sum(jnp.where(free, inclusion, 0)).astype(jnp.int32)


def count_partition_dimensions(inclusion: jnp.ndarray, data) -> jnp.ndarray:
    """Number of included covariates per model-space partition."""
    ids = jnp.asarray(data.partition_ids)
    counts = jax.ops.segment_sum(inclusion.astype(jnp.int32), ids, num_segments=data.n_partitions + 1)
    return counts[: data.n_partitions].astype(jnp.int32)


def empty_state(data, n_beta_prior_partitions: int, dtype=jnp.float64) -> ModelState:
    """A state with every field at its zero value and shapes fixed by the data layout."""
    V = data.n_covariates
    zero = jnp.zeros((), dtype=dtype)
    state = ModelState(
        inclusion=jnp.zeros((V,), dtype=jnp.int32),
        model_dimension=jnp.zeros((), dtype=jnp.int32),
        partition_dimensions=jnp.zeros((data.n_partitions,), dtype=jnp.int32),
        alpha=zero,
        beta=jnp.zeros((V,), dtype=dtype),
        log_dispersion=zero,
        log_beta_prior_sds=jnp.zeros((n_beta_prior_partitions,), dtype=dtype),
        log_tau=zero,
        cluster_intercepts=jnp.zeros((data.n_clusters,), dtype=dtype),
        log_cluster_sd=zero,
        log_likelihood=zero,
        log_prior=zero,
        acceptance_probability=jnp.ones((), dtype=dtype),
        proposal_accepted=jnp.zeros((), dtype=jnp.int32),
        move_type=jnp.asarray(MOVE_INITIAL, dtype=jnp.int32),
        component=jnp.asarray(-1, dtype=jnp.int32),
    )
    return state.with_inclusion(state.inclusion, data)
