# rjglm_jax/inference/rj/proposals.py
"""
Proposal mechanism for reversible-jump sampling over covariate inclusion.

Moves:
  Add    - include one excluded free covariate, drawing its coefficient
           from N(0, s_j^2)
  Remove - exclude one included free covariate, zeroing its coefficient
  Swap   - Remove one covariate and Add another in a single step
  Null   - fixed-dimension random-walk update of one continuous component
           (intercept, an included coefficient, dispersion, a prior SD,
           log tau, or a random intercept)

Each proposal returns the log proposal ratio log q(x | x') - log q(x' | x),
including the move-selection probabilities and the coefficient-draw density
of the birth/death. The Jacobian of the birth map b -> b is 1. Conjugate
families integrate the coefficients out, so their moves change inclusion
only.

Random-walk SDs are stored on the log scale, one per continuous component.
The SD of coefficient j is also the birth SD for covariate j.
"""
from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Tuple

import jax
import jax.numpy as jnp
import jax.scipy as jsp
import numpy as np
from jax import lax
from jax import random as jrand

from ...core.state import MOVE_NULL, ModelState

LOG_SD_MIN = math.log(1e-6)
LOG_SD_MAX = math.log(1e3)


def _log(p: float) -> float:
    return math.log(p) if p > 0.0 else -math.inf


# ============================================================
# Continuous components
# ============================================================

@dataclass(frozen=True)
class ComponentLayout:
    """
    Flat indexing of the continuous parameters updated by Null moves:

        [alpha | beta (V) | log_dispersion | log_tau |
         log_beta_prior_sds (H) | log_cluster_sd | cluster_intercepts (R)]
    """

    n_covariates: int
    n_beta_prior_partitions: int
    n_clusters: int

    @classmethod
    def for_data(cls, data, priors) -> ComponentLayout:
        return cls(data.n_covariates, priors.n_beta_prior_partitions, data.n_clusters)

    @property
    def beta_start(self) -> int:
        return 1

    @property
    def dispersion(self) -> int:
        return 1 + self.n_covariates

    @property
    def tau(self) -> int:
        return 2 + self.n_covariates

    @property
    def beta_prior_sd_start(self) -> int:
        return 3 + self.n_covariates

    @property
    def cluster_sd(self) -> int:
        return self.beta_prior_sd_start + self.n_beta_prior_partitions

    @property
    def cluster_start(self) -> int:
        return self.cluster_sd + 1

    @property
    def size(self) -> int:
        return self.cluster_start + self.n_clusters

    def pack(self, state: ModelState) -> jnp.ndarray:
        return jnp.concatenate([
            state.alpha[None],
            state.beta,
            state.log_dispersion[None],
            state.log_tau[None],
            state.log_beta_prior_sds,
            state.log_cluster_sd[None],
            state.cluster_intercepts,
        ])

    def unpack(self, state: ModelState, theta: jnp.ndarray) -> ModelState:
        V, H, R = self.n_covariates, self.n_beta_prior_partitions, self.n_clusters
        return state.replace(
            alpha=theta[0],
            beta=theta[self.beta_start:self.beta_start + V],
            log_dispersion=theta[self.dispersion],
            log_tau=theta[self.tau],
            log_beta_prior_sds=theta[self.beta_prior_sd_start:self.beta_prior_sd_start + H],
            log_cluster_sd=theta[self.cluster_sd],
            cluster_intercepts=theta[self.cluster_start:self.cluster_start + R],
        )

    def eligible(self, state: ModelState, model, priors) -> jnp.ndarray:
        """Components a Null move may perturb in this state, (C,) bool."""
        sample_coefficients = not model.is_conjugate
        static = np.zeros(self.size, dtype=bool)
        static[0] = sample_coefficients
        static[self.dispersion] = model.has_dispersion
        static[self.tau] = model.is_conjugate and priors.model_tau
        static[self.beta_prior_sd_start:self.cluster_sd] = sample_coefficients
        static[self.cluster_sd:] = self.n_clusters > 0
        included = (state.inclusion == 1) & sample_coefficients
        return jnp.asarray(static).at[self.beta_start:self.beta_start + self.n_covariates].set(included)

    def labels(self, covariate_names) -> Tuple[str, ...]:
        return (
            ("alpha",)
            + tuple(covariate_names)
            + ("log_dispersion", "log_tau")
            + tuple(f"log_beta_prior_sd{h + 1}" for h in range(self.n_beta_prior_partitions))
            + ("log_cluster_sd",)
            + tuple(f"cluster_intercept{r + 1}" for r in range(self.n_clusters))
        )


# ============================================================
# Adaptive proposal scales
# ============================================================

@jax.tree_util.register_pytree_node_class
@dataclass
class ProposalTuner:
    """
    Random-walk scales and acceptance bookkeeping.

    Attributes:
        log_sds: (C,) log random-walk SD per continuous component
        n_proposed, n_accepted: (C,) Null-move counts per component
        move_proposed, move_accepted: (4,) counts per move type
    """

    log_sds: jnp.ndarray
    n_proposed: jnp.ndarray
    n_accepted: jnp.ndarray
    move_proposed: jnp.ndarray
    move_accepted: jnp.ndarray

    def tree_flatten(self):
        return (self.log_sds, self.n_proposed, self.n_accepted, self.move_proposed, self.move_accepted), None

    @classmethod
    def tree_unflatten(cls, aux, children):
        return cls(*children)

    @classmethod
    def init(cls, layout: ComponentLayout, initial_sd: float) -> ProposalTuner:
        C = layout.size
        return cls(
            log_sds=jnp.full((C,), math.log(initial_sd), dtype=jnp.float64),
            n_proposed=jnp.zeros((C,), dtype=jnp.int32),
            n_accepted=jnp.zeros((C,), dtype=jnp.int32),
            move_proposed=jnp.zeros((4,), dtype=jnp.int32),
            move_accepted=jnp.zeros((4,), dtype=jnp.int32),
        )

    def replace(self, **changes) -> ProposalTuner:
        return dataclasses.replace(self, **changes)


def adapt(tuner: ProposalTuner, state: ModelState, accept, iteration, adaption_length: int,
          target: float, decay: float) -> ProposalTuner:
    """
    Record the outcome of one iteration and, while adapting, move the
    log SD of the perturbed component by a Robbins-Monro step:

        log s_c <- log s_c + n_c^(-decay) (acceptance probability - target)

    where n_c counts the Null moves on component c so far. After
    `adaption_length` iterations the scales are left untouched.
    """
    move = state.move_type
    c = state.component
    accepted = accept.astype(jnp.int32)

    tuned = (move == MOVE_NULL) & (c >= 0)
    ci = jnp.maximum(c, 0)
    inc = tuned.astype(jnp.int32)
    n_proposed = tuner.n_proposed.at[ci].add(inc)
    n_accepted = tuner.n_accepted.at[ci].add(inc * accepted)

    gamma = jnp.maximum(n_proposed[ci], 1).astype(jnp.float64) ** (-decay)
    stepped = tuner.log_sds[ci] + gamma * (state.acceptance_probability - target)
    stepped = jnp.clip(stepped, LOG_SD_MIN, LOG_SD_MAX)
    adapting = iteration <= adaption_length
    log_sds = tuner.log_sds.at[ci].set(jnp.where(adapting & tuned, stepped, tuner.log_sds[ci]))

    return ProposalTuner(
        log_sds=log_sds,
        n_proposed=n_proposed,
        n_accepted=n_accepted,
        move_proposed=tuner.move_proposed.at[move].add(1),
        move_accepted=tuner.move_accepted.at[move].add(accepted),
    )


# ============================================================
# Moves
# ============================================================

def _pick(key, mask) -> jnp.ndarray:
    """Uniform draw among the True entries of mask."""
    return jrand.categorical(key, jnp.where(mask, 0.0, -jnp.inf)).astype(jnp.int32)


def _free_mask(data) -> jnp.ndarray:
    return jnp.arange(data.n_covariates) >= data.n_fixed


def choose_move(key, state: ModelState, probs: Tuple[float, float, float, float], n_free: int) -> jnp.ndarray:
    """
    Categorical draw over (Add, Remove, Swap, Null). A move with no
    eligible covariates falls back to Null.
    """
    move = jrand.choice(key, 4, p=jnp.asarray(probs, dtype=jnp.float64)).astype(jnp.int32)
    k = state.model_dimension
    valid = jnp.stack([k < n_free, k > 0, (k > 0) & (k < n_free), jnp.asarray(True)])
    return jnp.where(valid[move], move, MOVE_NULL).astype(jnp.int32)


def propose_add(key, state, log_sds, data, probs, sample_coefficients: bool):
    p_add, p_remove = probs[0], probs[1]
    k_pick, k_beta = jrand.split(key)
    excluded = _free_mask(data) & (state.inclusion == 0)
    j = _pick(k_pick, excluded)

    k = state.model_dimension.astype(jnp.float64)
    log_q = (_log(p_remove) - jnp.log(k + 1.0)) - (_log(p_add) - jnp.log(data.n_free - k))

    beta = state.beta
    if sample_coefficients:
        sd = jnp.exp(log_sds[1 + j])
        b = sd * jrand.normal(k_beta, dtype=beta.dtype)
        beta = beta.at[j].set(b)
        log_q = log_q - jsp.stats.norm.logpdf(b, 0.0, sd)

    prop = state.replace(beta=beta).with_inclusion(state.inclusion.at[j].set(1), data)
    return prop, jnp.asarray(log_q, dtype=jnp.float64), jnp.asarray(-1, dtype=jnp.int32)


def propose_remove(key, state, log_sds, data, probs, sample_coefficients: bool):
    p_add, p_remove = probs[0], probs[1]
    included = _free_mask(data) & (state.inclusion == 1)
    i = _pick(key, included)

    k = state.model_dimension.astype(jnp.float64)
    log_q = (_log(p_add) - jnp.log(data.n_free - k + 1.0)) - (_log(p_remove) - jnp.log(k))

    beta = state.beta
    if sample_coefficients:
        sd = jnp.exp(log_sds[1 + i])
        log_q = log_q + jsp.stats.norm.logpdf(beta[i], 0.0, sd)
        beta = beta.at[i].set(0.0)

    prop = state.replace(beta=beta).with_inclusion(state.inclusion.at[i].set(0), data)
    return prop, jnp.asarray(log_q, dtype=jnp.float64), jnp.asarray(-1, dtype=jnp.int32)


def propose_swap(key, state, log_sds, data, probs, sample_coefficients: bool):
    k_out, k_in, k_beta = jrand.split(key, 3)
    free = _free_mask(data)
    i = _pick(k_out, free & (state.inclusion == 1))
    j = _pick(k_in, free & (state.inclusion == 0))

    log_q = jnp.zeros((), dtype=jnp.float64)
    beta = state.beta
    if sample_coefficients:
        sd_i = jnp.exp(log_sds[1 + i])
        sd_j = jnp.exp(log_sds[1 + j])
        b = sd_j * jrand.normal(k_beta, dtype=beta.dtype)
        log_q = jsp.stats.norm.logpdf(beta[i], 0.0, sd_i) - jsp.stats.norm.logpdf(b, 0.0, sd_j)
        beta = beta.at[i].set(0.0).at[j].set(b)

    inclusion = state.inclusion.at[i].set(0).at[j].set(1)
    prop = state.replace(beta=beta).with_inclusion(inclusion, data)
    return prop, jnp.asarray(log_q, dtype=jnp.float64), jnp.asarray(-1, dtype=jnp.int32)


def propose_null(key, state, log_sds, layout: ComponentLayout, model, priors):
    """Symmetric Gaussian random walk on one eligible component."""
    k_pick, k_step = jrand.split(key)
    eligible = layout.eligible(state, model, priors)
    any_eligible = jnp.any(eligible)
    c = _pick(k_pick, eligible)

    theta = layout.pack(state)
    step = jnp.exp(log_sds[c]) * jrand.normal(k_step, dtype=theta.dtype)
    theta = theta.at[c].add(jnp.where(any_eligible, step, 0.0))

    prop = layout.unpack(state, theta)
    component = jnp.where(any_eligible, c, -1).astype(jnp.int32)
    return prop, jnp.zeros((), dtype=jnp.float64), component


def propose(key, state: ModelState, log_sds, data, model, priors, probs, layout: ComponentLayout):
    """
    Generate a proposal from `state`.

    Returns:
        (proposal, log proposal ratio); the proposal carries its move type
        and perturbed component but no likelihood/prior yet.
    """
    k_move, k_branch = jrand.split(key)
    move = choose_move(k_move, state, probs, data.n_free)
    sample_coefficients = not model.is_conjugate

    branches = [
        lambda k, s, ls: propose_add(k, s, ls, data, probs, sample_coefficients),
        lambda k, s, ls: propose_remove(k, s, ls, data, probs, sample_coefficients),
        lambda k, s, ls: propose_swap(k, s, ls, data, probs, sample_coefficients),
        lambda k, s, ls: propose_null(k, s, ls, layout, model, priors),
    ]
    prop, log_q, component = lax.switch(move, branches, k_branch, state, log_sds)
    return prop.replace(move_type=move, component=component), log_q


