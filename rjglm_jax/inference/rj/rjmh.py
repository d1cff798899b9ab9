# rjglm_jax/inference/rj/rjmh.py
"""
Reversible-jump Metropolis-Hastings for Bayesian GLM variable selection.

The chain moves over (inclusion pattern, coefficients, nuisance parameters)
with Add/Remove/Swap moves that change the set of included covariates and a
Null move that perturbs one continuous component at fixed dimension. The
random-walk scales adapt by Robbins-Monro during the first
`adaption_length` iterations and are frozen afterwards.

Two full states are kept, `curr` and `prop`. Each iteration builds the
proposal from `prop` (which always equals the last accepted state), scores
it, and then sets both buffers to the selected state by value.
"""
from __future__ import annotations

import logging
import math
import time
from contextlib import nullcontext
from dataclasses import dataclass
from functools import partial
from typing import Dict, List, Optional, Tuple

import jax
import jax.numpy as jnp
import numpy as np
from jax import random as jrand
from tqdm.auto import tqdm

from ...core.errors import ConfigurationError
from ...core.state import MOVE_LABELS, ModelState, empty_state
from ...io.results import ResultsWriter
from ...likelihoods import get as get_likelihood
from .proposals import ComponentLayout, ProposalTuner, adapt, propose
from .scoring import MAX_SCORING_DIMENSION, score_models

logger = logging.getLogger(__name__)

EARLY_FEEDBACK_ITERATIONS = (1, 10, 100, 1000)


@dataclass(frozen=True)
class RJMHCFG:
    """Configuration for the RJMH sampler."""
    n_iterations: int = 10000
    burn_in: int = 1000
    thinning: int = 1
    adaption_length: int = 1000
    console_output_interval: int = 1000
    seed: int = 1
    prob_add: float = 0.25
    prob_remove: float = 0.25
    prob_swap: float = 0.25
    prob_null: float = 0.25
    initial_proposal_sd: float = 0.1
    target_acceptance: float = 0.44
    adaption_decay: float = 0.6
    alternative_initial_values: bool = False
    all_model_scores_up_to_dim: int = 0  # brute-force scoring depth, 0 = off
    progress: bool = False

    def __post_init__(self):
        if self.n_iterations <= 0:
            raise ConfigurationError(f"n_iterations must be positive, got {self.n_iterations}")
        if self.burn_in < 0:
            raise ConfigurationError(f"burn_in must be non-negative, got {self.burn_in}")
        if self.thinning <= 0:
            raise ConfigurationError(f"thinning must be positive, got {self.thinning}")
        if self.adaption_length < 0:
            raise ConfigurationError(f"adaption_length must be non-negative, got {self.adaption_length}")
        if self.console_output_interval <= 0:
            raise ConfigurationError("console_output_interval must be positive")
        probs = (self.prob_add, self.prob_remove, self.prob_swap, self.prob_null)
        if any(p < 0.0 or p > 1.0 for p in probs):
            raise ConfigurationError(f"Move probabilities must lie in [0, 1], got {probs}")
        if abs(sum(probs) - 1.0) > 1e-8:
            raise ConfigurationError(f"Move probabilities must sum to 1, got {sum(probs)}")
        if self.initial_proposal_sd <= 0.0:
            raise ConfigurationError("initial_proposal_sd must be positive")
        if not 0.0 < self.target_acceptance < 1.0:
            raise ConfigurationError(f"target_acceptance must lie in (0, 1), got {self.target_acceptance}")
        if not 0.5 < self.adaption_decay <= 1.0:
            raise ConfigurationError(f"adaption_decay must lie in (0.5, 1], got {self.adaption_decay}")
        if not 0 <= self.all_model_scores_up_to_dim <= MAX_SCORING_DIMENSION:
            raise ConfigurationError(
                f"all_model_scores_up_to_dim must lie in [0, {MAX_SCORING_DIMENSION}], "
                f"got {self.all_model_scores_up_to_dim}"
            )

    def move_probabilities(self, model, priors) -> Tuple[float, float, float, float]:
        """
        Effective (add, remove, swap, null) probabilities.

        A conjugate family with tau fixed has no continuous component left
        to perturb, so the Null mass is spread over the other moves in
        proportion to their configured probabilities.
        """
        probs = (self.prob_add, self.prob_remove, self.prob_swap, self.prob_null)
        if not (model.is_conjugate and not priors.model_tau):
            return probs
        jump = self.prob_add + self.prob_remove + self.prob_swap
        if jump <= 0.0:
            raise ConfigurationError(
                f"{model.label} with fixed tau has no Null move; "
                "prob_add, prob_remove and prob_swap cannot all be zero"
            )
        return (self.prob_add / jump, self.prob_remove / jump, self.prob_swap / jump, 0.0)


@dataclass
class RJMHRun:
    """RJMH run results (recorded iterations only)."""
    iterations: np.ndarray  # (S,) iteration index of each recorded sample
    inclusion: np.ndarray  # (S, V)
    model_dimension: np.ndarray  # (S,)
    alpha: np.ndarray  # (S,)
    beta: np.ndarray  # (S, V)
    log_dispersion: np.ndarray  # (S,)
    log_beta_prior_sds: np.ndarray  # (S, H)
    log_tau: np.ndarray  # (S,)
    log_cluster_sd: np.ndarray  # (S,)
    cluster_intercepts: np.ndarray  # (S, R)
    log_likelihood: np.ndarray  # (S,)
    acceptance_rates: Dict[str, float]  # per move label
    log_proposal_sds: np.ndarray  # (C,) final random-walk scales
    final_state: ModelState
    covariate_names: Tuple[str, ...]
    model_scores: Optional[List[Tuple[str, float]]] = None

    @property
    def n_samples(self) -> int:
        return int(self.iterations.shape[0])

    @property
    def posterior_inclusion_probabilities(self) -> Dict[str, float]:
        if self.n_samples == 0:
            return {name: float("nan") for name in self.covariate_names}
        pip = self.inclusion.mean(axis=0)
        return {name: float(p) for name, p in zip(self.covariate_names, pip)}


# ============================================================
# State evaluation and initial values
# ============================================================

def evaluate_state(state: ModelState, data, model, priors) -> ModelState:
    """
    Fill in log-likelihood and log prior. Conjugate families also set
    (alpha, beta) to their posterior mean under the state's inclusion.
    """
    if model.is_conjugate:
        alpha, beta = model.posterior_mean(state, data, priors)
        state = state.replace(alpha=alpha, beta=beta)
    return state.replace(
        log_likelihood=model.log_likelihood(state, data, priors),
        log_prior=priors.log_prior(state, data, model),
    )


def initial_state(key, data, model, priors, cfg: RJMHCFG) -> ModelState:
    """
    Starting state: only the fixed covariates included, coefficients at
    zero, intercept and dispersion at data-driven values, prior SDs at the
    centre of their priors. With `alternative_initial_values` every
    sampled continuous start gets an extra N(0, 1) kick (on the log scale
    for scales), kept inside the support of its prior.
    """
    H = priors.n_beta_prior_partitions
    state = empty_state(data, H)

    alpha = 0.0 if model.is_conjugate else model.initial_alpha(data)
    beta = np.zeros(data.n_covariates)
    log_dispersion = model.initial_log_dispersion(data) if model.has_dispersion else 0.0
    log_bsds = np.full(H, priors.beta_prior_sd_prior.initial_log_sd()) if H > 0 else np.zeros(0)
    log_tau = math.log(priors.tau) if model.is_conjugate else 0.0
    log_cluster_sd = priors.cluster_sd_prior.initial_log_sd() if data.n_clusters > 0 else 0.0

    if cfg.alternative_initial_values:
        z = np.asarray(jrand.normal(key, (4 + data.n_fixed + H,), dtype=jnp.float64))
        if not model.is_conjugate:
            alpha += float(z[0])
            beta[:data.n_fixed] += z[4:4 + data.n_fixed]
            log_bsds = np.array([priors.beta_prior_sd_prior.clip_log_value(v) for v in log_bsds + z[4 + data.n_fixed:]])
        if model.has_dispersion:
            log_dispersion = priors.dispersion_prior.clip_log_value(log_dispersion + float(z[1]))
        if model.is_conjugate and priors.model_tau:
            log_tau = priors.tau_prior.clip_log_value(log_tau + float(z[2]))
        if data.n_clusters > 0:
            log_cluster_sd = priors.cluster_sd_prior.clip_log_value(log_cluster_sd + float(z[3]))
    elif model.is_conjugate and priors.model_tau:
        log_tau = priors.tau_prior.clip_log_value(log_tau)

    dtype = jnp.float64
    state = state.replace(
        alpha=jnp.asarray(alpha, dtype=dtype),
        beta=jnp.asarray(beta, dtype=dtype),
        log_dispersion=jnp.asarray(log_dispersion, dtype=dtype),
        log_beta_prior_sds=jnp.asarray(log_bsds, dtype=dtype).reshape(H),
        log_tau=jnp.asarray(log_tau, dtype=dtype),
        log_cluster_sd=jnp.asarray(log_cluster_sd, dtype=dtype),
    )
    state = evaluate_state(state, data, model, priors)
    if not np.isfinite(float(state.log_target)):
        raise ConfigurationError(
            f"Initial state has non-finite log target "
            f"(log-likelihood {float(state.log_likelihood)}, log prior {float(state.log_prior)}); "
            "check the priors against the data"
        )
    return state


# ============================================================
# One MH iteration
# ============================================================

@partial(jax.jit, static_argnames=("model", "priors", "cfg", "probs", "layout"))
def mh_iteration(
    key: jrand.PRNGKey,
    iteration: jnp.ndarray,
    curr: ModelState,
    prop: ModelState,
    tuner: ProposalTuner,
    data,
    model,
    priors,
    cfg: RJMHCFG,
    probs: Tuple[float, float, float, float],
    layout: ComponentLayout,
) -> Tuple[ModelState, ModelState, ProposalTuner]:
    """
    Propose, evaluate, accept/reject and adapt.

    Args:
        key: the run's PRNG key; this iteration uses fold_in(key, iteration)
        iteration: iteration index (0-based)
        curr, prop: the two state buffers, equal on entry
        tuner: random-walk scales and acceptance counts

    Returns:
        (curr, prop, tuner) with both buffers holding the selected state
    """
    k_prop, k_acc = jrand.split(jrand.fold_in(key, iteration))

    prop, log_q = propose(k_prop, prop, tuner.log_sds, data, model, priors, probs, layout)
    prop = evaluate_state(prop, data, model, priors)

    log_ratio = prop.log_target - curr.log_target + log_q
    log_ratio = jnp.where(jnp.isnan(log_ratio), -jnp.inf, log_ratio)
    acceptance_probability = jnp.exp(jnp.minimum(0.0, log_ratio))
    accept = jrand.uniform(k_acc, dtype=acceptance_probability.dtype) < acceptance_probability

    flags = dict(
        acceptance_probability=acceptance_probability,
        proposal_accepted=accept.astype(jnp.int32),
        move_type=prop.move_type,
        component=prop.component,
    )
    selected = ModelState.select(accept, prop.replace(**flags), curr.replace(**flags))
    tuner = adapt(
        tuner, selected, accept, iteration,
        cfg.adaption_length, cfg.target_acceptance, cfg.adaption_decay,
    )
    return selected, selected, tuner


# ============================================================
# Main chain
# ============================================================

def _stack(samples: List[ModelState], field: str, shape: Tuple[int, ...], dtype) -> np.ndarray:
    if not samples:
        return np.zeros((0,) + shape, dtype=dtype)
    return np.stack([np.asarray(getattr(s, field)) for s in samples]).astype(dtype)


# The loop runs in Python and streams each recorded sample to the results
# writer; the iteration itself is jit-compiled.
def run_chain(
    data,
    priors,
    cfg: Optional[RJMHCFG] = None,
    *,
    key: Optional[jrand.PRNGKey] = None,
    results=None,
) -> RJMHRun:
    """
    Run one RJMH chain.

    Args:
        data: CovariateData
        priors: PriorModel; data-dependent defaults are resolved here
        cfg: RJMHCFG, defaults to RJMHCFG()
        key: PRNG key; defaults to PRNGKey(cfg.seed)
        results: optional path or text stream receiving the header block
            and one row per recorded iteration

    Returns:
        RJMHRun with the recorded samples
    """
    cfg = RJMHCFG() if cfg is None else cfg
    model = get_likelihood(data.likelihood)
    priors = priors.resolved(data, model)
    probs = cfg.move_probabilities(model, priors)
    layout = ComponentLayout.for_data(data, priors)
    key = jrand.PRNGKey(cfg.seed) if key is None else key
    k_init, k_chain = jrand.split(key)

    model_scores = None
    if cfg.all_model_scores_up_to_dim > 0:
        model_scores = score_models(data, model, priors, cfg.all_model_scores_up_to_dim)

    curr = initial_state(k_init, data, model, priors, cfg)
    prop = jax.tree_util.tree_map(jnp.copy, curr)
    tuner = ProposalTuner.init(layout, cfg.initial_proposal_sd)

    logger.info(
        "Starting RJMH: likelihood=%s, model space prior=%s, V=%d (fixed %d), n=%d, iterations=%d",
        model.label, priors.model_space.name, data.n_covariates, data.n_fixed,
        data.n_observations, cfg.n_iterations,
    )
    logger.debug("Initial state: %s", curr.get_summary())

    samples: List[ModelState] = []
    writer_cm = nullcontext(None) if results is None else ResultsWriter(results, data, priors, cfg, model)
    with writer_cm as writer:
        if writer is not None:
            writer.write_header(model_scores)

        t_first = None
        for i in tqdm(range(cfg.n_iterations), desc="RJMH", disable=not cfg.progress):
            curr, prop, tuner = mh_iteration(
                k_chain, jnp.asarray(i, dtype=jnp.int32), curr, prop, tuner, data,
                model=model, priors=priors, cfg=cfg, probs=probs, layout=layout,
            )

            if i == cfg.adaption_length:
                logger.info("Adaption complete; current log-likelihood %.4f", float(curr.log_likelihood))

            if i >= cfg.burn_in and i % cfg.thinning == 0:
                host_state = jax.device_get(curr)
                samples.append(host_state)
                if writer is not None:
                    writer.write_sample(host_state)

            if i in EARLY_FEEDBACK_ITERATIONS:
                logger.info("%d iterations complete", i)
                if i == 1:
                    t_first = time.perf_counter()
                elif i == 1000:
                    seconds_per_iteration = (time.perf_counter() - t_first) / 999.0
                    logger.info(
                        "Estimated minutes per million iterations: %.2f",
                        seconds_per_iteration * 1e6 / 60.0,
                    )
            if i > 0 and i % cfg.console_output_interval == 0:
                logger.info("%d / %d iterations complete", i, cfg.n_iterations)

    move_proposed = np.asarray(tuner.move_proposed)
    move_accepted = np.asarray(tuner.move_accepted)
    acceptance_rates = {
        label: float(move_accepted[m] / move_proposed[m]) if move_proposed[m] > 0 else float("nan")
        for m, label in enumerate(MOVE_LABELS)
    }
    for label, rate in acceptance_rates.items():
        logger.debug("%s acceptance rate: %.3f", label, rate)
    logger.info(
        "RJMH complete: %d samples recorded%s",
        len(samples), "" if results is None else f", results written to {results}",
    )

    V, H, R = data.n_covariates, priors.n_beta_prior_partitions, data.n_clusters
    return RJMHRun(
        iterations=np.asarray(
            [i for i in range(cfg.burn_in, cfg.n_iterations) if i % cfg.thinning == 0], dtype=np.int64
        ),
        inclusion=_stack(samples, "inclusion", (V,), np.int32),
        model_dimension=_stack(samples, "model_dimension", (), np.int32),
        alpha=_stack(samples, "alpha", (), np.float64),
        beta=_stack(samples, "beta", (V,), np.float64),
        log_dispersion=_stack(samples, "log_dispersion", (), np.float64),
        log_beta_prior_sds=_stack(samples, "log_beta_prior_sds", (H,), np.float64),
        log_tau=_stack(samples, "log_tau", (), np.float64),
        log_cluster_sd=_stack(samples, "log_cluster_sd", (), np.float64),
        cluster_intercepts=_stack(samples, "cluster_intercepts", (R,), np.float64),
        log_likelihood=_stack(samples, "log_likelihood", (), np.float64),
        acceptance_rates=acceptance_rates,
        log_proposal_sds=np.asarray(tuner.log_sds),
        final_state=curr,
        covariate_names=data.covariate_names,
        model_scores=model_scores,
    )


# ============================================================
# High-level interface
# ============================================================

class RJMH:
    """
    High-level interface for the RJMH sampler.

    Owns the run's PRNG key, seeded once from cfg.seed, so repeated runs of
    the same instance are identical.
    """

    def __init__(self, cfg: RJMHCFG = RJMHCFG()):
        """
        Args:
            cfg: Configuration for RJMH
        """
        self.cfg = cfg
        self.key = jrand.PRNGKey(cfg.seed)

    def run(self, data, priors, results=None) -> RJMHRun:
        """
        Run RJMH sampling.

        Args:
            data: CovariateData
            priors: PriorModel
            results: optional path or text stream for the results file

        Returns:
            RJMHRun with the recorded samples
        """
        return run_chain(data, priors, self.cfg, key=self.key, results=results)
