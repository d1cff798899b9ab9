# rjglm_jax/inference/rj/scoring.py
"""
All-subsets scoring: the log marginal likelihood of every model with up to
K free covariates (fixed covariates always included), evaluated outside the
chain. Conjugate families only, since the score must not depend on sampled
coefficients.
"""
from __future__ import annotations

import itertools
import logging
import math
from typing import List, Tuple

from ...core.errors import ConfigurationError

logger = logging.getLogger(__name__)

MAX_SCORING_DIMENSION = 5


def model_label(names) -> str:
    """"Null" for the empty model, else covariate names joined by "_AND_"."""
    return "_AND_".join(names) if names else "Null"


def score_models(data, model, priors, max_dimension: int) -> List[Tuple[str, float]]:
    """
    Score every subset of the free covariates of size 0..max_dimension.

    Returns:
        [(label, log marginal likelihood)] in enumeration order: the null
        model, then all singles, all pairs, ... each in lexicographic
        covariate order.
    """
    if not model.is_conjugate:
        raise ConfigurationError(f"All-model scoring needs a conjugate likelihood, not {model.label}")
    if not 0 <= max_dimension <= MAX_SCORING_DIMENSION:
        raise ConfigurationError(
            f"Scoring dimension must lie in [0, {MAX_SCORING_DIMENSION}], got {max_dimension}"
        )

    if max_dimension == MAX_SCORING_DIMENSION:
        logger.warning(
            "Scoring every model of dimension %d; older results files that skipped "
            "part of this enumeration will not match these dimension-%d scores",
            max_dimension, max_dimension,
        )

    fixed = list(range(data.n_fixed))
    free = range(data.n_fixed, data.n_covariates)
    log_tau = math.log(priors.tau)
    names = data.covariate_names

    scores = []
    for d in range(min(max_dimension, data.n_free) + 1):
        for subset in itertools.combinations(free, d):
            ll = model.log_likelihood_subset(fixed + list(subset), log_tau, data, priors)
            scores.append((model_label([names[v] for v in subset]), ll))
        logger.debug("Scored all models of dimension %d", d)
    logger.info("Scored %d models up to dimension %d", len(scores), max_dimension)
    return scores
